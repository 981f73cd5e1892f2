# utils.py - Upload staging helpers
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiofiles
from fastapi import UploadFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def staging_path(temp_dir: Path, filename: str | None) -> Path:
    """
    Returns a fresh path inside `temp_dir` for one upload.

    Every request gets its own uuid-based name, so concurrent uploads never
    overwrite each other. The client's extension is kept as a hint for ffmpeg.
    """
    suffix = Path(filename or "").suffix.lower() or ".bin"
    return temp_dir / f"{uuid.uuid4().hex}{suffix}"


def remove_file(path: Path) -> None:
    """Deletes `path` if it exists, logging instead of raising on failure."""
    try:
        if path.exists():
            path.unlink()
    except OSError as e:
        logger.warning(f"Could not delete file {path}: {e}")


@asynccontextmanager
async def staged_upload(upload: UploadFile, temp_dir: Path) -> AsyncIterator[Path]:
    """
    Writes the upload to a unique file under `temp_dir` and yields its path.

    The file is removed when the block exits, whether it succeeded or raised.
    """
    temp_dir.mkdir(parents=True, exist_ok=True)
    path = staging_path(temp_dir, upload.filename)
    try:
        async with aiofiles.open(path, 'wb') as staged:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                await staged.write(chunk)
        yield path
    finally:
        remove_file(path)
