# voice_tasks/main.py

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import APIRouter, FastAPI, Depends, UploadFile, File, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voice_tasks.config import AppConfig, load_config
from voice_tasks.database import create_engine, create_session_factory, get_session, init_models
from voice_tasks.log import setup_logging
from voice_tasks.models import Task
from voice_tasks.transcription import SpeechTranscriber, TranscriptionError, create_transcriber
from voice_tasks.utils import staged_upload

logger = logging.getLogger(__name__)


# --- Pydantic Models ---
class TaskCreate(BaseModel):
    text: str = Field(min_length=1)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    created_at: datetime = Field(serialization_alias="createdAt")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Dependencies ---
def get_transcriber(request: Request) -> SpeechTranscriber:
    return request.app.state.transcriber


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


# --- API Endpoints ---
router = APIRouter(prefix="/api")


@router.get("/tasks", response_model=list[TaskOut])
async def list_tasks(session: AsyncSession = Depends(get_session)):
    try:
        result = await session.execute(select(Task).order_by(Task.created_at))
        return result.scalars().all()
    except Exception:
        logger.exception("Error fetching tasks")
        return error_response(500, "Failed to fetch tasks")


@router.post("/tasks", response_model=TaskOut, status_code=201)
async def create_task(task_data: TaskCreate, session: AsyncSession = Depends(get_session)):
    try:
        new_task = Task(text=task_data.text)
        session.add(new_task)
        await session.commit()
        await session.refresh(new_task)
        return new_task
    except Exception:
        logger.exception("Error creating task")
        return error_response(500, "Failed to create task")


@router.post("/transcribe", response_model=TaskOut, status_code=201)
async def transcribe_audio(
    audio: UploadFile | None = File(None),
    session: AsyncSession = Depends(get_session),
    transcriber: SpeechTranscriber = Depends(get_transcriber),
    config: AppConfig = Depends(get_config),
):
    # Browsers send an empty, nameless part when no file was picked
    if audio is None or not audio.filename:
        return error_response(400, "No audio file provided")

    logger.info(
        "📥 Received Audio",
        extra={"file_name": audio.filename, "content_type": audio.content_type, "size": audio.size},
    )

    try:
        async with staged_upload(audio, config.temp_dir) as staged_path:
            transcript = await transcriber.transcribe(staged_path)

        new_task = Task(text=transcript)
        session.add(new_task)
        await session.commit()
        await session.refresh(new_task)
        logger.info("✅ Transcript saved", extra={"task_id": new_task.id})
        return new_task
    except TranscriptionError as e:
        logger.error(f"❌ Transcription error: {e}", exc_info=e.cause)
        return error_response(500, "Transcription failed")
    except Exception:
        logger.exception("❌ Failed to process audio")
        return error_response(500, "Failed to process audio")


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, session: AsyncSession = Depends(get_session)):
    try:
        task = await session.get(Task, task_id)
        if task is None:
            return error_response(404, "Task not found")

        await session.delete(task)
        await session.commit()
        return {"message": "Task deleted"}
    except Exception:
        logger.exception(f"Error deleting task {task_id}")
        return error_response(500, "Failed to delete task")


# --- App Initialization ---
def create_app(config: AppConfig | None = None, transcriber: SpeechTranscriber | None = None) -> FastAPI:
    """
    Builds the application.

    Configuration is loaded from the environment when not given, which raises
    if the speech API key or the database URL is missing. The database is
    reached during startup, so an unreachable one stops the server before it
    accepts requests. A `transcriber` passed in replaces the Google client.
    """
    config = config or load_config()
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(config.database_url)
        try:
            await init_models(engine)
        except Exception:
            logger.exception("❌ Database connection error")
            await engine.dispose()
            raise

        config.temp_dir.mkdir(parents=True, exist_ok=True)
        app.state.session_factory = create_session_factory(engine)
        app.state.transcriber = transcriber or create_transcriber(config.transcription)
        logger.info("✅ Server startup complete.")
        yield
        logger.info("--- Server shutting down ---")
        await engine.dispose()

    app = FastAPI(title="Voice Tasks API", lifespan=lifespan)
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url] if config.frontend_url != "*" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected invalid request", extra={"path": request.url.path, "errors": str(exc.errors())})
        return error_response(400, "Invalid request")

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    app.include_router(router)
    return app


def run() -> None:
    config = load_config()
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    run()
