# voice_tasks/models.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _new_task_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_task_id)
    text = Column(Text, nullable=False) # Transcripts can run long
    # Set client-side with microseconds so rows inserted within one second keep their order
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
