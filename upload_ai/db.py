"""SQLAlchemy models and session handling for the backend."""

import logging
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Engine, String, Text, create_engine, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .config import get_config

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Prompt(Base):
    __tablename__ = "prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String, nullable=False)
    template: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    path: Mapped[str] = mapped_column(String, nullable=False)
    transcription: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


DEFAULT_PROMPTS = [
    {
        "title": "YouTube title",
        "template": (
            "Write three catchy titles for the video below, up to 60 characters each, "
            "in the language of the transcription.\n\n"
            "Transcription:\n'''\n{transcription}\n'''"
        ),
    },
    {
        "title": "YouTube description",
        "template": (
            "Write a short description of the video below in first person, "
            "followed by a list of 3 to 10 lowercase hashtags.\n\n"
            "Transcription:\n'''\n{transcription}\n'''"
        ),
    },
]

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory
    if _engine is None:
        url = get_config().DATABASE_URL
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, connect_args=connect_args)
        _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
        logger.info("Database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def init_db(engine: Engine | None = None) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(engine or get_engine())


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    get_engine()
    with _session_factory() as session:
        yield session


def seed_prompts(session: Session) -> int:
    """Insert the default prompts into an empty table; returns how many were added."""
    if session.scalar(select(func.count()).select_from(Prompt)):
        return 0
    session.add_all(Prompt(**prompt) for prompt in DEFAULT_PROMPTS)
    session.commit()
    logger.info("Seeded %d prompts", len(DEFAULT_PROMPTS))
    return len(DEFAULT_PROMPTS)
