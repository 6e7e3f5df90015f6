"""FastAPI backend storing uploaded audio, prompts and transcriptions."""

import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import get_config
from .db import Prompt, Video, get_session, init_db
from .errors import TranscriptionServiceError
from .logging_config import setup_logging
from .schemas import (
    CreateVideoResponse,
    PromptOut,
    TranscriptionRequest,
    TranscriptionResponse,
    VideoOut,
)
from .transcribe_service import TranscribeService

logger = logging.getLogger(__name__)

cfg = get_config()
transcribe_service = TranscribeService(
    region=cfg.AWS_REGION,
    language_code=cfg.LANGUAGE_CODE,
    vocabulary_name=cfg.VOCABULARY_NAME,
    ffmpeg_binary=cfg.FFMPEG_BINARY,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create missing tables at startup."""
    setup_logging()
    init_db()
    logger.info("Upload AI backend started")
    yield


app = FastAPI(title="Upload AI", lifespan=lifespan)


@app.get("/prompts", response_model=list[PromptOut])
def get_all_prompts(session: Session = Depends(get_session)) -> list[PromptOut]:
    """Return every stored prompt."""
    return [PromptOut.model_validate(prompt) for prompt in session.scalars(select(Prompt))]


@app.post("/videos", response_model=CreateVideoResponse)
async def upload_video(
    file: UploadFile | None = File(default=None),
    session: Session = Depends(get_session),
    settings: SimpleNamespace = Depends(get_config),
) -> dict:
    """Store an uploaded MP3 and create its video record."""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="Missing file input.")

    filename = Path(file.filename).name
    stem, extension = Path(filename).stem, Path(filename).suffix
    if extension.lower() != ".mp3":
        raise HTTPException(status_code=400, detail="Invalid input type, please upload a MP3.")

    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail="File too large.")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    destination = upload_dir / f"{stem}-{uuid.uuid4()}{extension}"
    destination.write_bytes(data)

    video = Video(name=filename, path=str(destination))
    session.add(video)
    session.commit()
    session.refresh(video)
    logger.info("Stored video %s at %s (%d bytes)", video.id, destination, len(data))
    return {"video": VideoOut.model_validate(video)}


@app.post("/videos/{video_id}/transcription", response_model=TranscriptionResponse)
async def create_transcription(
    video_id: str,
    body: TranscriptionRequest,
    session: Session = Depends(get_session),
) -> dict:
    """Transcribe a stored video's audio and keep the result on the record."""
    video = session.get(Video, video_id)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found.")

    try:
        transcription = await transcribe_service.transcribe_file(video.path)
    except TranscriptionServiceError as e:
        logger.error("Transcription of video %s failed: %s", video_id, e)
        raise HTTPException(status_code=502, detail="Transcription service failed.") from e

    video.transcription = transcription
    video.prompt = body.prompt
    session.commit()
    return {"transcription": transcription}
