"""Request and response bodies of the backend routes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PromptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    template: str


class VideoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime


class CreateVideoResponse(BaseModel):
    video: VideoOut


class TranscriptionRequest(BaseModel):
    prompt: str | None = Field(default=None, max_length=2000)


class TranscriptionResponse(BaseModel):
    transcription: str
