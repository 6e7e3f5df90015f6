"""HTTP client for the Upload AI backend."""

import logging
from typing import Any

import httpx

from .config import get_config
from .errors import TranscriptionRequestError, UploadAIError, UploadError
from .models import AudioArtifact

logger = logging.getLogger(__name__)


class UploadAIClient:
    """Single-attempt calls against the backend, one shared httpx.AsyncClient.

    Use it as an async context manager, or call `aclose()` when done.
    """

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or get_config().API_URL
        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport)

    async def __aenter__(self) -> "UploadAIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def create_video(self, audio: AudioArtifact) -> str:
        """Upload the audio as a new video resource and return its id."""
        files = {"file": (audio.name, audio.data, audio.content_type)}
        try:
            response = await self._client.post("/videos", files=files)
            response.raise_for_status()
            video_id = response.json()["video"]["id"]
        except httpx.HTTPError as e:
            raise UploadError(f"Video upload failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise UploadError(f"Unexpected response from POST /videos: {e!r}") from e

        logger.info("Video created: %s", video_id)
        return str(video_id)

    async def create_transcription(self, video_id: str, prompt: str | None = None) -> None:
        """Ask the backend to transcribe an uploaded video."""
        body = {} if prompt is None else {"prompt": prompt}
        try:
            response = await self._client.post(f"/videos/{video_id}/transcription", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TranscriptionRequestError(f"Transcription request for {video_id} failed: {e}") from e

        logger.info("Transcription generated for video %s", video_id)

    async def list_prompts(self) -> list[dict]:
        """Return every stored prompt record."""
        try:
            response = await self._client.get("/prompts")
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise UploadAIError(f"Listing prompts failed: {e}") from e
