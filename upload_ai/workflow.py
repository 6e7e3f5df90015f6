"""Controller sequencing one video through conversion, upload and transcription."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

from .api_client import UploadAIClient
from .errors import (
    TranscodeError,
    TranscriptionRequestError,
    UploadAIError,
    UploadError,
    WorkflowCancelledError,
    WorkflowStateError,
)
from .models import STATUS_ORDER, AudioArtifact, VideoFile, WorkflowFailure, WorkflowStatus
from .transcoder import ProgressCallback, convert_video_to_audio

logger = logging.getLogger(__name__)

StatusListener = Callable[[WorkflowStatus], None]
Converter = Callable[[VideoFile, ProgressCallback | None], Awaitable[AudioArtifact]]


class UploadWorkflow:
    """Owns the status of the workflow and runs its stages in order.

    A run moves waiting -> converting -> uploading -> generating -> success.
    A failing stage moves the status to ERROR, records the failure and
    re-raises; `stage` keeps the furthest stage the run reached.
    """

    def __init__(
        self,
        client: UploadAIClient,
        convert: Converter = convert_video_to_audio,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.client = client
        self._convert = convert
        self._on_progress = on_progress
        self._listeners: list[StatusListener] = []

        self.video: VideoFile | None = None
        self.status = WorkflowStatus.WAITING
        self.stage = WorkflowStatus.WAITING
        self.failure: WorkflowFailure | None = None
        self.video_id: str | None = None

    @property
    def busy(self) -> bool:
        """True while a run is in flight."""
        return self.status.in_flight

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Call `listener` on every status change; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def select_video(self, video: VideoFile) -> None:
        """Use `video` for the next submission; rejected while busy."""
        if self.busy:
            raise WorkflowStateError(f"Cannot select a video while {self.status.value}")
        self.video = video

    def reset(self) -> None:
        """Make a finished or failed workflow accept a new submission."""
        if self.busy:
            raise WorkflowStateError(f"Cannot reset while {self.status.value}")
        self.stage = WorkflowStatus.WAITING
        self.failure = None
        self.video_id = None
        self._set_status(WorkflowStatus.WAITING)

    async def submit(self, prompt: str | None = None) -> str | None:
        """Run the whole workflow for the selected video.

        Returns the server-issued video id, or None when no video is
        selected. Raises the failing stage's error.
        """
        if self.video is None:
            logger.debug("Submit ignored: no video selected")
            return None
        if self.status is not WorkflowStatus.WAITING:
            raise WorkflowStateError(f"Cannot submit while {self.status.value}")

        video = self.video
        with self._stage(WorkflowStatus.CONVERTING, TranscodeError):
            audio = await self._convert(video, self._on_progress)

        with self._stage(WorkflowStatus.UPLOADING, UploadError):
            video_id = await self.client.create_video(audio)
        del audio
        self.video_id = video_id

        with self._stage(WorkflowStatus.GENERATING, TranscriptionRequestError):
            await self.client.create_transcription(video_id, prompt)

        self._advance(WorkflowStatus.SUCCESS)
        return video_id

    @contextmanager
    def _stage(self, status: WorkflowStatus, error_type: type[UploadAIError]) -> Iterator[None]:
        self._advance(status)
        try:
            yield
        except error_type as e:
            self._fail(e)
            raise
        except asyncio.CancelledError:
            self._fail(WorkflowCancelledError(f"Run abandoned while {status.value}"))
            raise
        except Exception as e:
            error = error_type(f"{type(e).__name__}: {e}")
            self._fail(error)
            raise error from e

    def _advance(self, status: WorkflowStatus) -> None:
        expected = STATUS_ORDER[STATUS_ORDER.index(self.stage) + 1]
        if status is not expected:
            raise WorkflowStateError(f"Illegal transition {self.stage.value} -> {status.value}")
        self.stage = status
        logger.info("Workflow %s", status.value)
        self._set_status(status)

    def _fail(self, error: UploadAIError) -> None:
        self.failure = WorkflowFailure(stage=self.stage, error=error)
        logger.warning("Workflow failed while %s: %s", self.stage.value, self.failure.message)
        self._set_status(WorkflowStatus.ERROR)

    def _set_status(self, status: WorkflowStatus) -> None:
        self.status = status
        for listener in list(self._listeners):
            listener(status)
