"""View model of the video input form, independent of any rendering toolkit."""

import asyncio
import base64
import logging
from collections.abc import Callable, Sequence
from typing import assert_never

from .errors import UploadAIError
from .models import VideoFile, WorkflowStatus
from .workflow import UploadWorkflow

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = "Include keywords mentioned in the video, separated by commas (,)"


def status_label(status: WorkflowStatus) -> str:
    """Text of the submit button for a given status."""
    match status:
        case WorkflowStatus.WAITING:
            return "Upload video"
        case WorkflowStatus.CONVERTING:
            return "Converting..."
        case WorkflowStatus.UPLOADING:
            return "Uploading..."
        case WorkflowStatus.GENERATING:
            return "Transcribing..."
        case WorkflowStatus.SUCCESS:
            return "Success!"
        case WorkflowStatus.ERROR:
            return "Failed"
        case _:
            assert_never(status)


class VideoInputForm:
    """Binds file selection and submission to an UploadWorkflow.

    `on_video_uploaded` is called once with the new video id when a run
    succeeds. Failures are kept in `error_message` for display.
    """

    def __init__(self, workflow: UploadWorkflow, on_video_uploaded: Callable[[str], None]) -> None:
        self.workflow = workflow
        self.on_video_uploaded = on_video_uploaded
        self.prompt = ""
        self.error_message: str | None = None
        self._preview_url: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def status(self) -> WorkflowStatus:
        """Current status of the bound workflow."""
        return self.workflow.status

    @property
    def file_input_disabled(self) -> bool:
        """File selection is locked while a run is in flight."""
        return self.workflow.busy

    @property
    def prompt_disabled(self) -> bool:
        """The prompt is editable only before submission."""
        return self.status is not WorkflowStatus.WAITING

    @property
    def submit_disabled(self) -> bool:
        """Submit needs a selected video and the waiting status."""
        return self.status is not WorkflowStatus.WAITING or self.workflow.video is None

    @property
    def button_label(self) -> str:
        """Label of the submit button for the current status."""
        return status_label(self.status)

    @property
    def preview_url(self) -> str | None:
        """data: URL of the selected video, computed once per selection."""
        video = self.workflow.video
        if video is None:
            return None
        if self._preview_url is None:
            encoded = base64.b64encode(video.data).decode("ascii")
            self._preview_url = f"data:{video.content_type};base64,{encoded}"
        return self._preview_url

    def handle_file_selected(self, files: Sequence[VideoFile] | None) -> None:
        """Select the first of `files`; an empty selection is ignored."""
        if not files:
            return
        self.workflow.select_video(files[0])
        self._preview_url = None

    async def handle_submit(self) -> str | None:
        """Submit the selected video with the current prompt text."""
        prompt = self.prompt.strip() or None
        self.error_message = None
        self._task = asyncio.ensure_future(self.workflow.submit(prompt))
        try:
            video_id = await self._task
        except UploadAIError as e:
            self.error_message = str(e)
            logger.warning("Upload failed: %s", e)
            return None
        finally:
            self._task = None

        if video_id is not None:
            self.on_video_uploaded(video_id)
        return video_id

    def close(self) -> None:
        """Abandon an in-flight run, e.g. when the host view goes away."""
        if self._task is not None and not self._task.done():
            logger.info("Form closed while %s, cancelling run", self.status.value)
            self._task.cancel()

    def render(self) -> str:
        """Plain-text rendering of the form for terminal hosts."""
        lines = [
            f"video: {self.workflow.video.name if self.workflow.video else '(select a video)'}",
            f"prompt: {self.prompt or PROMPT_PLACEHOLDER}",
            f"[{self.button_label}]" + (" (disabled)" if self.submit_disabled else ""),
        ]
        if self.error_message:
            lines.append(f"error: {self.error_message}")
        return "\n".join(lines)
