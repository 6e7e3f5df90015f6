"""Data carried through one workflow run: the video, its audio and the run status."""

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import InvalidVideoError, UploadAIError

VIDEO_CONTENT_TYPE = "video/mp4"
AUDIO_CONTENT_TYPE = "audio/mpeg"


@dataclass(frozen=True)
class VideoFile:
    """A selected video: raw bytes plus the declared media type."""

    name: str
    data: bytes
    content_type: str = VIDEO_CONTENT_TYPE

    def __post_init__(self) -> None:
        if self.content_type != VIDEO_CONTENT_TYPE:
            raise InvalidVideoError(
                f"{self.name}: expected {VIDEO_CONTENT_TYPE}, got {self.content_type}"
            )

    @classmethod
    def from_path(cls, path: str | Path) -> "VideoFile":
        """Read a video from disk, guessing its media type from the name."""
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            data=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    def __repr__(self) -> str:
        return f"VideoFile(name={self.name!r}, size={len(self.data)}, content_type={self.content_type!r})"


@dataclass(frozen=True)
class AudioArtifact:
    """Compressed audio extracted from a VideoFile, ready for upload."""

    data: bytes
    name: str = "audio.mp3"
    content_type: str = AUDIO_CONTENT_TYPE

    def __repr__(self) -> str:
        return f"AudioArtifact(name={self.name!r}, size={len(self.data)})"


class WorkflowStatus(str, Enum):
    """Closed set of statuses a workflow run can be in."""

    WAITING = "waiting"
    CONVERTING = "converting"
    UPLOADING = "uploading"
    GENERATING = "generating"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def in_flight(self) -> bool:
        """True while a stage of the run is executing."""
        return self in IN_FLIGHT


# Forward order of a successful run; ERROR may follow any in-flight status.
STATUS_ORDER = (
    WorkflowStatus.WAITING,
    WorkflowStatus.CONVERTING,
    WorkflowStatus.UPLOADING,
    WorkflowStatus.GENERATING,
    WorkflowStatus.SUCCESS,
)

IN_FLIGHT = frozenset(
    {WorkflowStatus.CONVERTING, WorkflowStatus.UPLOADING, WorkflowStatus.GENERATING}
)


@dataclass(frozen=True)
class WorkflowFailure:
    """Why a run ended in the ERROR status and at which stage."""

    stage: WorkflowStatus
    error: UploadAIError

    @property
    def message(self) -> str:
        """User-facing description of the failure."""
        return str(self.error) or type(self.error).__name__
