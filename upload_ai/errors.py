"""Exceptions raised across the upload workflow and the backend."""


class UploadAIError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidVideoError(UploadAIError):
    """The selected file is not an accepted video container."""


class TranscodeError(UploadAIError):
    """The ffmpeg engine failed to load or to extract the audio track."""


class UploadError(UploadAIError):
    """Creating the video resource failed."""


class TranscriptionRequestError(UploadAIError):
    """Requesting the transcription of an uploaded video failed."""


class WorkflowStateError(UploadAIError):
    """An action was attempted in a workflow status that does not allow it."""


class WorkflowCancelledError(UploadAIError):
    """The workflow run was abandoned before it finished."""


class TranscriptionServiceError(UploadAIError):
    """The external transcription service could not transcribe the audio."""
