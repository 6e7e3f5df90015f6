import pytest
from unittest.mock import AsyncMock, patch

from httpx import ASGITransport

from upload_ai.api_client import UploadAIClient
from upload_ai.db import Video
from upload_ai.form import VideoInputForm
from upload_ai.models import VideoFile, WorkflowStatus
from upload_ai.workflow import UploadWorkflow


class TestVideoToTranscription:
    @pytest.mark.asyncio
    async def test_five_second_clip_with_prompt(self, fake_ffmpeg, backend, db_session_factory):
        transcribe = AsyncMock(return_value="keyword1 and keyword2 in a short clip")
        statuses = []
        uploaded = []

        with patch("upload_ai.main.transcribe_service.transcribe_file", new=transcribe):
            async with UploadAIClient("http://test", transport=ASGITransport(app=backend)) as client:
                workflow = UploadWorkflow(client)
                workflow.subscribe(statuses.append)
                form = VideoInputForm(workflow, on_video_uploaded=uploaded.append)

                form.handle_file_selected([VideoFile(name="clip.mp4", data=b"five-second-mp4")])
                form.prompt = "keyword1, keyword2"
                video_id = await form.handle_submit()

        assert form.error_message is None
        assert form.status is WorkflowStatus.SUCCESS
        assert statuses == [
            WorkflowStatus.CONVERTING,
            WorkflowStatus.UPLOADING,
            WorkflowStatus.GENERATING,
            WorkflowStatus.SUCCESS,
        ]
        assert uploaded == [video_id]

        with db_session_factory() as session:
            video = session.get(Video, video_id)
            assert video.prompt == "keyword1, keyword2"
            assert video.transcription == "keyword1 and keyword2 in a short clip"
            with open(video.path, "rb") as f:
                assert f.read() == fake_ffmpeg.audio
        transcribe.assert_awaited_once_with(video.path)

    @pytest.mark.asyncio
    async def test_backend_rejection_stops_before_transcription(self, fake_ffmpeg, backend, settings):
        settings.MAX_UPLOAD_SIZE = 1
        transcribe = AsyncMock()

        with patch("upload_ai.main.transcribe_service.transcribe_file", new=transcribe):
            async with UploadAIClient("http://test", transport=ASGITransport(app=backend)) as client:
                workflow = UploadWorkflow(client)
                form = VideoInputForm(workflow, on_video_uploaded=lambda video_id: None)
                form.handle_file_selected([VideoFile(name="clip.mp4", data=b"mp4")])
                await form.handle_submit()

        assert form.status is WorkflowStatus.ERROR
        assert workflow.failure.stage is WorkflowStatus.UPLOADING
        assert "413" in form.error_message
        transcribe.assert_not_awaited()
