import pytest
from unittest.mock import AsyncMock, patch

from upload_ai.cli import main, parse_arguments


class TestParseArguments:
    def test_upload_arguments(self):
        args = parse_arguments(["upload", "talk.mp4", "--prompt", "python, asyncio"])

        assert args.command == "upload"
        assert args.video == "talk.mp4"
        assert args.prompt == "python, asyncio"
        assert args.api_url is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])


class TestMain:
    def test_rejects_non_mp4(self, tmp_path, capsys):
        document = tmp_path / "notes.txt"
        document.write_text("not a video")

        assert main(["upload", str(document)]) == 1
        assert "expected video/mp4" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["upload", str(tmp_path / "missing.mp4")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_upload_runs_workflow(self, tmp_path):
        video = tmp_path / "talk.mp4"
        video.write_bytes(b"mp4")

        with patch("upload_ai.cli.run_upload", new=AsyncMock(return_value=0)) as run_upload:
            assert main(["upload", str(video), "--prompt", "k1"]) == 0

        sent_video, prompt, api_url = run_upload.await_args.args
        assert sent_video.name == "talk.mp4"
        assert prompt == "k1"
        assert api_url is None
