"""Command line entry point: upload a video from the terminal or run the backend."""

import argparse
import asyncio
import logging
import sys

from sqlalchemy.orm import Session

from . import __version__
from .api_client import UploadAIClient
from .db import get_engine, init_db, seed_prompts
from .errors import UploadAIError
from .form import VideoInputForm, status_label
from .logging_config import setup_logging
from .models import VideoFile
from .transcoder import reset_ffmpeg
from .workflow import UploadWorkflow

logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="upload-ai",
        description="Upload AI - extract a video's audio, upload it and request its transcription",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s upload talk.mp4 --prompt "python, asyncio"
  %(prog)s serve --port 3333
  %(prog)s prompts
        """,
    )
    parser.add_argument("--version", action="version", version=f"Upload AI {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Convert, upload and transcribe a video")
    upload.add_argument("video", help="Path to an MP4 video")
    upload.add_argument("--prompt", default="", help="Keywords mentioned in the video, comma separated")
    upload.add_argument("--api-url", help="Backend base URL")

    serve = commands.add_parser("serve", help="Run the backend")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3333)

    prompts = commands.add_parser("prompts", help="List stored prompts")
    prompts.add_argument("--api-url", help="Backend base URL")

    commands.add_parser("seed", help="Create tables and insert the default prompts")

    return parser.parse_args(argv)


async def run_upload(video: VideoFile, prompt: str, api_url: str | None = None) -> int:
    """Drive one workflow run through the form, printing each status."""
    async with UploadAIClient(api_url) as client:
        workflow = UploadWorkflow(client)
        uploaded: list[str] = []
        form = VideoInputForm(workflow, on_video_uploaded=uploaded.append)
        workflow.subscribe(lambda status: print(status_label(status), flush=True))

        form.handle_file_selected([video])
        form.prompt = prompt
        try:
            await form.handle_submit()
        finally:
            reset_ffmpeg()

    if form.error_message:
        print(f"Error: {form.error_message}", file=sys.stderr)
        return 1
    print(f"Video id: {uploaded[0]}")
    return 0


async def run_prompts(api_url: str | None = None) -> int:
    """Print the id and title of every stored prompt."""
    async with UploadAIClient(api_url) as client:
        for prompt in await client.list_prompts():
            print(f"{prompt['id']}  {prompt['title']}")
    return 0


def run_seed() -> int:
    """Create the tables and insert the default prompts."""
    init_db()
    with Session(get_engine()) as session:
        added = seed_prompts(session)
    print(f"Added {added} prompts")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the selected command and return its exit code."""
    args = parse_arguments(argv)
    setup_logging("DEBUG" if args.debug else None)

    try:
        if args.command == "upload":
            video = VideoFile.from_path(args.video)
            return asyncio.run(run_upload(video, args.prompt, args.api_url))
        if args.command == "prompts":
            return asyncio.run(run_prompts(args.api_url))
        if args.command == "seed":
            return run_seed()
        if args.command == "serve":
            import uvicorn

            uvicorn.run("upload_ai.main:app", host=args.host, port=args.port)
            return 0
    except (UploadAIError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
