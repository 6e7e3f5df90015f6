"""In-process ffmpeg adapter that turns a video into a compressed MP3 audio track."""

import asyncio
import logging
import re
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from .config import get_config
from .errors import TranscodeError
from .models import AudioArtifact, VideoFile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

INPUT_SLOT = "input.mp4"
OUTPUT_SLOT = "output.mp3"

EXTRACT_AUDIO_ARGS = [
    "-i",
    INPUT_SLOT,
    "-map",
    "0:a",  # audio of input 0 only
    "-b:a",
    "20k",
    "-acodec",
    "libmp3lame",
    OUTPUT_SLOT,
]

_DURATION_RE = re.compile(r"Duration: (\d+):(\d+):(\d+(?:\.\d+)?)")


class FFmpeg:
    """An ffmpeg runtime sandboxed in its own scratch directory.

    Callers exchange data through named file slots inside the scratch
    directory and never see host paths. Progress handlers receive an
    integer percentage while a command runs.
    """

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary
        self.workdir: Path | None = None
        self._progress_handlers: list[ProgressCallback] = []

    @property
    def loaded(self) -> bool:
        """True once `load()` succeeded and until `terminate()`."""
        return self.workdir is not None

    async def load(self) -> None:
        """Check that the ffmpeg binary runs and create the scratch directory."""
        if self.loaded:
            return
        if shutil.which(self.binary) is None:
            raise TranscodeError(f"ffmpeg binary not found: {self.binary}")
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await proc.communicate()
        except OSError as e:
            raise TranscodeError(f"Could not start ffmpeg: {e}") from e
        if proc.returncode != 0:
            raise TranscodeError(f"ffmpeg -version exited with code {proc.returncode}")

        self.workdir = Path(tempfile.mkdtemp(prefix="upload-ai-ffmpeg-"))
        version = stdout.decode(errors="replace").splitlines()[:1]
        logger.info("ffmpeg loaded (%s) in %s", version[0] if version else "unknown version", self.workdir)

    def terminate(self) -> None:
        """Drop the scratch directory; the engine must be loaded again before use."""
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)
            logger.info("ffmpeg terminated")
        self.workdir = None
        self._progress_handlers.clear()

    def on_progress(self, handler: ProgressCallback) -> None:
        """Register a handler for progress percentages."""
        self._progress_handlers.append(handler)

    def off_progress(self, handler: ProgressCallback) -> None:
        """Unregister a progress handler."""
        if handler in self._progress_handlers:
            self._progress_handlers.remove(handler)

    async def write_file(self, name: str, data: bytes) -> None:
        """Store `data` in the named slot."""
        await asyncio.to_thread(self._slot(name).write_bytes, data)

    async def read_file(self, name: str) -> bytes:
        """Return the contents of the named slot."""
        path = self._slot(name)
        if not path.exists():
            raise TranscodeError(f"ffmpeg produced no {name}")
        return await asyncio.to_thread(path.read_bytes)

    def delete_file(self, name: str) -> None:
        """Remove the named slot if present."""
        self._slot(name).unlink(missing_ok=True)

    async def exec(self, args: list[str]) -> None:
        """Run one ffmpeg command inside the scratch directory."""
        if not self.loaded:
            raise TranscodeError("ffmpeg is not loaded")
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                "-hide_banner",
                "-nostdin",
                "-y",
                "-nostats",
                "-progress",
                "pipe:1",
                *args,
                cwd=str(self.workdir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscodeError(f"Could not start ffmpeg: {e}") from e

        state: dict = {"duration": None, "log": []}
        try:
            await asyncio.gather(self._read_log(proc.stderr, state), self._read_progress(proc.stdout, state))
            returncode = await proc.wait()
        finally:
            # An abandoned run must not keep writing into the shared slots.
            if proc.returncode is None:
                logger.warning("Killing unfinished ffmpeg process %s", proc.pid)
                proc.kill()
                await proc.wait()

        if returncode != 0:
            reason = state["log"][-1] if state["log"] else "no output"
            raise TranscodeError(f"ffmpeg exited with code {returncode}: {reason}")
        self._emit(100)

    async def _read_log(self, stream: asyncio.StreamReader, state: dict) -> None:
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if not text:
                continue
            state["log"].append(text)
            match = _DURATION_RE.search(text)
            if match and state["duration"] is None:
                hours, minutes, seconds = match.groups()
                state["duration"] = int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    async def _read_progress(self, stream: asyncio.StreamReader, state: dict) -> None:
        while True:
            line = await stream.readline()
            if not line:
                break
            key, _, value = line.decode(errors="replace").strip().partition("=")
            if key == "out_time_us" and state["duration"] and value.isdigit():
                self._emit(round(int(value) / 1_000_000 / state["duration"] * 100))

    def _emit(self, percent: int) -> None:
        percent = max(0, min(percent, 100))
        for handler in list(self._progress_handlers):
            handler(percent)

    def _slot(self, name: str) -> Path:
        if self.workdir is None:
            raise TranscodeError("ffmpeg is not loaded")
        if Path(name).name != name:
            raise ValueError(f"Invalid slot name: {name!r}")
        return self.workdir / name


# Process-wide engine, loaded on first use and shared by every workflow run.
_ffmpeg: FFmpeg | None = None
_load_lock = asyncio.Lock()
_transcode_lock = asyncio.Lock()


async def get_ffmpeg() -> FFmpeg:
    """Return the shared engine, loading it once."""
    global _ffmpeg
    async with _load_lock:
        if _ffmpeg is None:
            engine = FFmpeg(get_config().FFMPEG_BINARY)
            await engine.load()
            _ffmpeg = engine
    return _ffmpeg


def reset_ffmpeg() -> None:
    """Terminate the shared engine and recreate the locks guarding it."""
    global _ffmpeg, _load_lock, _transcode_lock
    if _ffmpeg is not None:
        _ffmpeg.terminate()
    _ffmpeg = None
    _load_lock = asyncio.Lock()
    _transcode_lock = asyncio.Lock()


def _log_progress(percent: int) -> None:
    logger.debug("Convert progress: %d", percent)


async def convert_video_to_audio(
    video: VideoFile, on_progress: ProgressCallback | None = None
) -> AudioArtifact:
    """Extract the audio of `video` as a 20 kbit/s MP3.

    Only one conversion runs at a time across the process.
    """
    logger.info("Convert starting: %r", video)
    handlers = [_log_progress] + ([on_progress] if on_progress else [])

    async with _transcode_lock:
        ffmpeg = await get_ffmpeg()
        for handler in handlers:
            ffmpeg.on_progress(handler)
        try:
            await ffmpeg.write_file(INPUT_SLOT, video.data)
            await ffmpeg.exec(EXTRACT_AUDIO_ARGS)
            data = await ffmpeg.read_file(OUTPUT_SLOT)
        finally:
            for handler in handlers:
                ffmpeg.off_progress(handler)
            if ffmpeg.loaded:
                ffmpeg.delete_file(INPUT_SLOT)
                ffmpeg.delete_file(OUTPUT_SLOT)

    if not data:
        raise TranscodeError(f"No audio extracted from {video.name}")
    audio = AudioArtifact(data=data)
    logger.info("Convert finished: %r", audio)
    return audio
