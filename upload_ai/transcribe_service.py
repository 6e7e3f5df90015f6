"""Transcription of stored audio files through Amazon Transcribe streaming."""

import asyncio
import logging
from collections.abc import AsyncGenerator

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent

from .errors import TranscriptionServiceError

logger = logging.getLogger(__name__)

SAMPLE_RATE_HZ = 16000
CHUNK_SIZE = 8192


class TranscriptCollector(TranscriptResultStreamHandler):
    """Keeps the best alternative of every final result, in order."""

    def __init__(self, output_stream) -> None:
        super().__init__(output_stream)
        self.segments: list[str] = []

    async def handle_transcript_event(self, transcript_event: TranscriptEvent) -> None:
        """Record the first alternative of each final result."""
        for result in transcript_event.transcript.results:
            if result.is_partial or not result.alternatives:
                continue
            self.segments.append(result.alternatives[0].transcript)

    @property
    def text(self) -> str:
        """Collected segments joined into one transcript."""
        return " ".join(segment.strip() for segment in self.segments if segment.strip())


class TranscribeService:
    """Streams audio to Amazon Transcribe and returns the final transcript."""

    def __init__(
        self,
        region: str = "eu-west-1",
        language_code: str = "pt-BR",
        vocabulary_name: str | None = None,
        ffmpeg_binary: str = "ffmpeg",
    ) -> None:
        # The client will automatically use AWS_PROFILE from the environment
        self.client = TranscribeStreamingClient(region=region)
        self.language_code = language_code
        self.vocabulary_name = vocabulary_name
        self.ffmpeg_binary = ffmpeg_binary

    async def transcribe_file(self, path: str) -> str:
        """Decode `path` to PCM and transcribe it."""
        logger.info("Transcribing file: %s", path)
        try:
            text = await self.transcribe(self.pcm_chunks(path))
        except TranscriptionServiceError:
            raise
        except Exception as e:
            raise TranscriptionServiceError(f"Amazon Transcribe failed for {path}: {e}") from e
        logger.info("Transcribed %s (%d characters)", path, len(text))
        return text

    async def transcribe(self, audio_chunks: AsyncGenerator[bytes, None]) -> str:
        """Send 16 kHz mono PCM chunks and collect every final transcript."""
        options = {}
        if self.vocabulary_name:
            options["vocabulary_name"] = self.vocabulary_name
        stream = await self.client.start_stream_transcription(
            language_code=self.language_code,
            media_sample_rate_hz=SAMPLE_RATE_HZ,
            media_encoding="pcm",
            **options,
        )

        async def send_audio():
            try:
                async for chunk in audio_chunks:
                    await stream.input_stream.send_audio_event(audio_chunk=chunk)
            finally:
                await audio_chunks.aclose()
            await stream.input_stream.end_stream()

        collector = TranscriptCollector(stream.output_stream)
        await asyncio.gather(send_audio(), collector.handle_events())
        return collector.text

    async def pcm_chunks(self, path: str) -> AsyncGenerator[bytes, None]:
        """Convert an audio file to PCM 16bit 16kHz mono via ffmpeg."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.ffmpeg_binary,
                "-nostdin",
                "-i",
                path,
                "-f",
                "s16le",
                "-acodec",
                "pcm_s16le",
                "-ar",
                str(SAMPLE_RATE_HZ),
                "-ac",
                "1",
                "-",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise TranscriptionServiceError(f"Could not start ffmpeg: {e}") from e

        try:
            while True:
                chunk = await proc.stdout.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
            returncode = await proc.wait()
        finally:
            if proc.returncode is None:
                logger.warning("Killing unfinished ffmpeg decoder for %s", path)
                proc.kill()
                await proc.wait()

        if returncode != 0:
            raise TranscriptionServiceError(f"ffmpeg could not decode {path} (exit code {returncode})")
