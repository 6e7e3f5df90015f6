import asyncio
import sys
import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root is in sys.path so `from upload_ai.main import app`
# works without installing the package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from upload_ai import transcoder  # noqa: E402
from upload_ai.config import get_config  # noqa: E402
from upload_ai.db import Base, get_session  # noqa: E402
from upload_ai.main import app  # noqa: E402


# ---------------------------------------------------------------------------
# Fake ffmpeg subprocesses
# ---------------------------------------------------------------------------

class FakeStream:
    def __init__(self, lines=()):
        self._lines = list(lines)

    async def readline(self):
        return self._lines.pop(0) if self._lines else b""


class FakeProcess:
    def __init__(self, stdout=(), stderr=(), returncode=0):
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self.returncode = returncode

    async def communicate(self):
        return b"ffmpeg version 6.1 Copyright (c) 2000-2023\n", b""

    async def wait(self):
        return self.returncode


class HangingProcess:
    """A process that produces nothing until it is killed."""

    pid = 4242

    def __init__(self):
        self.returncode = None
        self.killed = asyncio.Event()
        self.stdout = self
        self.stderr = self

    async def readline(self):
        await self.killed.wait()
        return b""

    def kill(self):
        self.returncode = -9
        self.killed.set()

    async def wait(self):
        await self.killed.wait()
        return self.returncode


class FakeFFmpeg:
    """Stands in for the ffmpeg binary; records every command it receives."""

    def __init__(self, audio=b"ID3-fake-mp3", returncode=0, stderr=None, available=True, hang=False):
        self.audio = audio
        self.returncode = returncode
        self.stderr = stderr
        self.available = available
        self.hang = hang
        self.processes = []
        self.calls = []

    async def spawn(self, *args, **kwargs):
        self.calls.append(args)
        if "-version" in args:
            return FakeProcess()
        if self.hang:
            self.processes.append(HangingProcess())
            return self.processes[-1]
        if self.returncode == 0:
            Path(kwargs["cwd"], transcoder.OUTPUT_SLOT).write_bytes(self.audio)
        stderr = self.stderr or [b"  Duration: 00:00:05.00, start: 0.000000, bitrate: 512 kb/s\n"]
        stdout = [b"out_time_us=2500000\n", b"out_time_us=5000000\n", b"progress=end\n"]
        return FakeProcess(stdout=stdout, stderr=stderr, returncode=self.returncode)

    @property
    def exec_calls(self):
        return [call for call in self.calls if "-version" not in call]


@pytest.fixture
def fake_ffmpeg():
    """Patch subprocess creation so the transcoder talks to a FakeFFmpeg."""
    fake = FakeFFmpeg()
    transcoder.reset_ffmpeg()
    with patch("upload_ai.transcoder.shutil.which", side_effect=lambda name: f"/usr/bin/{name}" if fake.available else None), \
         patch("upload_ai.transcoder.asyncio.create_subprocess_exec", side_effect=fake.spawn):
        yield fake
    transcoder.reset_ffmpeg()


# ---------------------------------------------------------------------------
# Backend wiring
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    return SimpleNamespace(**{**vars(get_config()), "UPLOAD_DIR": str(tmp_path / "uploads")})


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def backend(settings, db_session_factory):
    def override_session():
        with db_session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_config] = lambda: settings
    yield app
    app.dependency_overrides.clear()
