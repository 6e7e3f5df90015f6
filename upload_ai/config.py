"""
Centralized configuration loader.

Values come from environment variables, falling back to local development
defaults, and are merged into a single settings namespace.

Usage:
    from upload_ai.config import get_config
    cfg = get_config()
    print(cfg.API_URL)
"""

import os
from types import SimpleNamespace

MAX_UPLOAD_SIZE = 25 * 1024 * 1024  # 25 MiB

_config_cache: SimpleNamespace | None = None


def _load() -> SimpleNamespace:
    return SimpleNamespace(
        # Client side
        API_URL=os.getenv("UPLOAD_AI_API_URL", "http://localhost:3333"),
        FFMPEG_BINARY=os.getenv("UPLOAD_AI_FFMPEG", "ffmpeg"),
        # Backend storage
        DATABASE_URL=os.getenv("UPLOAD_AI_DATABASE_URL", "sqlite:///./upload_ai.db"),
        UPLOAD_DIR=os.getenv("UPLOAD_AI_UPLOAD_DIR", "./tmp"),
        MAX_UPLOAD_SIZE=MAX_UPLOAD_SIZE,
        # Amazon Transcribe
        AWS_REGION=os.getenv("AWS_REGION", "eu-west-1"),
        LANGUAGE_CODE=os.getenv("UPLOAD_AI_LANGUAGE_CODE", "pt-BR"),
        VOCABULARY_NAME=os.getenv("UPLOAD_AI_VOCABULARY") or None,
        # Logging
        LOG_LEVEL=os.getenv("UPLOAD_AI_LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("UPLOAD_AI_LOG_FILE") or None,
        LOG_MAX_BYTES=5 * 1024 * 1024,
        LOG_BACKUP_COUNT=5,
    )


def get_config() -> SimpleNamespace:
    """Return the cached configuration namespace, loading it on first use."""
    global _config_cache
    if _config_cache is None:
        _config_cache = _load()
    return _config_cache


def reset_config() -> None:
    """Forget the cached configuration so the environment is read again."""
    global _config_cache
    _config_cache = None
