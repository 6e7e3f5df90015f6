import pytest

from upload_ai.config import get_config, reset_config


@pytest.fixture
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestGetConfig:
    def test_defaults(self, fresh_config, monkeypatch):
        monkeypatch.delenv("UPLOAD_AI_API_URL", raising=False)
        monkeypatch.delenv("UPLOAD_AI_VOCABULARY", raising=False)

        cfg = get_config()

        assert cfg.API_URL == "http://localhost:3333"
        assert cfg.MAX_UPLOAD_SIZE == 25 * 1024 * 1024
        assert cfg.VOCABULARY_NAME is None

    def test_environment_overrides_after_reset(self, fresh_config, monkeypatch):
        monkeypatch.setenv("UPLOAD_AI_API_URL", "http://api.example:8080")
        monkeypatch.setenv("UPLOAD_AI_LOG_LEVEL", "debug")

        cfg = get_config()

        assert cfg.API_URL == "http://api.example:8080"
        assert cfg.LOG_LEVEL == "DEBUG"
        assert get_config() is cfg
