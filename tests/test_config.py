import pytest
from pydantic import ValidationError as PydanticValidationError

from config import load_settings
from models.session_models import HistoryMode


def test_api_key_is_required():
    with pytest.raises(RuntimeError):
        load_settings({})


def test_defaults():
    settings = load_settings({"GEMINI_API_KEY": "secret"})
    assert settings.model == "gemini-2.0-flash-exp"
    assert settings.client_url == "http://localhost:3000"
    assert settings.port == 5000
    assert settings.session_max_age == 1_800
    conversation = settings.conversation
    assert conversation.request_timeout == 30
    assert conversation.idle_timeout == 120
    assert conversation.history_limit == 10
    assert conversation.context_exchanges == 3
    assert conversation.min_audio_bytes == 1_000
    assert conversation.max_audio_bytes == 5 * 1024 * 1024
    assert conversation.history_mode is HistoryMode.PLACEHOLDER
    assert conversation.expose_error_details is False


def test_overrides_from_environment():
    settings = load_settings(
        {
            "GEMINI_API_KEY": "secret",
            "GEMINI_MODEL": "gemini-1.5-flash",
            "PORT": "8080",
            "APP_ENV": "development",
            "IDLE_TIMEOUT_SECONDS": "60",
            "RESUME_DELAY_SECONDS": "0",
            "HISTORY_MODE": "transcript",
        }
    )
    assert settings.model == "gemini-1.5-flash"
    assert settings.port == 8080
    assert settings.conversation.idle_timeout == 60
    assert settings.conversation.resume_delay == 0
    assert settings.conversation.history_mode is HistoryMode.TRANSCRIPT
    assert settings.conversation.expose_error_details is True


def test_invalid_values_are_rejected():
    with pytest.raises(PydanticValidationError):
        load_settings({"GEMINI_API_KEY": "secret", "HISTORY_LIMIT": "0"})
