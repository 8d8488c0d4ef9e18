"""Runtime configuration read from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from models.session_models import HistoryMode
from services.gemini.completion_gateway import DEFAULT_BASE_URL, DEFAULT_MODEL

LOGGER = logging.getLogger(__name__)


class ConversationSettings(BaseModel):
    """Timing, size and history limits used by the turn controller."""

    request_timeout: float = Field(default=30.0, gt=0, description="Per-call provider timeout (s)")
    idle_timeout: float = Field(default=120.0, gt=0, description="End a conversation this long after the last reply (s)")
    greeting_delay: float = Field(default=1.0, ge=0, description="Delay between greeting and first listen (s)")
    resume_delay: float = Field(default=2.0, ge=0, description="Delay between end of speech and next listen (s)")
    history_limit: int = Field(default=10, ge=1, description="Exchanges retained per session")
    context_exchanges: int = Field(default=3, ge=0, description="Exchanges sent as context with each turn")
    min_audio_bytes: int = Field(default=1_000, ge=0)
    max_audio_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    history_mode: HistoryMode = HistoryMode.PLACEHOLDER
    expose_error_details: bool = False


class Settings(BaseModel):
    """Application settings."""

    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    client_url: str = "http://localhost:3000"
    port: int = 5000
    log_level: str = "INFO"
    app_env: str = "production"
    session_max_age: float = Field(default=1_800.0, gt=0)
    sweep_interval: float = Field(default=300.0, gt=0)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)


_ENV_KEYS = {
    "request_timeout": "REQUEST_TIMEOUT_SECONDS",
    "idle_timeout": "IDLE_TIMEOUT_SECONDS",
    "greeting_delay": "GREETING_DELAY_SECONDS",
    "resume_delay": "RESUME_DELAY_SECONDS",
    "history_limit": "HISTORY_LIMIT",
    "context_exchanges": "CONTEXT_EXCHANGES",
    "min_audio_bytes": "MIN_AUDIO_BYTES",
    "max_audio_bytes": "MAX_AUDIO_BYTES",
    "history_mode": "HISTORY_MODE",
}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``environ`` (defaults to ``os.environ`` after loading .env)."""
    if environ is None:
        load_dotenv()  # Load environment variables from .env file if present
        environ = os.environ

    api_key = environ.get("GEMINI_API_KEY")
    if not api_key:
        raise RuntimeError("GEMINI_API_KEY environment variable is not set")

    app_env = environ.get("APP_ENV") or environ.get("NODE_ENV") or "production"
    conversation = {field: environ[key] for field, key in _ENV_KEYS.items() if environ.get(key)}
    conversation["expose_error_details"] = app_env == "development"

    values = {
        "api_key": api_key,
        "model": environ.get("GEMINI_MODEL"),
        "base_url": environ.get("GEMINI_BASE_URL"),
        "client_url": environ.get("CLIENT_URL"),
        "port": environ.get("PORT"),
        "log_level": environ.get("LOG_LEVEL"),
        "session_max_age": environ.get("SESSION_MAX_AGE_SECONDS"),
        "sweep_interval": environ.get("SWEEP_INTERVAL_SECONDS"),
    }
    settings = Settings(
        app_env=app_env,
        conversation=ConversationSettings(**conversation),
        **{key: value for key, value in values.items() if value},
    )
    LOGGER.debug("Loaded settings for model %s", settings.model)
    return settings
