"""Send one spoken utterance plus recent context to the hosted model."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Sequence

import openai
from openai import AsyncOpenAI

from models.session_models import CompletionResult, Exchange
from services.gemini.response_parser import extract_text, extract_usage
from services.voice.errors import GatewayError, GatewayResponseError, GatewayTimeoutError
from utils.media_validation import normalize_mime_type

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash-exp"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_TIMEOUT_SECONDS = 30.0


def audio_format_for_mime(mime_type: str) -> str:
    """Return the ``input_audio`` format name for an audio MIME type."""
    mime = normalize_mime_type(mime_type)
    mapping = {
        "audio/webm": "webm",
        "audio/wav": "wav",
        "audio/x-wav": "wav",
        "audio/mpeg": "mp3",
        "audio/mp3": "mp3",
        "audio/mp4": "mp4",
        "audio/aac": "aac",
        "audio/ogg": "ogg",
        "audio/opus": "ogg",
        "audio/flac": "flac",
    }
    if mime in mapping:
        return mapping[mime]
    raise ValueError(f"Unsupported or unknown audio MIME type: '{mime_type}'")


def build_messages(
    system_instruction: str,
    history: Sequence[Exchange],
    audio_b64: str,
    mime_type: str,
) -> List[Dict[str, Any]]:
    """Build the chat messages: instruction, prior exchanges oldest first, then the new audio."""
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_instruction}]
    for exchange in history:
        messages.append({"role": "user", "content": exchange.user_text})
        messages.append({"role": "assistant", "content": exchange.assistant_text})
    messages.append(
        {
            "role": "user",
            "content": [
                {
                    "type": "input_audio",
                    "input_audio": {"data": audio_b64, "format": audio_format_for_mime(mime_type)},
                }
            ],
        }
    )
    return messages


class CompletionGateway:
    """Request/response access to the AI provider's chat completions endpoint."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.8,
        top_p: float = 0.9,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.top_p = top_p

    async def complete(
        self,
        *,
        system_instruction: str,
        history: Sequence[Exchange],
        audio_b64: str,
        mime_type: str,
    ) -> CompletionResult:
        """Return the assistant reply for one utterance.

        Raises:
            GatewayTimeoutError: The provider did not answer within ``timeout``.
            GatewayResponseError: The provider answered without usable text.
            GatewayError: Any other transport or provider failure.
        """
        messages = build_messages(system_instruction, history, audio_b64, mime_type)
        start = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                top_p=self.top_p,
                timeout=self.timeout,
            )
        except openai.APITimeoutError as exc:
            LOGGER.error("Completion request timed out after %.1fs", self.timeout)
            raise GatewayTimeoutError(details=f"Request timed out after {self.timeout:.0f}s") from exc
        except openai.APIStatusError as exc:
            detail = getattr(exc, "message", None) or str(exc)
            LOGGER.error("Completion request failed with status %s: %s", exc.status_code, detail)
            raise GatewayError(details=detail) from exc
        except openai.APIConnectionError as exc:
            LOGGER.error("Completion request could not reach the provider: %s", exc)
            raise GatewayError(details=str(exc)) from exc

        text = extract_text(response)
        if not text:
            LOGGER.error("Completion response did not include text: %r", response)
            raise GatewayResponseError(details="Invalid response from completion API")

        usage = extract_usage(response)
        LOGGER.info(
            "Completion latency %.3fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return CompletionResult(text=text)
