"""Helpers to extract text from chat completion responses."""

from __future__ import annotations

from typing import Any, Dict, Optional


def _content_text(content: Any) -> str:
    """Flatten message content that may be a string or a list of parts."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        text = part.get("text") if isinstance(part, dict) else getattr(part, "text", None)
        if text:
            parts.append(text)
    return "".join(parts)


def extract_text(response: Any) -> str:
    """Return the stripped text of the first choice, or an empty string."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    if message is None:
        return ""
    return _content_text(getattr(message, "content", None)).strip()


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "prompt_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "completion_tokens", None) if usage else None,
    }
