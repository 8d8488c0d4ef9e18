"""Validation helpers for recorded utterances sent over the websocket."""

import base64
import binascii

from services.voice.errors import AudioTooLargeError, AudioTooShortError, ValidationError

DEFAULT_MIN_AUDIO_BYTES = 1_000
DEFAULT_MAX_AUDIO_BYTES = 5 * 1024 * 1024

ALLOWED_AUDIO_TYPES = {
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/aac",
    "audio/ogg",
    "audio/opus",
    "audio/flac",
}


def normalize_mime_type(mime_type: str) -> str:
    """Strip MIME parameters (e.g. 'audio/webm;codecs=opus') and lowercase."""
    return (mime_type or "").lower().split(";", 1)[0].strip()


def validate_audio_type(mime_type: str) -> str:
    """Return the normalized MIME type or raise if it is not a supported audio format."""
    mime = normalize_mime_type(mime_type)
    if mime not in ALLOWED_AUDIO_TYPES:
        raise ValidationError(
            "Unsupported audio format. Please try a different browser.",
            details=f"Unsupported audio content type: {mime_type!r}",
        )
    return mime


def decode_audio_payload(
    audio_b64: str,
    mime_type: str,
    *,
    min_bytes: int = DEFAULT_MIN_AUDIO_BYTES,
    max_bytes: int = DEFAULT_MAX_AUDIO_BYTES,
) -> bytes:
    """Decode and size-check a base64 utterance.

    Undersized payloads are treated as silence or noise and oversized ones as
    recordings that ran too long; both are rejected before any provider call.
    """
    if not audio_b64:
        raise ValidationError("No audio detected. Please try speaking louder.", details="Empty audio payload")
    validate_audio_type(mime_type)
    try:
        audio_bytes = base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Could not read the recorded audio.", details=str(exc)) from exc
    if len(audio_bytes) > max_bytes:
        raise AudioTooLargeError(details=f"{len(audio_bytes)} bytes exceeds {max_bytes}")
    if len(audio_bytes) < min_bytes:
        raise AudioTooShortError(details=f"{len(audio_bytes)} bytes is below {min_bytes}")
    return audio_bytes
