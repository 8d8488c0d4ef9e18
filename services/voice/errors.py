"""Error taxonomy for voice conversations.

Each error carries a user-facing ``message`` that is safe to send to the
browser and optional ``details`` meant for diagnostics only.
"""

from __future__ import annotations

from typing import Optional

GENERIC_GATEWAY_MESSAGE = "Sorry, I encountered an error processing your request. Please try again."


class VoiceChatError(Exception):
	"""Base class for errors surfaced to the client as ``error`` events."""

	default_message = "Something went wrong. Please try again."

	def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
		self.message = message or self.default_message
		self.details = details
		super().__init__(self.message)


class ValidationError(VoiceChatError):
	"""An inbound payload was rejected locally."""

	default_message = "Invalid request."


class AudioTooShortError(ValidationError):
	default_message = "Audio too quiet. Please speak louder."


class AudioTooLargeError(ValidationError):
	default_message = "Audio file too large. Please record a shorter message."


class SessionError(VoiceChatError):
	default_message = "No active conversation found."


class SessionNotFoundError(SessionError):
	pass


class SessionExistsError(SessionError):
	default_message = "A conversation is already in progress."


class TurnInProgressError(SessionError):
	default_message = "Still working on your last message. Please wait for the reply."


class GatewayError(VoiceChatError):
	"""The AI provider call failed; the user sees a generic apology."""

	default_message = GENERIC_GATEWAY_MESSAGE


class GatewayTimeoutError(GatewayError):
	pass


class GatewayResponseError(GatewayError):
	pass


class TransportError(VoiceChatError):
	"""The client channel closed while we were sending to it."""

	default_message = "Connection closed."
