"""Websocket message schemas exchanged with the browser client."""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from services.voice.errors import ValidationError


class WireModel(BaseModel):
	"""Base model using camelCase names on the wire."""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	def to_wire(self) -> Dict[str, Any]:
		return self.model_dump(by_alias=True, exclude_none=True)


# Client -> server


class StartConversation(WireModel):
	type: Literal["startConversation"] = "startConversation"
	capture_ready: bool = True


class SendAudio(WireModel):
	type: Literal["sendAudio"] = "sendAudio"
	audio: str
	audio_format: str = Field(default="audio/webm", alias="format")


class Interrupt(WireModel):
	type: Literal["interrupt"] = "interrupt"


class SpeechEnded(WireModel):
	type: Literal["speechEnded"] = "speechEnded"


class EndConversation(WireModel):
	type: Literal["endConversation"] = "endConversation"


InboundEvent = Annotated[
	Union[StartConversation, SendAudio, Interrupt, SpeechEnded, EndConversation],
	Field(discriminator="type"),
]

_INBOUND_ADAPTER: TypeAdapter = TypeAdapter(InboundEvent)
INBOUND_TYPES = frozenset({"startConversation", "sendAudio", "interrupt", "speechEnded", "endConversation"})


def parse_inbound(raw: str) -> Union[StartConversation, SendAudio, Interrupt, SpeechEnded, EndConversation]:
	"""Decode and validate one websocket text frame."""
	try:
		payload = json.loads(raw)
	except (TypeError, ValueError) as exc:
		raise ValidationError("Payload must be JSON.", details=str(exc)) from exc
	if not isinstance(payload, dict):
		raise ValidationError("Payload must be a JSON object.")
	try:
		return _INBOUND_ADAPTER.validate_python(payload)
	except PydanticValidationError as exc:
		kind = payload.get("type")
		known = isinstance(kind, str) and kind in INBOUND_TYPES
		message = "Invalid message payload." if known else "Unsupported message type."
		raise ValidationError(message, details=str(exc)) from exc


# Server -> client


class ConversationStarted(WireModel):
	type: Literal["conversationStarted"] = "conversationStarted"
	message: str
	conversation_id: str


class Listening(WireModel):
	type: Literal["listening"] = "listening"
	conversation_id: str


class AiResponse(WireModel):
	type: Literal["aiResponse"] = "aiResponse"
	text: str
	conversation_id: str


class Interrupted(WireModel):
	type: Literal["interrupted"] = "interrupted"
	message: str
	conversation_id: str


class ConversationEnded(WireModel):
	type: Literal["conversationEnded"] = "conversationEnded"
	message: str
	conversation_id: str
	reason: str


class ErrorEvent(WireModel):
	type: Literal["error"] = "error"
	message: str
	conversation_id: Optional[str] = None
	details: Optional[str] = None


OutboundEvent = Union[ConversationStarted, Listening, AiResponse, Interrupted, ConversationEnded, ErrorEvent]
