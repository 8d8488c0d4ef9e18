"""Python model of the event folding done by ``public/index.html``.

Tests drive it with real server events to check that the event stream moves
the page through the expected phases. Applying an event is idempotent, and
events for a conversation other than the current one are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from models.event_models import OutboundEvent


class ClientPhase(str, Enum):
    AWAITING_START = "awaiting_start"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"
    INTERRUPTED = "interrupted"
    ENDED = "ended"


STATUS_TEXT = {
    ClientPhase.AWAITING_START: "Ready to listen",
    ClientPhase.LISTENING: "Listening...",
    ClientPhase.THINKING: "Thinking...",
    ClientPhase.SPEAKING: "AI is speaking...",
    ClientPhase.INTERRUPTED: "Ready to listen",
    ClientPhase.ENDED: "Conversation ended",
}


@dataclass
class ConversationView:
    phase: ClientPhase = ClientPhase.AWAITING_START
    conversation_id: Optional[str] = None
    last_message: str = ""
    error: str = ""
    active: bool = False

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self.phase]

    @property
    def can_interrupt(self) -> bool:
        return self.phase in (ClientPhase.THINKING, ClientPhase.SPEAKING)

    def apply(self, event: Union[OutboundEvent, Mapping[str, Any]]) -> "ConversationView":
        """Fold one server event into the view."""
        payload: Dict[str, Any] = event.to_wire() if hasattr(event, "to_wire") else dict(event)
        kind = payload.get("type")
        conversation_id = payload.get("conversationId")

        if kind == "conversationStarted":
            if self.active and conversation_id == self.conversation_id:
                return self
            self.conversation_id = conversation_id
            self.active = True
            self.phase = ClientPhase.AWAITING_START
            self.last_message = payload.get("message", "")
            self.error = ""
            return self

        if not self.active or (conversation_id is not None and conversation_id != self.conversation_id):
            return self

        if kind == "listening":
            self.phase = ClientPhase.LISTENING
        elif kind == "aiResponse":
            self.phase = ClientPhase.SPEAKING
            self.last_message = payload.get("text", "")
            self.error = ""
        elif kind == "interrupted":
            if self.phase is not ClientPhase.LISTENING:
                self.phase = ClientPhase.INTERRUPTED
            self.last_message = payload.get("message", "")
        elif kind == "conversationEnded":
            self.phase = ClientPhase.ENDED
            self.active = False
            self.last_message = payload.get("message", "")
        elif kind == "error":
            self.error = payload.get("message", "")
        return self

    def utterance_sent(self) -> None:
        """The capture adapter handed a recording to the transport."""
        if self.active and self.phase is ClientPhase.LISTENING:
            self.phase = ClientPhase.THINKING

    def end_locally(self, message: str = 'Conversation ended. Click "Start Voice Chat" to begin again.') -> None:
        """The user ended the chat; the server confirms with ``conversationEnded``."""
        self.phase = ClientPhase.ENDED
        self.active = False
        self.last_message = message
