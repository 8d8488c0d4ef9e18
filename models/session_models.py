"""Session domain models for voice conversations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

PLACEHOLDER_USER_TEXT = "User spoke"


class SessionStatus(str, Enum):
	"""Lifecycle state of a single voice conversation."""

	IDLE = "idle"
	LISTENING = "listening"
	PROCESSING = "processing"
	SPEAKING = "speaking"
	INTERRUPTED = "interrupted"
	ENDED = "ended"


class HistoryMode(str, Enum):
	"""What gets stored as the user side of an exchange."""

	PLACEHOLDER = "placeholder"
	TRANSCRIPT = "transcript"


@dataclass(frozen=True)
class Exchange:
	"""One user turn and the assistant reply it produced."""

	user_text: str
	assistant_text: str
	timestamp: float = field(default_factory=lambda: time.time())

	def to_dict(self) -> Dict[str, Any]:
		return {"user": self.user_text, "assistant": self.assistant_text, "timestamp": self.timestamp}


@dataclass
class SessionState:
	"""In-memory state for one connection's conversation.

	Scheduled work (timers and the in-flight gateway task) is kept by name in
	``pending`` so it can be canceled when a transition invalidates it or when
	the session is removed from the store.
	"""

	session_id: str
	history_limit: int = 10
	status: SessionStatus = SessionStatus.IDLE
	last_activity: float = field(default_factory=lambda: time.time())
	history: List[Exchange] = field(default_factory=list)
	generation: int = 0
	pending: Dict[str, Any] = field(default_factory=dict)

	@property
	def is_active(self) -> bool:
		return self.status is not SessionStatus.ENDED

	def append_exchange(self, exchange: Exchange) -> None:
		"""Append an exchange, evicting the oldest entries past the limit."""
		self.history.append(exchange)
		overflow = len(self.history) - self.history_limit
		if overflow > 0:
			del self.history[:overflow]

	def recent_history(self, count: int) -> List[Exchange]:
		"""Return up to ``count`` most recent exchanges, oldest first."""
		if count <= 0:
			return []
		return list(self.history[-count:])

	def schedule(self, name: str, handle: Any) -> None:
		"""Track a cancelable handle, canceling any previous one with the same name."""
		self.cancel(name)
		self.pending[name] = handle

	def cancel(self, name: str) -> bool:
		handle = self.pending.pop(name, None)
		if handle is None:
			return False
		handle.cancel()
		return True

	def release(self, name: str) -> None:
		"""Forget a handle that has fired or finished without canceling it."""
		self.pending.pop(name, None)

	def cancel_all(self) -> None:
		for name in list(self.pending):
			self.cancel(name)

	def snapshot(self) -> Dict[str, Any]:
		"""Return a JSON-serializable view for diagnostics."""
		return {
			"status": self.status.value,
			"isActive": self.is_active,
			"lastActivity": self.last_activity,
			"history": [exchange.to_dict() for exchange in self.history],
		}


@dataclass
class CompletionResult:
	"""Text produced by the completion gateway for one utterance."""

	text: str
	transcript: Optional[str] = None
