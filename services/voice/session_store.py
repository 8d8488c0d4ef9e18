"""Simple in-memory store for voice conversation sessions."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional

from models.session_models import SessionState, SessionStatus
from services.voice.errors import SessionExistsError, SessionNotFoundError

LOGGER = logging.getLogger(__name__)


class SessionStore:
	"""Map connection ids to session state.

	Sessions are only mutated from the event loop that handles their
	connection, so no locking is done here.
	"""

	def __init__(self, clock: Callable[[], float] = time.time) -> None:
		self._sessions: Dict[str, SessionState] = {}
		self._clock = clock

	def __len__(self) -> int:
		return len(self._sessions)

	def __contains__(self, session_id: object) -> bool:
		return session_id in self._sessions

	def create(self, session_id: str, history_limit: int = 10) -> SessionState:
		"""Create a session for ``session_id`` or raise if one already exists."""
		if session_id in self._sessions:
			raise SessionExistsError(details=f"Session {session_id} already exists")
		state = SessionState(session_id=session_id, history_limit=history_limit, last_activity=self._clock())
		self._sessions[session_id] = state
		return state

	def get(self, session_id: str) -> SessionState:
		"""Return a session or raise SessionNotFoundError if missing."""
		state = self._sessions.get(session_id)
		if state is None:
			raise SessionNotFoundError(details=f"Session {session_id} not found")
		return state

	def find(self, session_id: str) -> Optional[SessionState]:
		return self._sessions.get(session_id)

	def touch(self, session_id: str) -> SessionState:
		"""Record activity on a session."""
		state = self.get(session_id)
		state.last_activity = self._clock()
		return state

	def remove(self, session_id: str) -> Optional[SessionState]:
		"""Drop a session, canceling its scheduled work. Safe to repeat."""
		state = self._sessions.pop(session_id, None)
		if state is None:
			return None
		state.cancel_all()
		state.status = SessionStatus.ENDED
		return state

	def sweep(self, max_age_seconds: float) -> List[str]:
		"""Remove sessions idle for longer than ``max_age_seconds``."""
		cutoff = self._clock() - max_age_seconds
		stale = [sid for sid, state in self._sessions.items() if state.last_activity < cutoff]
		for session_id in stale:
			self.remove(session_id)
			LOGGER.info("Swept stale conversation %s", session_id)
		return stale

	def clear(self) -> int:
		"""Remove every session, canceling their scheduled work."""
		session_ids = list(self._sessions)
		for session_id in session_ids:
			self.remove(session_id)
		return len(session_ids)

	def counts(self) -> Dict[str, int]:
		"""Return active and total session counts."""
		active = sum(1 for state in self._sessions.values() if state.is_active)
		return {"active": active, "total": len(self._sessions)}
