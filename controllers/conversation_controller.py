"""Diagnostic views over active voice conversations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import HTTPException, Request

from services.voice.errors import SessionNotFoundError
from services.voice.session_store import SessionStore


def _store(request: Request) -> SessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


async def health_status() -> Dict[str, Any]:
	"""Return a liveness payload with the current UTC time."""
	return {
		"status": "OK",
		"message": "Voice chat service is running",
		"timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
	}


async def conversation_snapshot(request: Request, conversation_id: str) -> Dict[str, Any]:
	"""Return the state and history of one conversation.

	Raises:
		HTTPException(404) if no conversation exists for the id.
	"""
	try:
		state = _store(request).get(conversation_id)
	except SessionNotFoundError as exc:
		raise HTTPException(status_code=404, detail="Conversation not found") from exc
	return {"success": True, "conversation": state.snapshot()}


async def conversation_counts(request: Request) -> Dict[str, Any]:
	"""Return how many conversations are active and held in total."""
	counts = _store(request).counts()
	return {
		"success": True,
		"activeConversations": counts["active"],
		"totalConversations": counts["total"],
	}
