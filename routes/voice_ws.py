"""WebSocket endpoint for voice conversations."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from models.event_models import ErrorEvent
from services.voice.channel import WebSocketChannel
from services.voice.errors import TransportError
from services.voice.session_store import SessionStore
from services.voice.turn_controller import TurnController
from services.voice.ws_session import VoiceSessionHandler

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws")
async def voice_socket(websocket: WebSocket, store: SessionStore = Depends(_require_session_store)):
	"""Run one voice conversation connection until the client disconnects."""
	await websocket.accept()
	connection_id = uuid4().hex
	LOGGER.info("Client connected: %s", connection_id)

	channel = WebSocketChannel(websocket)
	controller = TurnController(
		connection_id,
		store,
		websocket.app.state.completion_gateway,
		channel,
		settings=websocket.app.state.settings.conversation,
		scheduler=websocket.app.state.scheduler_factory(),
	)
	handler = VoiceSessionHandler(controller)
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			except KeyError:
				# Binary frames carry no "text" key.
				await channel.send(ErrorEvent(message="Invalid websocket frame", conversation_id=connection_id))
				continue
			await handler.handle(raw)
	except TransportError:
		LOGGER.info("Channel closed for %s", connection_id)
	finally:
		controller.disconnect()
		LOGGER.info("Client disconnected: %s", connection_id)
