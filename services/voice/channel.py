"""Outbound side of the transport channel."""

from __future__ import annotations

import json
from typing import Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from models.event_models import OutboundEvent
from services.voice.errors import TransportError


class Channel(Protocol):
	async def send(self, event: OutboundEvent) -> None: ...


class WebSocketChannel:
	"""Serialize outbound events as JSON text frames on one websocket."""

	def __init__(self, websocket: WebSocket) -> None:
		self.websocket = websocket

	async def send(self, event: OutboundEvent) -> None:
		if self.websocket.application_state != WebSocketState.CONNECTED:
			raise TransportError(details="Websocket is not connected")
		try:
			await self.websocket.send_text(json.dumps(event.to_wire()))
		except (WebSocketDisconnect, RuntimeError, OSError) as exc:
			raise TransportError(details=str(exc)) from exc
