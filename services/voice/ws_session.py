"""Dispatch voice websocket events to the turn controller."""
from __future__ import annotations

import logging

from models.event_models import EndConversation, Interrupt, SendAudio, SpeechEnded, StartConversation, parse_inbound
from services.voice.errors import TransportError, VoiceChatError
from services.voice.turn_controller import TurnController

LOGGER = logging.getLogger(__name__)


class VoiceSessionHandler:
	"""Route websocket messages for a single voice connection."""

	def __init__(self, controller: TurnController) -> None:
		self.controller = controller

	async def handle(self, raw: str) -> None:
		"""Process a single inbound websocket frame.

		Every failure is reported to the client as an ``error`` event, except
		a closed channel, which is re-raised so the caller can clean up.
		"""
		try:
			event = parse_inbound(raw)
			if isinstance(event, StartConversation):
				await self.controller.start(capture_ready=event.capture_ready)
			elif isinstance(event, SendAudio):
				await self.controller.submit_audio(event.audio, event.audio_format)
			elif isinstance(event, Interrupt):
				await self.controller.interrupt()
			elif isinstance(event, SpeechEnded):
				await self.controller.speech_finished()
			elif isinstance(event, EndConversation):
				await self.controller.end(reason="user")
		except TransportError:
			raise
		except VoiceChatError as exc:
			LOGGER.info("Rejected event for %s: %s", self.controller.session_id, exc.details or exc.message)
			await self._send_error(exc)
		except Exception:
			LOGGER.exception("Unhandled error for %s", self.controller.session_id)
			await self._send_error(VoiceChatError())

	async def _send_error(self, exc: VoiceChatError) -> None:
		await self.controller.channel.send(self.controller.error_event(exc))
