"""Turn-taking state machine for one voice conversation.

A conversation moves through::

	IDLE -> LISTENING -> PROCESSING -> SPEAKING -> LISTENING -> ...

``INTERRUPTED`` is passed through on barge-in on the way back to
``LISTENING``; ``ENDED`` is terminal and the session is dropped from the
store. Every delayed step (first listen after the greeting, resuming after
speech, the idle timeout) and the in-flight provider call are named handles
on the session so a transition or removal can cancel them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, FrozenSet, Optional, Set

from config import ConversationSettings
from models.event_models import (
	AiResponse,
	ConversationEnded,
	ConversationStarted,
	ErrorEvent,
	Interrupted,
	Listening,
	OutboundEvent,
)
from models.session_models import PLACEHOLDER_USER_TEXT, Exchange, HistoryMode, SessionState, SessionStatus
from services.gemini.completion_gateway import CompletionGateway
from services.voice.channel import Channel
from services.voice.errors import (
	GatewayError,
	SessionExistsError,
	SessionNotFoundError,
	TransportError,
	TurnInProgressError,
	ValidationError,
	VoiceChatError,
)
from services.voice.prompts import GREETING_MESSAGE, INTERRUPTED_MESSAGE, assistant_system_prompt, ended_message
from services.voice.scheduler import LoopScheduler, Scheduler
from services.voice.session_store import SessionStore
from utils.media_validation import decode_audio_payload

LOGGER = logging.getLogger(__name__)

LISTEN_TIMER = "listen"
RESUME_TIMER = "resume"
IDLE_TIMER = "idle"
TURN_TASK = "turn"

_ALLOWED: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
	SessionStatus.IDLE: frozenset({SessionStatus.LISTENING, SessionStatus.INTERRUPTED}),
	SessionStatus.LISTENING: frozenset({SessionStatus.PROCESSING}),
	SessionStatus.PROCESSING: frozenset({SessionStatus.SPEAKING, SessionStatus.LISTENING, SessionStatus.INTERRUPTED}),
	SessionStatus.SPEAKING: frozenset({SessionStatus.LISTENING, SessionStatus.INTERRUPTED}),
	SessionStatus.INTERRUPTED: frozenset({SessionStatus.LISTENING}),
	SessionStatus.ENDED: frozenset(),
}

# Handles that are only meaningful while the session stays in one status.
_PROTECTED_BY: Dict[str, SessionStatus] = {
	LISTEN_TIMER: SessionStatus.IDLE,
	TURN_TASK: SessionStatus.PROCESSING,
	RESUME_TIMER: SessionStatus.SPEAKING,
}


def transition(state: SessionState, new_status: SessionStatus) -> None:
	"""Move ``state`` to ``new_status``, canceling handles the move invalidates."""
	if new_status not in _ALLOWED[state.status]:
		raise RuntimeError(f"Invalid transition {state.status.value} -> {new_status.value} for {state.session_id}")
	for name, protected in _PROTECTED_BY.items():
		if protected is not new_status:
			state.cancel(name)
	LOGGER.debug("Conversation %s: %s -> %s", state.session_id, state.status.value, new_status.value)
	state.status = new_status


class TurnController:
	"""Drive one connection's conversation and emit lifecycle events on its channel."""

	def __init__(
		self,
		session_id: str,
		store: SessionStore,
		gateway: CompletionGateway,
		channel: Channel,
		settings: Optional[ConversationSettings] = None,
		scheduler: Optional[Scheduler] = None,
		system_prompt: Optional[str] = None,
	) -> None:
		self.session_id = session_id
		self.store = store
		self.gateway = gateway
		self.channel = channel
		self.settings = settings or ConversationSettings()
		self.scheduler = scheduler or LoopScheduler()
		self.system_prompt = system_prompt or assistant_system_prompt()
		self._background: Set[asyncio.Future] = set()

	# Inbound operations

	async def start(self, capture_ready: bool = True) -> SessionState:
		"""Open a new conversation, greet once and schedule the first listen."""
		if not capture_ready:
			raise ValidationError("Microphone access is required to start a conversation.")
		existing = self.store.find(self.session_id)
		if existing is not None and existing.is_active:
			raise SessionExistsError()
		state = self.store.create(self.session_id, history_limit=self.settings.history_limit)
		LOGGER.info("Conversation started for %s", self.session_id)
		await self._emit(ConversationStarted(message=GREETING_MESSAGE, conversation_id=self.session_id))
		if self._owns(state) and state.status is SessionStatus.IDLE:
			self._schedule(state, LISTEN_TIMER, self.settings.greeting_delay, self._on_listen_timer)
		return state

	async def submit_audio(self, audio_b64: str, mime_type: str) -> Optional[asyncio.Task]:
		"""Accept one recorded utterance and start the provider call for it.

		Returns the task running the call, or ``None`` when the payload was
		rejected locally (the client is told why and asked to listen again).
		"""
		state = self._require_session()
		if state.status is SessionStatus.IDLE:
			raise TurnInProgressError("Not listening yet. Please wait a moment.", details="Session is idle")
		if state.status is not SessionStatus.LISTENING:
			raise TurnInProgressError(details=f"Session is {state.status.value}")

		try:
			decode_audio_payload(
				audio_b64,
				mime_type,
				min_bytes=self.settings.min_audio_bytes,
				max_bytes=self.settings.max_audio_bytes,
			)
		except ValidationError as exc:
			LOGGER.info("Rejected utterance for %s: %s", self.session_id, exc.details or exc.message)
			await self._emit(self.error_event(exc))
			await self._emit(Listening(conversation_id=self.session_id))
			return None

		self.store.touch(self.session_id)
		transition(state, SessionStatus.PROCESSING)
		state.generation += 1
		task = asyncio.ensure_future(self._run_turn(state, state.generation, audio_b64, mime_type))
		state.schedule(TURN_TASK, task)
		return task

	async def speech_finished(self) -> None:
		"""Resume listening once the client has finished speaking the reply."""
		state = self.store.find(self.session_id)
		if state is None or not self._owns(state) or state.status is not SessionStatus.SPEAKING:
			return
		if self.settings.resume_delay <= 0:
			await self._resume_listening(state)
			return
		self._schedule(state, RESUME_TIMER, self.settings.resume_delay, self._on_resume_timer)

	async def interrupt(self) -> None:
		"""Barge in: drop any pending reply or speech and listen again."""
		state = self._require_session()
		if state.status is not SessionStatus.LISTENING:
			transition(state, SessionStatus.INTERRUPTED)
			state.generation += 1
			transition(state, SessionStatus.LISTENING)
			LOGGER.info("Conversation interrupted for %s", self.session_id)
		await self._emit(Interrupted(message=INTERRUPTED_MESSAGE, conversation_id=self.session_id))
		await self._emit(Listening(conversation_id=self.session_id))

	async def end(self, reason: str = "user") -> None:
		"""End the conversation at the user's request."""
		state = self._require_session()
		if self._finish(state, reason):
			await self._emit(ConversationEnded(message=ended_message(reason), conversation_id=self.session_id, reason=reason))

	def disconnect(self) -> None:
		"""Release everything held for this connection. Safe to call repeatedly."""
		state = self.store.find(self.session_id)
		if state is not None:
			self._finish(state, "disconnect")
		for future in list(self._background):
			future.cancel()

	def error_event(self, exc: VoiceChatError) -> ErrorEvent:
		"""Build the ``error`` event for ``exc``, attaching details only when allowed."""
		details = exc.details if self.settings.expose_error_details else None
		return ErrorEvent(message=exc.message, conversation_id=self.session_id, details=details)

	# Provider call

	async def _run_turn(self, state: SessionState, generation: int, audio_b64: str, mime_type: str) -> None:
		try:
			await self._complete_turn(state, generation, audio_b64, mime_type)
		except TransportError:
			LOGGER.info("Channel closed during turn for %s", self.session_id)
			self.disconnect()

	async def _complete_turn(self, state: SessionState, generation: int, audio_b64: str, mime_type: str) -> None:
		context = state.recent_history(self.settings.context_exchanges)
		try:
			result = await self.gateway.complete(
				system_instruction=self.system_prompt,
				history=context,
				audio_b64=audio_b64,
				mime_type=mime_type,
			)
		except GatewayError as exc:
			await self._fail_turn(state, generation, exc)
			return
		except Exception as exc:
			LOGGER.exception("Unexpected error during completion for %s", self.session_id)
			await self._fail_turn(state, generation, GatewayError(details=str(exc)))
			return

		if not self._is_current(state, generation):
			LOGGER.info("Dropping stale reply for %s (generation %d)", self.session_id, generation)
			return

		state.release(TURN_TASK)
		user_text = PLACEHOLDER_USER_TEXT
		if self.settings.history_mode is HistoryMode.TRANSCRIPT and result.transcript:
			user_text = result.transcript
		state.append_exchange(Exchange(user_text=user_text, assistant_text=result.text))
		self.store.touch(self.session_id)
		transition(state, SessionStatus.SPEAKING)
		self._schedule(state, IDLE_TIMER, self.settings.idle_timeout, self._on_idle_timer)
		LOGGER.info("AI response sent for %s", self.session_id)
		await self._emit(AiResponse(text=result.text, conversation_id=self.session_id))

	async def _fail_turn(self, state: SessionState, generation: int, exc: GatewayError) -> None:
		if not self._is_current(state, generation):
			return
		LOGGER.error("Turn failed for %s: %s", self.session_id, exc.details or exc.message)
		state.release(TURN_TASK)
		transition(state, SessionStatus.LISTENING)
		await self._emit(self.error_event(exc))
		await self._emit(Listening(conversation_id=self.session_id))

	# Timers

	def _on_listen_timer(self, state: SessionState) -> None:
		state.release(LISTEN_TIMER)
		if not self._owns(state) or state.status is not SessionStatus.IDLE:
			return
		transition(state, SessionStatus.LISTENING)
		self._spawn(self._emit(Listening(conversation_id=self.session_id)))

	def _on_resume_timer(self, state: SessionState) -> None:
		state.release(RESUME_TIMER)
		if not self._owns(state) or state.status is not SessionStatus.SPEAKING:
			return
		self._spawn(self._resume_listening(state))

	def _on_idle_timer(self, state: SessionState) -> None:
		state.release(IDLE_TIMER)
		if not self._owns(state):
			return
		LOGGER.info("Conversation timeout for %s", self.session_id)
		if self._finish(state, "idle_timeout"):
			self._spawn(
				self._emit(
					ConversationEnded(
						message=ended_message("idle_timeout"),
						conversation_id=self.session_id,
						reason="idle_timeout",
					)
				)
			)

	async def _resume_listening(self, state: SessionState) -> None:
		if not self._owns(state) or state.status is not SessionStatus.SPEAKING:
			return
		transition(state, SessionStatus.LISTENING)
		await self._emit(Listening(conversation_id=self.session_id))

	# Helpers

	def _schedule(self, state: SessionState, name: str, delay: float, callback: Callable[[SessionState], None]) -> None:
		state.schedule(name, self.scheduler.call_later(delay, lambda: callback(state)))

	def _finish(self, state: SessionState, reason: str) -> bool:
		if not self._owns(state):
			return False
		state.generation += 1
		self.store.remove(self.session_id)
		LOGGER.info("Conversation ended for %s (%s)", self.session_id, reason)
		return True

	def _owns(self, state: SessionState) -> bool:
		return state.is_active and self.store.find(self.session_id) is state

	def _is_current(self, state: SessionState, generation: int) -> bool:
		return self._owns(state) and state.generation == generation and state.status is SessionStatus.PROCESSING

	def _require_session(self) -> SessionState:
		state = self.store.find(self.session_id)
		if state is None or not state.is_active:
			raise SessionNotFoundError(details=f"No active conversation for {self.session_id}")
		return state

	def _spawn(self, coro) -> None:
		future = asyncio.ensure_future(self._guard(coro))
		self._background.add(future)
		future.add_done_callback(self._background.discard)

	async def _guard(self, coro) -> None:
		try:
			await coro
		except TransportError:
			LOGGER.info("Channel closed for %s; cleaning up", self.session_id)
			self.disconnect()
		except Exception:
			LOGGER.exception("Background step failed for %s", self.session_id)

	async def _emit(self, event: OutboundEvent) -> None:
		await self.channel.send(event)
