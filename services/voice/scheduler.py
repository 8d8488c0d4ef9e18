"""Cancelable delayed callbacks for conversation timers."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
	def cancel(self) -> None: ...


class Scheduler(Protocol):
	def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
	"""Schedule callbacks on the running asyncio event loop."""

	def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
		self._loop = loop

	def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
		loop = self._loop or asyncio.get_running_loop()
		return loop.call_later(max(delay, 0.0), callback)
