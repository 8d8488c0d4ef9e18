"""Periodic removal of sessions whose disconnect was never seen."""

import asyncio
import logging

from services.voice.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


class SessionSweeper:
	"""Sweep sessions idle longer than the configured maximum age."""

	def __init__(self, store: SessionStore, max_age_seconds: float = 1_800, interval_seconds: float = 300) -> None:
		"""
		Args:
			store: Session store shared with the websocket handlers.
			max_age_seconds: Sessions with no activity for this long are removed.
			interval_seconds: Seconds to sleep between sweeps.
		"""
		self.store = store
		self.max_age_seconds = max_age_seconds
		self.interval_seconds = interval_seconds

	def sweep_once(self) -> int:
		"""Run a single sweep and return how many sessions were removed."""
		removed = self.store.sweep(self.max_age_seconds)
		if removed:
			LOGGER.info("Session sweep removed %d conversation(s)", len(removed))
		return len(removed)

	async def run_periodic(self) -> None:
		"""Repeatedly sweep at the configured interval until cancelled."""
		while True:
			try:
				await asyncio.sleep(self.interval_seconds)
				self.sweep_once()
			except asyncio.CancelledError:
				break
			except Exception:
				LOGGER.exception("Session sweep failed")
