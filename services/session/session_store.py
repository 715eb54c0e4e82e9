"""Simple in-memory store for face-to-avatar sessions."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional
from uuid import uuid4

from services.session.state_machine import SessionStateMachine

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 100
DEFAULT_IDLE_TTL = 3600.0


class SessionStore:
	"""Manage one state machine per browser session.

	Sessions untouched for `idle_ttl` seconds are dropped, and once more than
	`max_sessions` exist the least recently used ones are evicted. Results that
	arrive for an evicted session are discarded by the workflow.
	"""

	def __init__(
		self,
		max_sessions: int = DEFAULT_MAX_SESSIONS,
		idle_ttl: Optional[float] = DEFAULT_IDLE_TTL,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		self.max_sessions = max_sessions
		self.idle_ttl = idle_ttl
		self._clock = clock
		self._sessions: "OrderedDict[str, SessionStateMachine]" = OrderedDict()
		self._last_seen: dict[str, float] = {}

	def create(self) -> SessionStateMachine:
		"""Create a new session in the idle phase."""
		self._prune()
		session_id = uuid4().hex
		machine = SessionStateMachine(session_id)
		self._sessions[session_id] = machine
		self._last_seen[session_id] = self._clock()
		while len(self._sessions) > self.max_sessions:
			oldest, _ = self._sessions.popitem(last=False)
			self._last_seen.pop(oldest, None)
			LOGGER.info("Session %s evicted (store full)", oldest)
		return machine

	def get(self, session_id: str) -> SessionStateMachine:
		"""Return a session or raise KeyError if missing or expired."""
		self._prune()
		machine = self._sessions.get(session_id)
		if machine is None:
			raise KeyError(f"Session {session_id} not found")
		self._sessions.move_to_end(session_id)
		self._last_seen[session_id] = self._clock()
		return machine

	def discard(self, session_id: str) -> None:
		"""Forget a session; in-flight results for it are dropped on arrival."""
		self._sessions.pop(session_id, None)
		self._last_seen.pop(session_id, None)

	def _prune(self) -> None:
		if self.idle_ttl is None:
			return
		cutoff = self._clock() - self.idle_ttl
		expired = [session_id for session_id, seen in self._last_seen.items() if seen < cutoff]
		for session_id in expired:
			self.discard(session_id)
			LOGGER.info("Session %s expired", session_id)

	def __len__(self) -> int:
		return len(self._sessions)
