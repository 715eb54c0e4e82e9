"""Fire the remote model calls for a session and feed results back as events."""
from __future__ import annotations

import logging
from typing import Any

from models.session_events import (
	AnalysisFailedEvent,
	AnalysisSucceeded,
	GenerationFailedEvent,
	GenerationRequested,
	GenerationSucceeded,
	ImageAcquired,
)
from models.session_models import SessionSnapshot
from services.errors import AnalysisFailed, GenerationFailed
from services.gemini.avatar_generator import AvatarGenerator
from services.gemini.face_analyzer import FaceScriptAnalyzer
from services.session.session_store import SessionStore
from services.session.state_machine import ANALYSIS_ERROR_MESSAGE, GENERATION_ERROR_MESSAGE

LOGGER = logging.getLogger(__name__)


class AvatarWorkflow:
	"""Coordinate acquisition, analysis, and avatar generation for stored sessions.

	The `begin_*` methods apply the triggering event synchronously, so a second
	trigger for the same phase is rejected while a call is in flight. The
	`run_*` coroutines perform the remote call and deliver the completion event
	tagged with the epoch it was issued under.
	"""

	def __init__(self, store: SessionStore, analyzer: FaceScriptAnalyzer, generator: AvatarGenerator) -> None:
		self.store = store
		self.analyzer = analyzer
		self.generator = generator

	def begin_analysis(self, session_id: str, image_b64: bytes, source: str = "upload") -> SessionSnapshot:
		"""Record the acquired image and move the session to analyzing."""
		machine = self.store.get(session_id)
		snapshot = machine.transition(ImageAcquired(image_b64=image_b64, source=source))
		LOGGER.info("Session %s acquired image from %s (%d bytes base64)", session_id, source, len(image_b64))
		return snapshot

	async def run_analysis(self, session_id: str, epoch: int, image_b64: bytes) -> None:
		"""Analyze the photo and deliver the outcome to the session."""
		try:
			script = await self.analyzer.analyze(image_b64)
		except AnalysisFailed as exc:
			LOGGER.error("Analysis failed for session %s: %s", session_id, exc)
			self._deliver(session_id, AnalysisFailedEvent(epoch=epoch, message=ANALYSIS_ERROR_MESSAGE))
			return
		self._deliver(session_id, AnalysisSucceeded(epoch=epoch, script=script))

	def begin_generation(self, session_id: str) -> SessionSnapshot:
		"""Move a completed session to generating; the script must be present."""
		machine = self.store.get(session_id)
		return machine.transition(GenerationRequested())

	async def run_generation(self, session_id: str, epoch: int, script: str) -> None:
		"""Generate the avatar and deliver the outcome to the session."""
		try:
			image_b64 = await self.generator.generate(script)
		except GenerationFailed as exc:
			LOGGER.error("Avatar generation failed for session %s (%s): %s", session_id, exc.reason, exc)
			self._deliver(session_id, GenerationFailedEvent(epoch=epoch, message=GENERATION_ERROR_MESSAGE))
			return
		self._deliver(session_id, GenerationSucceeded(epoch=epoch, image_b64=image_b64))

	def _deliver(self, session_id: str, event: Any) -> None:
		try:
			machine = self.store.get(session_id)
		except KeyError:
			LOGGER.info("Dropping %s for closed session %s", type(event).__name__, session_id)
			return
		machine.transition(event)
