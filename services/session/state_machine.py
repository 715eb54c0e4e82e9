"""Finite state machine driving one face-to-avatar session."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Tuple, Type

from models.session_events import (
	COMPLETION_EVENTS,
	AcquisitionErrorDismissed,
	AcquisitionFailedEvent,
	AnalysisFailedEvent,
	AnalysisSucceeded,
	GenerationFailedEvent,
	GenerationRequested,
	GenerationSucceeded,
	ImageAcquired,
	ResetRequested,
)
from models.session_models import Notification, Phase, Session, SessionSnapshot
from services.errors import InvalidTransition

LOGGER = logging.getLogger(__name__)

ANALYSIS_ERROR_MESSAGE = "Failed to analyze the image. Please try again."
GENERATION_ERROR_MESSAGE = "Failed to generate image. The model might be busy or the request was blocked."


class SessionStateMachine:
	"""Own a Session and mutate it only through `transition`.

	Reset is accepted in every phase and replaces the session with a fresh one
	under a new epoch. Completion events (analysis/generation results) carry the
	epoch they were issued under and are ignored once that epoch is stale.
	"""

	def __init__(self, session_id: str) -> None:
		self.session_id = session_id
		self._session = Session()
		self._handlers: Dict[Tuple[Phase, Type[Any]], Callable[[Any], None]] = {
			(Phase.IDLE, ImageAcquired): self._on_image_acquired,
			(Phase.IDLE, AcquisitionFailedEvent): self._on_acquisition_failed,
			(Phase.IDLE, AcquisitionErrorDismissed): self._on_acquisition_error_dismissed,
			(Phase.ANALYZING, AnalysisSucceeded): self._on_analysis_succeeded,
			(Phase.ANALYZING, AnalysisFailedEvent): self._on_analysis_failed,
			(Phase.COMPLETE, GenerationRequested): self._on_generation_requested,
			(Phase.GENERATING_IMAGE, GenerationSucceeded): self._on_generation_succeeded,
			(Phase.GENERATING_IMAGE, GenerationFailedEvent): self._on_generation_failed,
		}

	@property
	def snapshot(self) -> SessionSnapshot:
		return SessionSnapshot.of(self.session_id, self._session)

	@property
	def epoch(self) -> int:
		return self._session.epoch

	@property
	def phase(self) -> Phase:
		return self._session.phase

	def transition(self, event: Any) -> SessionSnapshot:
		"""Apply an event and return the resulting snapshot.

		Raises:
			InvalidTransition: If the current phase does not accept the event.
		"""
		if isinstance(event, ResetRequested):
			self._reset()
			return self.snapshot

		if isinstance(event, COMPLETION_EVENTS) and event.epoch != self._session.epoch:
			LOGGER.info(
				"Ignoring stale %s for session %s (epoch %s, current %s)",
				type(event).__name__,
				self.session_id,
				event.epoch,
				self._session.epoch,
			)
			return self.snapshot

		handler = self._handlers.get((self._session.phase, type(event)))
		if handler is None:
			raise InvalidTransition(self._session.phase.value, type(event).__name__)
		handler(event)
		return self.snapshot

	def drain_notifications(self) -> SessionSnapshot:
		"""Return the current snapshot and forget the notifications it carries."""
		snapshot = self.snapshot
		self._session.notifications.clear()
		return snapshot

	def _reset(self) -> None:
		next_epoch = self._session.epoch + 1
		self._session = Session(epoch=next_epoch)
		LOGGER.info("Session %s reset to idle (epoch %s)", self.session_id, next_epoch)

	def _on_image_acquired(self, event: ImageAcquired) -> None:
		if not event.image_b64:
			raise ValueError("Acquired image is empty.")
		self._session.input_image = event.image_b64
		self._session.acquisition_error = None
		self._session.error_message = None
		self._session.phase = Phase.ANALYZING

	def _on_acquisition_failed(self, event: AcquisitionFailedEvent) -> None:
		self._session.acquisition_error = event.message

	def _on_acquisition_error_dismissed(self, event: AcquisitionErrorDismissed) -> None:
		self._session.acquisition_error = None

	def _on_analysis_succeeded(self, event: AnalysisSucceeded) -> None:
		self._session.script = event.script
		self._session.phase = Phase.COMPLETE

	def _on_analysis_failed(self, event: AnalysisFailedEvent) -> None:
		self._session.script = None
		self._session.generated_image = None
		self._session.error_message = event.message or ANALYSIS_ERROR_MESSAGE
		self._session.phase = Phase.ERROR

	def _on_generation_requested(self, event: GenerationRequested) -> None:
		if not self._session.script:
			raise InvalidTransition(self._session.phase.value, "GenerationRequested without a script")
		# One avatar per analysis; the page only offers generation until it succeeds.
		if self._session.generated_image is not None:
			raise InvalidTransition(self._session.phase.value, "GenerationRequested after an avatar exists")
		self._session.phase = Phase.GENERATING_IMAGE

	def _on_generation_succeeded(self, event: GenerationSucceeded) -> None:
		self._session.generated_image = event.image_b64
		self._session.phase = Phase.COMPLETE

	def _on_generation_failed(self, event: GenerationFailedEvent) -> None:
		self._session.notifications.append(
			Notification(level="error", message=event.message or GENERATION_ERROR_MESSAGE)
		)
		self._session.phase = Phase.COMPLETE
