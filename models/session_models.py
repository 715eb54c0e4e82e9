"""Session domain models for the face-to-avatar workflow."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Phase(str, Enum):
	"""Phases of the interaction, in the order a session normally visits them."""

	IDLE = "idle"
	ANALYZING = "analyzing"
	GENERATING_IMAGE = "generating_image"
	COMPLETE = "complete"
	ERROR = "error"


@dataclass
class Notification:
	"""Transient message shown once to the user, e.g. a failed avatar request."""

	level: str
	message: str
	created_at: float = field(default_factory=lambda: time.time())


@dataclass
class Session:
	"""Mutable state owned by a single SessionStateMachine.

	Attributes:
		epoch: Incremented on every reset; async results tagged with an older
			epoch are discarded.
		phase: Current phase of the interaction.
		input_image: Base64 JPEG (or uploaded image) bytes awaiting or used for analysis.
		script: Visual description of the face, set once analysis succeeds.
		generated_image: Base64 PNG of the synthesized avatar.
		error_message: Set only while the session is in the error phase.
		acquisition_error: Inline camera error shown in the acquisition view.
		notifications: Pending transient notifications.
	"""

	epoch: int = 0
	phase: Phase = Phase.IDLE
	input_image: Optional[bytes] = None
	script: Optional[str] = None
	generated_image: Optional[bytes] = None
	error_message: Optional[str] = None
	acquisition_error: Optional[str] = None
	notifications: List[Notification] = field(default_factory=list)


@dataclass(frozen=True)
class SessionSnapshot:
	"""Read-only copy of a Session handed to renderers and the HTTP layer."""

	session_id: str
	epoch: int
	phase: Phase
	input_image: Optional[bytes]
	script: Optional[str]
	generated_image: Optional[bytes]
	error_message: Optional[str]
	acquisition_error: Optional[str]
	notifications: Tuple[Notification, ...] = ()

	@classmethod
	def of(cls, session_id: str, session: Session) -> "SessionSnapshot":
		return cls(
			session_id=session_id,
			epoch=session.epoch,
			phase=session.phase,
			input_image=session.input_image,
			script=session.script,
			generated_image=session.generated_image,
			error_message=session.error_message,
			acquisition_error=session.acquisition_error,
			notifications=tuple(session.notifications),
		)

	@property
	def is_busy(self) -> bool:
		"""True while a remote call for this session is outstanding."""
		return self.phase in (Phase.ANALYZING, Phase.GENERATING_IMAGE)

	def to_dict(self) -> Dict[str, Any]:
		"""Return a JSON-serializable view; images stay base64 text."""
		return {
			"session_id": self.session_id,
			"epoch": self.epoch,
			"phase": self.phase.value,
			"busy": self.is_busy,
			"has_input_image": self.input_image is not None,
			"script": self.script,
			"generated_image_b64": self.generated_image.decode("ascii") if self.generated_image else None,
			"error_message": self.error_message,
			"acquisition_error": self.acquisition_error,
			"notifications": [
				{"level": note.level, "message": note.message, "created_at": note.created_at}
				for note in self.notifications
			],
		}
