"""Events accepted by the session state machine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageAcquired:
	"""A photo was captured or uploaded; carries base64 image bytes."""

	image_b64: bytes
	source: str = "upload"


@dataclass(frozen=True)
class AcquisitionFailedEvent:
	message: str


@dataclass(frozen=True)
class AcquisitionErrorDismissed:
	pass


@dataclass(frozen=True)
class AnalysisSucceeded:
	epoch: int
	script: str


@dataclass(frozen=True)
class AnalysisFailedEvent:
	epoch: int
	message: str


@dataclass(frozen=True)
class GenerationRequested:
	pass


@dataclass(frozen=True)
class GenerationSucceeded:
	epoch: int
	image_b64: bytes


@dataclass(frozen=True)
class GenerationFailedEvent:
	epoch: int
	message: str


@dataclass(frozen=True)
class ResetRequested:
	pass


# Events produced by a remote call; they are dropped when their epoch is stale.
COMPLETION_EVENTS = (AnalysisSucceeded, AnalysisFailedEvent, GenerationSucceeded, GenerationFailedEvent)
