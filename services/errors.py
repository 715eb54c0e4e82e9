"""Error taxonomy for acquisition, analysis, and avatar generation."""

from __future__ import annotations


class FaceScriptError(Exception):
    """Base class for errors raised by the FaceScript services."""


class AcquisitionFailed(FaceScriptError):
    """Camera access was denied or the device could not deliver a frame."""


class AnalysisFailed(FaceScriptError):
    """Transport or service failure while turning a photo into a script."""


class GenerationFailed(FaceScriptError):
    """Avatar synthesis failed.

    Attributes:
        reason: One of ``"transport"`` (request or service error),
            ``"no_content"`` (the model returned no parts), or
            ``"no_image"`` (parts were returned but none carried image data).
    """

    TRANSPORT = "transport"
    NO_CONTENT = "no_content"
    NO_IMAGE = "no_image"

    def __init__(self, message: str, reason: str = TRANSPORT) -> None:
        super().__init__(message)
        self.reason = reason


class InvalidTransition(FaceScriptError):
    """An event arrived in a phase that does not accept it."""

    def __init__(self, phase: str, event: str) -> None:
        super().__init__(f"Cannot apply {event} while session is {phase}.")
        self.phase = phase
        self.event = event
