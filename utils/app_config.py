"""Environment-driven configuration for the FaceScript service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from services.gemini.avatar_generator import DEFAULT_IMAGE_MODEL
from services.gemini.face_analyzer import DEFAULT_ANALYSIS_MODEL
from services.session.session_store import DEFAULT_IDLE_TTL, DEFAULT_MAX_SESSIONS

API_KEY_VARIABLES = ("GEMINI_API_KEY", "API_KEY", "GOOGLE_API_KEY")
DEFAULT_REQUEST_TIMEOUT = 120.0


@dataclass
class AppConfig:
    """Settings read once at startup.

    Only the API key is required. `request_timeout` of None means remote calls
    wait indefinitely (set REQUEST_TIMEOUT_SECONDS=0); `session_ttl` of None
    keeps idle sessions until the store is full (SESSION_TTL_SECONDS=0).
    """

    api_key: str
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT
    camera_index: int = 0
    max_sessions: int = DEFAULT_MAX_SESSIONS
    session_ttl: Optional[float] = DEFAULT_IDLE_TTL
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build the configuration from the process environment.

        Raises:
            RuntimeError: If no API key is set or a numeric variable is malformed.
        """
        api_key = next((os.getenv(name) for name in API_KEY_VARIABLES if os.getenv(name)), None)
        if not api_key:
            raise RuntimeError(
                "GEMINI_API_KEY environment variable is not set "
                f"(also checked: {', '.join(API_KEY_VARIABLES[1:])})"
            )

        try:
            timeout = float(os.getenv("REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT))
            camera_index = int(os.getenv("CAMERA_INDEX", "0"))
            max_sessions = int(os.getenv("MAX_SESSIONS", DEFAULT_MAX_SESSIONS))
            session_ttl = float(os.getenv("SESSION_TTL_SECONDS", DEFAULT_IDLE_TTL))
        except ValueError as exc:
            raise RuntimeError(
                "REQUEST_TIMEOUT_SECONDS, CAMERA_INDEX, MAX_SESSIONS and SESSION_TTL_SECONDS must be numeric"
            ) from exc
        if max_sessions < 1:
            raise RuntimeError("MAX_SESSIONS must be at least 1")

        return cls(
            api_key=api_key,
            analysis_model=os.getenv("ANALYSIS_MODEL", DEFAULT_ANALYSIS_MODEL),
            image_model=os.getenv("IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            request_timeout=timeout if timeout > 0 else None,
            camera_index=camera_index,
            max_sessions=max_sessions,
            session_ttl=session_ttl if session_ttl > 0 else None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
