"""Description: Face analysis service producing an image-generation script with Gemini."""

import asyncio
import base64
import logging
import time
from typing import Any, Optional

from google import genai
from google.genai import types

from services.errors import AnalysisFailed
from services.gemini.prompts import FALLBACK_SCRIPT, build_analysis_instruction
from services.gemini.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)
DEFAULT_ANALYSIS_MODEL = "gemini-2.5-flash"


class FaceScriptAnalyzer:
    """Turn a photo of a face into a detailed visual description."""

    def __init__(
        self,
        client: genai.Client,
        model: str = DEFAULT_ANALYSIS_MODEL,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the analyzer with a Gemini client.

        Args:
            client: Configured `google.genai.Client`.
            model: Gemini model used for the vision request.
            timeout: Seconds to wait for the model before giving up; None waits indefinitely.
        """
        if client is None:
            raise ValueError("Gemini client must be provided.")
        self.client = client
        self.model = model
        self.timeout = timeout
        self.instruction = build_analysis_instruction()

    async def analyze(self, image_b64: bytes) -> str:
        """Return a script describing the face in a base64 JPEG image.

        Args:
            image_b64: Base64-encoded JPEG bytes.

        Returns:
            The model's description, or a fixed fallback when the model returns no text.

        Raises:
            AnalysisFailed: On any transport, service, or decoding failure.
        """
        start_time = time.time()
        try:
            image_bytes = base64.b64decode(image_b64, validate=True)
            response = await self._create_response(image_bytes)
        except Exception as exc:
            LOGGER.error("Error analyzing face: %s", exc)
            raise AnalysisFailed("Failed to generate script from image.") from exc

        usage = extract_usage(response)
        LOGGER.info(
            "Face analysis finished in %.2fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return extract_text(response) or FALLBACK_SCRIPT

    async def _create_response(self, image_bytes: bytes) -> Any:
        """Send the image and instruction to the Gemini API."""
        request = self.client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type="image/jpeg"),
                self.instruction,
            ],
        )
        if self.timeout:
            return await asyncio.wait_for(request, timeout=self.timeout)
        return await request
