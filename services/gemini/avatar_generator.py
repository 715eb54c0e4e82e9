"""Description: Avatar synthesis from a face script using a Gemini image model."""

import asyncio
import base64
import logging
import time
from typing import Any, Optional

from google import genai

from services.errors import GenerationFailed
from services.gemini.prompts import build_avatar_prompt
from services.gemini.response_parser import extract_inline_image, extract_usage

LOGGER = logging.getLogger(__name__)
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class AvatarGenerator:
    """Generate an avatar image from a textual face script."""

    def __init__(
        self,
        client: genai.Client,
        model: str = DEFAULT_IMAGE_MODEL,
        timeout: Optional[float] = None,
    ) -> None:
        if client is None:
            raise ValueError("Gemini client must be provided.")
        self.client = client
        self.model = model
        self.timeout = timeout

    async def generate(self, script: str) -> bytes:
        """Return the avatar as base64-encoded image bytes.

        Raises:
            GenerationFailed: ``reason`` tells a transport failure apart from a
                well-formed response that carried no image.
        """
        start_time = time.time()
        try:
            response = await self._create_response(build_avatar_prompt(script))
        except Exception as exc:
            LOGGER.error("Error generating avatar: %s", exc)
            raise GenerationFailed("Failed to generate image from script.", GenerationFailed.TRANSPORT) from exc

        try:
            data = extract_inline_image(response)
        except GenerationFailed as exc:
            LOGGER.error("Avatar response rejected (%s): %s", exc.reason, exc)
            raise

        usage = extract_usage(response)
        LOGGER.info(
            "Avatar generated in %.2fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        if isinstance(data, str):
            # Already base64 text (REST-style payloads).
            return data.encode("ascii")
        return base64.b64encode(data)

    async def _create_response(self, prompt: str) -> Any:
        """Send the prompt to the Gemini image model."""
        request = self.client.aio.models.generate_content(model=self.model, contents=[prompt])
        if self.timeout:
            return await asyncio.wait_for(request, timeout=self.timeout)
        return await request
