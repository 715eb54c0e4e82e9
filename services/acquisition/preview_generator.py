"""Preview generator service.

Provides a small OOP wrapper around Pillow to create a preview of the
acquired photo (expected base64-encoded input). The preview fits within
160x160 pixels and is returned as raw PNG bytes, ready to be served.

Public class: `PreviewGenerator`

Example:
    pg = PreviewGenerator(max_size=(160, 160))
    png_bytes = pg.create_preview_from_base64(session.input_image)
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image


class PreviewGenerator:
    """Generate PNG previews from base64 image bytes.

    Args:
        max_size: Maximum width and height for the preview. Defaults to (160, 160).
        background: Optional background color used when flattening images with alpha.
            If None, images with alpha are flattened against white.
    """

    def __init__(self, max_size: Tuple[int, int] = (160, 160), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def create_preview_from_base64(self, data: str | bytes) -> bytes:
        """Create a preview from base64-encoded image data.

        Args:
            data: Base64-encoded image data (either `str` or `bytes`).

        Returns:
            PNG bytes of the preview.

        Raises:
            ValueError: If the data cannot be decoded or opened as an image.
        """
        data_bytes = data.encode("utf-8") if isinstance(data, str) else data

        try:
            raw = base64.b64decode(data_bytes, validate=True)
        except Exception as exc:
            raise ValueError("Invalid base64 data provided") from exc

        try:
            src = Image.open(io.BytesIO(raw))
            src.load()
        except Exception as exc:
            raise ValueError("Decoded bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
