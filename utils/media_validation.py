"""Validation helpers for uploaded photos."""

import base64
import binascii
from typing import Optional

from fastapi import HTTPException, UploadFile

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".heic")


def ensure_base64_image(raw: bytes) -> bytes:
    """Return base64-encoded image bytes, encoding binary input when necessary.

    Input that already decodes as base64 text is passed through untouched so a
    browser-captured frame is not re-encoded. Anything else is treated as raw
    file bytes and base64-encoded without re-compression.
    """
    stripped = raw.strip()
    if stripped.startswith(b"data:") and b"," in stripped:
        # Data URL from a canvas: keep only the payload after the comma.
        stripped = stripped.split(b",", 1)[1]
    try:
        base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError):
        return base64.b64encode(raw)
    return stripped


def validate_image_file(image_file: UploadFile) -> None:
    """Reject uploads that are clearly not images.

    Checks the content type when the browser provides one, and falls back to
    the filename extension otherwise.
    """
    if image_file.content_type:
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type.startswith("image/"):
            return
        # Canvas captures posted as text keep working.
        if content_type in ("text/plain", "application/octet-stream"):
            return
        raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    filename = (image_file.filename or "").lower()
    if filename and not filename.endswith(IMAGE_EXTENSIONS):
        raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")


async def read_image_upload(image_file: Optional[UploadFile]) -> Optional[bytes]:
    """Read a validated upload and return base64 image bytes.

    Returns None when no file was chosen, so callers can treat it as a no-op.
    """
    if image_file is None or not image_file.filename:
        return None
    validate_image_file(image_file)
    raw = await image_file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    return ensure_base64_image(raw)
