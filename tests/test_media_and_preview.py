from __future__ import annotations

import asyncio
import base64
import io

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image
from starlette.datastructures import Headers

from services.acquisition.preview_generator import PreviewGenerator
from utils.media_validation import ensure_base64_image, read_image_upload


def _jpeg_bytes(size=(320, 240)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 120, 80)).save(buffer, format="JPEG", quality=80)
    return buffer.getvalue()


def _upload(data: bytes, filename: str | None = "face.jpg", content_type: str | None = "image/jpeg") -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else None
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=headers)


def test_raw_bytes_are_base64_encoded_without_recompression() -> None:
    raw = _jpeg_bytes()

    assert base64.b64decode(ensure_base64_image(raw)) == raw


def test_base64_text_passes_through() -> None:
    encoded = base64.b64encode(_jpeg_bytes())

    assert ensure_base64_image(encoded) == encoded


def test_data_url_prefix_is_stripped() -> None:
    encoded = base64.b64encode(_jpeg_bytes())

    assert ensure_base64_image(b"data:image/jpeg;base64," + encoded) == encoded


def test_read_upload_returns_base64() -> None:
    raw = _jpeg_bytes()

    result = asyncio.run(read_image_upload(_upload(raw)))

    assert base64.b64decode(result) == raw


def test_missing_file_is_a_no_op() -> None:
    assert asyncio.run(read_image_upload(None)) is None
    assert asyncio.run(read_image_upload(_upload(b"", filename=""))) is None


def test_empty_upload_is_rejected() -> None:
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(read_image_upload(_upload(b"")))
    assert excinfo.value.status_code == 400


def test_non_image_upload_is_rejected() -> None:
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(read_image_upload(_upload(b"%PDF-1.7", filename="cv.pdf", content_type="application/pdf")))
    assert excinfo.value.status_code == 415


def test_preview_fits_within_max_size() -> None:
    encoded = base64.b64encode(_jpeg_bytes((640, 320)))

    png = PreviewGenerator(max_size=(160, 160)).create_preview_from_base64(encoded)

    preview = Image.open(io.BytesIO(png))
    assert preview.format == "PNG"
    assert preview.size == (160, 80)


def test_preview_rejects_non_image_data() -> None:
    with pytest.raises(ValueError):
        PreviewGenerator().create_preview_from_base64(base64.b64encode(b"not an image"))
