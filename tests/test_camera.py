from __future__ import annotations

import asyncio
import base64

import anyio
import numpy as np
import pytest

from services.acquisition import camera as camera_module
from services.acquisition.camera import CAMERA_DENIED_MESSAGE, CameraManager, mjpeg_preview
from services.errors import AcquisitionFailed


class FakeCapture:
    instances: list["FakeCapture"] = []
    available: set[int] = {0}
    frame_ok = True

    def __init__(self, index: int):
        self.index = index
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self) -> bool:  # noqa: N802
        return self.index in FakeCapture.available

    def read(self):
        if not FakeCapture.frame_ok:
            return False, None
        return True, np.zeros((48, 64, 3), dtype=np.uint8)

    def release(self) -> None:
        self.released = True


@pytest.fixture(autouse=True)
def fake_cv2(monkeypatch: pytest.MonkeyPatch):
    FakeCapture.instances = []
    FakeCapture.available = {0}
    FakeCapture.frame_ok = True
    monkeypatch.setattr(camera_module.cv2, "VideoCapture", FakeCapture)
    yield


def test_capture_returns_base64_jpeg_and_releases_device() -> None:
    camera = CameraManager()

    image_b64 = camera.capture_b64()

    raw = base64.b64decode(image_b64)
    assert raw[:2] == b"\xff\xd8"
    assert all(capture.released for capture in FakeCapture.instances)
    assert not camera.is_open


def test_capture_uses_open_preview_and_closes_it() -> None:
    camera = CameraManager()
    lease = camera.open()

    camera.capture_b64()

    assert len(FakeCapture.instances) == 1
    assert FakeCapture.instances[0].released
    assert camera.read_jpeg(lease) is None


def test_denied_camera_raises_and_releases_probes() -> None:
    FakeCapture.available = set()
    camera = CameraManager(probe_indices=range(3))

    with pytest.raises(AcquisitionFailed) as excinfo:
        camera.capture_b64()

    assert str(excinfo.value) == CAMERA_DENIED_MESSAGE
    assert [capture.index for capture in FakeCapture.instances] == [0, 1, 2]
    assert all(capture.released for capture in FakeCapture.instances)


def test_falls_back_to_next_available_index() -> None:
    FakeCapture.available = {2}
    camera = CameraManager(camera_index=0, probe_indices=range(4))

    camera.open()

    assert FakeCapture.instances[-1].index == 2
    assert camera.is_open


def test_unreadable_frame_releases_device() -> None:
    FakeCapture.frame_ok = False
    camera = CameraManager()

    with pytest.raises(AcquisitionFailed):
        camera.capture_b64()
    assert FakeCapture.instances[0].released
    assert not camera.is_open


def test_new_preview_supersedes_previous_one() -> None:
    camera = CameraManager()
    first = camera.open()
    second = camera.open()

    assert FakeCapture.instances[0].released
    assert camera.read_jpeg(first) is None
    assert camera.read_jpeg(second)[:2] == b"\xff\xd8"

    camera.release(first)
    assert camera.is_open
    camera.release(second)
    assert not camera.is_open


def test_preview_stream_releases_device_when_consumer_stops() -> None:
    camera = CameraManager()

    async def consume() -> bytes:
        lease = camera.open()
        stream = mjpeg_preview(camera, lease, fps=0)
        chunk = await stream.__anext__()
        await stream.aclose()
        return chunk

    chunk = asyncio.run(consume())

    assert chunk.startswith(b"--frame\r\nContent-Type: image/jpeg")
    assert not camera.is_open
    assert FakeCapture.instances[0].released


def test_preview_stream_releases_device_when_task_group_is_cancelled() -> None:
    camera = CameraManager()
    chunks: list[bytes] = []

    async def stream(lease: int) -> None:
        async for chunk in mjpeg_preview(camera, lease, fps=50):
            chunks.append(chunk)

    async def disconnect_after_first_frames() -> None:
        lease = camera.open()
        async with anyio.create_task_group() as tg:
            tg.start_soon(stream, lease)
            await anyio.sleep(0.1)
            tg.cancel_scope.cancel()

    asyncio.run(disconnect_after_first_frames())

    assert chunks
    assert not camera.is_open
    assert FakeCapture.instances[0].released


def test_preview_stream_ends_after_capture() -> None:
    camera = CameraManager()

    async def consume() -> int:
        lease = camera.open()
        chunks = 0
        async for _ in mjpeg_preview(camera, lease, fps=0):
            chunks += 1
            camera.capture_b64()
        return chunks

    assert asyncio.run(consume()) == 1
    assert not camera.is_open
