"""Server-side camera access with OpenCV.

`CameraManager` keeps at most one device open. Every way of leaving the
capture view releases it: cancelling, capturing a frame, opening a newer
preview (which supersedes the old one), a preview client disconnecting, and
application shutdown.

Example:
    camera = CameraManager(camera_index=0)
    image_b64 = camera.capture_b64()
"""
from __future__ import annotations

import asyncio
import base64
import logging
import threading
from typing import AsyncIterator, Iterable, Optional

import cv2

from services.errors import AcquisitionFailed

LOGGER = logging.getLogger(__name__)

CAMERA_DENIED_MESSAGE = "Unable to access camera. Please allow camera permissions."
JPEG_QUALITY = 80  # 0.8 on the browser's 0..1 scale
PROBE_INDICES = range(0, 10)
MJPEG_BOUNDARY = "frame"


class CameraManager:
    """Own the camera device handle and hand out leases for the preview.

    Args:
        camera_index: Preferred device index. When it cannot be opened, indices
            0..9 are probed in order.
        jpeg_quality: JPEG quality (0-100) used for captures and preview frames.
    """

    def __init__(self, camera_index: int = 0, jpeg_quality: int = JPEG_QUALITY, probe_indices: Iterable[int] = PROBE_INDICES):
        self.camera_index = camera_index
        self.jpeg_quality = jpeg_quality
        self.probe_indices = list(probe_indices)
        self._lock = threading.Lock()
        self._capture: Optional[cv2.VideoCapture] = None
        self._lease = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> int:
        """Open the device for a new capture view and return its lease.

        Any view already holding the device is superseded and its handle released.

        Raises:
            AcquisitionFailed: If no camera can be opened.
        """
        with self._lock:
            self._release_locked()
            self._capture = self._open_device()
            self._lease += 1
            LOGGER.info("Camera %s opened (lease %s)", self.camera_index, self._lease)
            return self._lease

    def read_jpeg(self, lease: int) -> Optional[bytes]:
        """Return the current frame as JPEG bytes, or None once the lease is gone."""
        with self._lock:
            if self._capture is None or lease != self._lease:
                return None
            frame = self._read_frame_locked()
        return self._encode(frame)

    def capture_b64(self) -> bytes:
        """Capture one frame at native resolution and return it as base64 JPEG.

        Uses the open preview device when there is one; otherwise opens the
        camera just for this frame. The device is released either way.

        Raises:
            AcquisitionFailed: On denial, device error, or an empty frame.
        """
        with self._lock:
            try:
                if self._capture is None:
                    self._capture = self._open_device()
                frame = self._read_frame_locked()
            finally:
                self._release_locked()
        return base64.b64encode(self._encode(frame))

    def release(self, lease: Optional[int] = None) -> None:
        """Release the device; with a lease, only if that lease is still current."""
        with self._lock:
            if lease is not None and lease != self._lease:
                return
            self._release_locked()

    def _open_device(self) -> cv2.VideoCapture:
        candidates = [self.camera_index] + [i for i in self.probe_indices if i != self.camera_index]
        for index in candidates:
            try:
                capture = cv2.VideoCapture(index)
            except Exception as exc:
                LOGGER.error("Camera %s raised while opening: %s", index, exc)
                continue
            if capture.isOpened():
                if index != self.camera_index:
                    LOGGER.info("Camera %s unavailable, using %s", self.camera_index, index)
                return capture
            capture.release()
        raise AcquisitionFailed(CAMERA_DENIED_MESSAGE)

    def _read_frame_locked(self):
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise AcquisitionFailed("Unable to read a frame from the camera.")
        return frame

    def _release_locked(self) -> None:
        if self._capture is not None:
            try:
                self._capture.release()
            finally:
                self._capture = None
                LOGGER.info("Camera released")

    def _encode(self, frame) -> bytes:
        ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(self.jpeg_quality)])
        if not ok:
            raise AcquisitionFailed("Unable to encode the camera frame.")
        return buffer.tobytes()


async def mjpeg_preview(camera: CameraManager, lease: int, fps: float = 15.0) -> AsyncIterator[bytes]:
    """Yield multipart MJPEG chunks until the lease is superseded or released.

    The device is released when the consumer stops iterating (client disconnect
    or shutdown) unless a newer view has taken it over. The release in `finally`
    stays synchronous; an await there is cancelled along with the task.
    """
    delay = 1.0 / fps if fps > 0 else 0
    try:
        while True:
            try:
                frame = await asyncio.to_thread(camera.read_jpeg, lease)
            except AcquisitionFailed as exc:
                LOGGER.error("Camera preview stopped: %s", exc)
                break
            if frame is None:
                break
            yield (
                f"--{MJPEG_BOUNDARY}\r\nContent-Type: image/jpeg\r\nContent-Length: {len(frame)}\r\n\r\n".encode("ascii")
                + frame
                + b"\r\n"
            )
            await asyncio.sleep(delay)
    finally:
        camera.release(lease)
