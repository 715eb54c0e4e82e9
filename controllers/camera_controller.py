"""Controllers for the server-side camera capture view."""

import asyncio
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.responses import StreamingResponse

from services.acquisition.camera import MJPEG_BOUNDARY, CameraManager, mjpeg_preview
from services.errors import AcquisitionFailed


async def stream_preview(request: Request) -> StreamingResponse:
    """Open the camera and stream a live MJPEG preview.

    The device is released when the client disconnects, when the view is
    closed, when a newer preview supersedes it, or when a capture takes the frame.

    Raises:
        HTTPException(503) if the camera cannot be opened.
    """
    camera: CameraManager = request.app.state.camera
    try:
        lease = await asyncio.to_thread(camera.open)
    except AcquisitionFailed as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return StreamingResponse(
        mjpeg_preview(camera, lease),
        media_type=f"multipart/x-mixed-replace; boundary={MJPEG_BOUNDARY}",
    )


async def close_camera(request: Request) -> Dict[str, Any]:
    """Cancel the capture view and release the device."""
    camera: CameraManager = request.app.state.camera
    await asyncio.to_thread(camera.release)
    return {"camera_open": camera.is_open}
