from fastapi import APIRouter, HTTPException, Request

from controllers.camera_controller import close_camera, stream_preview

router = APIRouter(prefix="/camera", tags=["camera"])


@router.get("/preview")
async def camera_preview_route(request: Request):
    """Stream the live camera preview as MJPEG."""
    try:
        return await stream_preview(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.delete("")
async def close_camera_route(request: Request):
    """Close the capture view and release the camera."""
    try:
        return await close_camera(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
