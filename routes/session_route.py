"""FastAPI routes for face-to-avatar sessions."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, Request, UploadFile

from controllers.session_controller import (
	capture_from_camera,
	close_session,
	dismiss_acquisition_error,
	download_avatar,
	get_input_preview,
	get_script,
	get_session_state,
	request_avatar,
	reset_session,
	start_session,
	submit_image,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	try:
		return await get_session_state(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{session_id}")
async def close_session_route(request: Request, session_id: str):
	try:
		return await close_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/image")
async def submit_image_route(
	request: Request,
	background: BackgroundTasks,
	session_id: str,
	file: Optional[UploadFile] = File(None),
	source: str = Form("upload"),
):
	"""Upload a photo (or a browser camera frame) and start face analysis."""
	try:
		return await submit_image(request, background, session_id, file, source)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/camera/capture")
async def capture_route(request: Request, background: BackgroundTasks, session_id: str):
	"""Capture a frame from the server camera and start face analysis."""
	try:
		return await capture_from_camera(request, background, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/acquisition-error/dismiss")
async def dismiss_acquisition_error_route(request: Request, session_id: str):
	try:
		return await dismiss_acquisition_error(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/avatar")
async def request_avatar_route(request: Request, background: BackgroundTasks, session_id: str):
	"""Generate an avatar from the session's script."""
	try:
		return await request_avatar(request, background, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/avatar")
async def download_avatar_route(request: Request, session_id: str):
	"""Download the generated avatar as my-ai-avatar.png."""
	try:
		return await download_avatar(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/reset")
async def reset_session_route(request: Request, session_id: str):
	try:
		return await reset_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/script")
async def get_script_route(request: Request, session_id: str):
	"""Return the current script as plain text for copying."""
	try:
		return await get_script(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/input-image/preview")
async def get_input_preview_route(request: Request, session_id: str):
	try:
		return await get_input_preview(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
