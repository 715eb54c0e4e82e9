"""Session lifecycle helpers for the face-to-avatar workflow."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, HTTPException, Request, UploadFile
from fastapi.responses import PlainTextResponse, Response

from models.session_events import AcquisitionErrorDismissed, AcquisitionFailedEvent, ResetRequested
from models.session_models import Phase
from services.acquisition.camera import CameraManager
from services.acquisition.preview_generator import PreviewGenerator
from services.errors import AcquisitionFailed, InvalidTransition
from services.session.session_store import SessionStore
from services.session.state_machine import SessionStateMachine
from services.session.workflow import AvatarWorkflow
from utils.media_validation import read_image_upload

LOGGER = logging.getLogger(__name__)
AVATAR_FILENAME = "my-ai-avatar.png"


def _get_machine(request: Request, session_id: str) -> SessionStateMachine:
	store: SessionStore = request.app.state.session_store
	try:
		return store.get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc


def _conflict(exc: InvalidTransition) -> HTTPException:
	return HTTPException(status_code=409, detail=str(exc))


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new idle session and return its snapshot."""
	store: SessionStore = request.app.state.session_store
	machine = store.create()
	LOGGER.info("Session %s started", machine.session_id)
	return machine.snapshot.to_dict()


async def get_session_state(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the snapshot; pending notifications are delivered once."""
	machine = _get_machine(request, session_id)
	return machine.drain_notifications().to_dict()


async def close_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Forget a session entirely."""
	_get_machine(request, session_id)
	store: SessionStore = request.app.state.session_store
	store.discard(session_id)
	return {"session_id": session_id, "closed": True}


def _start_analysis(
	request: Request, background: BackgroundTasks, session_id: str, image_b64: bytes, source: str
) -> Dict[str, Any]:
	workflow: AvatarWorkflow = request.app.state.workflow
	try:
		snapshot = workflow.begin_analysis(session_id, image_b64, source=source)
	except InvalidTransition as exc:
		raise _conflict(exc) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	background.add_task(workflow.run_analysis, session_id, snapshot.epoch, image_b64)
	return snapshot.to_dict()


async def submit_image(
	request: Request,
	background: BackgroundTasks,
	session_id: str,
	file: Optional[UploadFile],
	source: str = "upload",
) -> Dict[str, Any]:
	"""Accept an uploaded or browser-captured photo and start analysis.

	Args:
		request: FastAPI Request object (used to access app.state).
		background: Background task queue that runs the remote analysis after the response.
		session_id: Target session id.
		file: Uploaded photo; raw image bytes or base64 text. None when no file was chosen.
		source: "upload" or "camera", recorded for logging.

	Returns:
		The session snapshot, in the analyzing phase unless no file was chosen.
	"""
	machine = _get_machine(request, session_id)
	image_b64 = await read_image_upload(file)
	if image_b64 is None:
		return machine.snapshot.to_dict()
	return _start_analysis(request, background, session_id, image_b64, source)


async def capture_from_camera(request: Request, background: BackgroundTasks, session_id: str) -> Dict[str, Any]:
	"""Grab a frame from the server camera and start analysis.

	A camera failure is recorded on the session as an inline acquisition error;
	no analysis is started.
	"""
	machine = _get_machine(request, session_id)
	if machine.phase is not Phase.IDLE:
		raise HTTPException(status_code=409, detail=f"Session is {machine.phase.value}; reset before capturing again.")
	camera: CameraManager = request.app.state.camera
	try:
		image_b64 = await asyncio.to_thread(camera.capture_b64)
	except AcquisitionFailed as exc:
		LOGGER.error("Camera capture failed for session %s: %s", session_id, exc)
		try:
			return machine.transition(AcquisitionFailedEvent(message=str(exc))).to_dict()
		except InvalidTransition as conflict:
			raise _conflict(conflict) from conflict
	return _start_analysis(request, background, session_id, image_b64, "camera")


async def dismiss_acquisition_error(request: Request, session_id: str) -> Dict[str, Any]:
	"""Clear the inline camera error shown in the acquisition view."""
	machine = _get_machine(request, session_id)
	try:
		return machine.transition(AcquisitionErrorDismissed()).to_dict()
	except InvalidTransition as exc:
		raise _conflict(exc) from exc


async def request_avatar(request: Request, background: BackgroundTasks, session_id: str) -> Dict[str, Any]:
	"""Start avatar generation from the current script."""
	_get_machine(request, session_id)
	workflow: AvatarWorkflow = request.app.state.workflow
	try:
		snapshot = workflow.begin_generation(session_id)
	except InvalidTransition as exc:
		raise _conflict(exc) from exc
	background.add_task(workflow.run_generation, session_id, snapshot.epoch, snapshot.script)
	return snapshot.to_dict()


async def reset_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the session to idle, clearing every field."""
	machine = _get_machine(request, session_id)
	return machine.transition(ResetRequested()).to_dict()


async def get_script(request: Request, session_id: str) -> PlainTextResponse:
	"""Return exactly the current script, whatever the phase, for clipboard copy."""
	machine = _get_machine(request, session_id)
	return PlainTextResponse(machine.snapshot.script or "")


async def download_avatar(request: Request, session_id: str) -> Response:
	"""Return the generated avatar as a PNG attachment.

	Raises:
		HTTPException(404) if no avatar has been generated.
	"""
	machine = _get_machine(request, session_id)
	snapshot = machine.snapshot
	if not snapshot.generated_image:
		raise HTTPException(status_code=404, detail="Avatar not generated yet")
	return Response(
		content=base64.b64decode(snapshot.generated_image),
		media_type="image/png",
		headers={"Content-Disposition": f'attachment; filename="{AVATAR_FILENAME}"'},
	)


async def get_input_preview(request: Request, session_id: str) -> Response:
	"""Return a PNG preview of the acquired photo."""
	machine = _get_machine(request, session_id)
	snapshot = machine.snapshot
	if not snapshot.input_image:
		raise HTTPException(status_code=404, detail="No image acquired for this session")
	try:
		preview = PreviewGenerator().create_preview_from_base64(snapshot.input_image)
	except ValueError as exc:
		raise HTTPException(status_code=422, detail=str(exc)) from exc
	return Response(content=preview, media_type="image/png")
