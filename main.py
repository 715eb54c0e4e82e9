import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from google import genai

from routes.camera_route import router as camera_router
from routes.session_route import router as session_router
from services.acquisition.camera import CameraManager
from services.gemini.avatar_generator import AvatarGenerator
from services.gemini.face_analyzer import FaceScriptAnalyzer
from services.session.session_store import SessionStore
from services.session.workflow import AvatarWorkflow
from utils.app_config import AppConfig

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the application configuration (GEMINI_API_KEY is required)
      - the Gemini client and the analysis/generation services
      - the in-memory session store and the camera manager
    and attach them to `app.state`.
    """
    config = AppConfig.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    app.state.config = config

    try:
        gemini_client = genai.Client(api_key=config.api_key)
    except Exception as exc:
        raise RuntimeError("Failed to initialize Gemini client") from exc
    app.state.gemini_client = gemini_client

    session_store = SessionStore(max_sessions=config.max_sessions, idle_ttl=config.session_ttl)
    app.state.session_store = session_store
    app.state.workflow = AvatarWorkflow(
        session_store,
        FaceScriptAnalyzer(gemini_client, model=config.analysis_model, timeout=config.request_timeout),
        AvatarGenerator(gemini_client, model=config.image_model, timeout=config.request_timeout),
    )
    app.state.camera = CameraManager(camera_index=config.camera_index)
    LOGGER.info(
        "FaceScript ready (analysis_model=%s, image_model=%s, timeout=%s)",
        config.analysis_model,
        config.image_model,
        config.request_timeout,
    )

    try:
        yield
    finally:
        # The camera must never outlive the application.
        app.state.camera.release()
        aclose = getattr(getattr(gemini_client, "aio", None), "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as exc:
                LOGGER.warning("Error while closing Gemini client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(title="FaceScript AI", lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports Gemini client presence and open sessions.
        """
        has_gemini = getattr(request.app.state, "gemini_client", None) is not None
        store = getattr(request.app.state, "session_store", None)
        camera = getattr(request.app.state, "camera", None)
        return {
            "ok": True,
            "gemini_available": has_gemini,
            "sessions": len(store) if store is not None else 0,
            "camera_open": bool(camera and camera.is_open),
        }

    # Register application routers
    app.include_router(session_router)
    app.include_router(camera_router)

    return app


app = create_app()
