import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables at the very beginning
load_dotenv()

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from app.api import detection, system  # noqa: E402
from app.config import settings  # noqa: E402
from app.core.errors import DetectionServiceError  # noqa: E402
from app.integrations import redis_client  # noqa: E402
from app.integrations.cloudinary_store import CloudinaryStore  # noqa: E402
from app.integrations.inference.client import InferenceClient  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborator clients once; routes get them through app.state."""
    redis_client.initialize()
    app.state.store = CloudinaryStore.from_settings(settings)
    app.state.detector = InferenceClient.from_settings(settings)
    logger.info("[STARTUP] Detection service ready")

    yield

    await app.state.detector.close()
    logger.info("[SHUTDOWN] Detection service stopped")


app = FastAPI(title="Media Authenticity Detection API", lifespan=lifespan)


@app.exception_handler(DetectionServiceError)
async def detection_error_handler(request: Request, exc: DetectionServiceError):
    if exc.status_code >= 500:
        logger.error(f"[ERROR HANDLER] {exc.status_code} {exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    try:
        code = HTTPStatus(exc.status_code).phrase.lower().replace(" ", "_")
    except ValueError:
        code = "http_error"
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.info(f"[ERROR HANDLER] Returning {exc.status_code} to client: {message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": code, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"[ERROR HANDLER] Unhandled {exc.__class__.__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=DetectionServiceError().to_dict())


# ---- CORS ----
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Routers ----
app.include_router(system.router)
app.include_router(detection.router)
if settings.enable_diagnostics:
    app.include_router(detection.diagnostics_router)
