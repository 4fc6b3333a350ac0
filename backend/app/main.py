from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from docker.errors import APIError, DockerException, NotFound
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import VALID_LOG_LEVELS, get_settings, validate_config_on_startup
from app.dependencies import get_docker_gateway
from app.routers import containers, health, images, system, volumes, ws


settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper() if settings.log_level.upper() in VALID_LOG_LEVELS else "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration before serving; release the Docker client on shutdown."""
    validate_config_on_startup(settings)
    logger.info("DockScope API %s starting (environment=%s)", VERSION, settings.environment)

    yield

    get_docker_gateway().close()
    logger.info("Docker client closed")


app = FastAPI(
    title="DockScope API",
    version=VERSION,
    lifespan=lifespan,
)

# comma-separated origins
cors_origins = [
    origin.strip()
    for origin in settings.cors_allowed_origins.split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(containers.router)
app.include_router(images.router)
app.include_router(volumes.router)
app.include_router(system.router)
app.include_router(health.router)
app.include_router(ws.router)


@app.exception_handler(NotFound)
async def docker_not_found_handler(request: Request, exc: NotFound):
    """Unknown container, image or volume."""
    logger.warning(f"Docker object not found: {exc.explanation or exc}")
    return JSONResponse(
        status_code=404,
        content={
            "detail": "Docker object not found",
            "error": exc.explanation or str(exc),
            "error_type": "docker_not_found",
        },
    )


@app.exception_handler(APIError)
async def docker_api_error_handler(request: Request, exc: APIError):
    """Conflicts such as pausing a paused container are client errors."""
    status_code = 400 if exc.is_client_error() else 500
    logger.warning(f"Docker API error ({exc.status_code}): {exc.explanation or exc}")
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": "Docker API request failed",
            "error": exc.explanation or str(exc),
            "error_type": "docker_api_error",
        },
    )


@app.exception_handler(DockerException)
async def docker_error_handler(request: Request, exc: DockerException):
    """Handle Docker connection failures with 500 error."""
    logger.error(f"Docker request failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Docker request failed",
            "error": str(exc),
            "error_type": "docker_error",
        },
    )


@app.get("/api/ping")
async def ping():
    """Liveness probe that never touches the Docker daemon."""
    return {"status": "ok", "version": VERSION}
