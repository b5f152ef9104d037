from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from .db import DATABASE_URL, engine  # noqa: E402
from .middleware import install_middleware  # noqa: E402
from .routers import activities, auth, posts, stats, system, users  # noqa: E402
from .schemas import ErrorResponse  # noqa: E402
from .settings import CORS_ORIGINS, is_development  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config()
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    # Escape % so ConfigParser interpolation leaves URL-encoded passwords alone
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
    return cfg


def run_migrations() -> None:
    logger.info("run_migrations: Starting...")
    try:
        alembic_cfg = _alembic_config()
        # Release pooled connections before Alembic opens its own
        engine.dispose()
        command.upgrade(alembic_cfg, "head")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    try:
        run_migrations()
        _STARTUP_COMPLETE = True
        logger.info("Startup tasks completed.")
    except Exception as e:
        logger.error(f"Startup tasks failed: {e}", exc_info=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    run_startup_tasks()
    logger.info("Quill API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Quill API",
    version="1.0.0",
    description="Blog and content-management API",
    lifespan=lifespan,
)

if CORS_ORIGINS == ["*"]:
    logger.warning("CORS_ORIGINS=* lets any site call the API with credentials")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=600,
)

install_middleware(app)


# ============================================================================
# ERROR RESPONSES
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as ``{success: false, message}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(message="Validation Error", errors=errors).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            message=str(exc) if is_development() else "Server Error"
        ).model_dump(exclude_none=True),
    )


# Include all routers. Fixed /users/... paths register before /users/{user_id}.
app.include_router(system.router)
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(activities.router)
app.include_router(stats.router)
app.include_router(users.router)
