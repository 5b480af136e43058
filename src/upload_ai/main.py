"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from upload_ai.api.dependencies import is_supabase_backend
from upload_ai.api.routes import router
from upload_ai.config import settings

logger = structlog.get_logger()


def configure_logging(level: str | None = None) -> None:
    """Filter structlog output at *level* (defaults to settings.log_level)."""
    name = (level or settings.log_level).upper()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(name, logging.INFO)
        ),
    )


# ---------------------------------------------------------------------------
# CORS configuration
# ---------------------------------------------------------------------------


def _get_allowed_origins() -> list[str]:
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return origins or ["*"]


_ALLOWED_ORIGINS = _get_allowed_origins()


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and shutdown."""
    logger.info(
        "app.startup",
        allowed_origins=_ALLOWED_ORIGINS,
        storage="supabase" if is_supabase_backend() else "local",
        llm_provider=settings.llm_provider,
    )
    yield
    logger.info("app.shutdown")


configure_logging()

app = FastAPI(
    title="upload.ai",
    description="Upload a video, transcribe its audio and generate AI completions from it",
    version="0.1.0",
    lifespan=lifespan,
)

# Credentials cannot be combined with a wildcard origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials="*" not in _ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400), like out-of-range parameters."""
    logger.warning("request.invalid", path=request.url.path, errors=exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


@app.get("/health")
async def health_check():
    return {"status": "ok"}


def run() -> None:
    """Serve the API with uvicorn on settings.host:settings.port."""
    import uvicorn

    uvicorn.run("upload_ai.main:app", host=settings.host, port=settings.port)
