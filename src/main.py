import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.v1.routers import generate
from src.api.v1.services.generation_service import ImageGenerationError
from src.config.settings import get_settings
from src.middlewares.body_size_middleware import BodySizeLimitMiddleware
from src.middlewares.rate_limit_middleware import RateLimitMiddleware
from src.middlewares.request_logging_middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager: logging setup and fail-fast config checks.
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if not settings.GOOGLE_API_KEY:
        logger.error("GOOGLE_API_KEY is not set in environment variables!")
        raise RuntimeError("GOOGLE_API_KEY is not set in environment variables")

    logger.info(
        "Ready to process image generation requests with %s", settings.GEMINI_MODEL
    )
    yield


app = FastAPI(
    title="PixelAlchemy API",
    version="0.1.0",
    description="A relay that forwards image generation requests to the Gemini image model.",
    lifespan=lifespan,
)

# Middlewares wrap in reverse order of registration: request logging is
# outermost, so rate-limited and oversized requests are logged too.
app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(generate.router)


# ==============================================================================
# Global Exception Handlers
# ==============================================================================

_FIELD_ERRORS: Dict[str, Tuple[str, str]] = {
    "prompt": ("Missing required field", "The 'prompt' field is required"),
    "negative": ("Invalid negative prompt", "The 'negative' field must be a string"),
    "image": (
        "Invalid image data",
        "When providing an image, both 'data' and 'mimeType' are required",
    ),
    "mask": (
        "Invalid mask data",
        "When providing a mask, both 'data' and 'mimeType' are required",
    ),
}


def describe_validation_errors(errors: Sequence[Dict[str, Any]]) -> Tuple[str, str]:
    """
    Reduce pydantic validation errors to a single `(error, details)` pair.

    Errors are reported in field order, so a missing prompt wins over a broken
    image, and a broken image wins over a broken mask. A body field without a
    dedicated message is still named in the details.
    """
    for err in errors:
        loc: List[Any] = list(err.get("loc", ()))
        field = loc[1] if len(loc) > 1 and loc[0] == "body" else None
        if field in _FIELD_ERRORS:
            error, details = _FIELD_ERRORS[field]
            if err.get("type") == "value_error":
                details = str(err.get("ctx", {}).get("error", err.get("msg")))
            return error, details
        if isinstance(field, str):
            return "Invalid request body", f"The '{field}' field is invalid"

    return "Invalid request body", "The request body must be a JSON object"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles malformed generation requests, returning a 400 Bad Request.
    The upstream model is never called for these.
    """
    error, details = describe_validation_errors(exc.errors())
    return JSONResponse(status_code=400, content={"error": error, "details": details})


@app.exception_handler(ImageGenerationError)
async def image_generation_exception_handler(
    request: Request, exc: ImageGenerationError
):
    """
    Handles failed generations, returning a 500 with the upstream message attached.
    """
    logger.error("API Error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Image Generation Failed.",
            "details": str(exc),
            "checkLogs": "Check server logs for full traceback.",
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handles all unhandled exceptions, returning a 500 Internal Server Error.
    This prevents sensitive server information from being exposed to clients.
    """
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health", tags=["Health Check"])
async def health_check():
    """
    Simple health check endpoint to confirm the API is running.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.monotonic() - _STARTED_AT,
    }


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
