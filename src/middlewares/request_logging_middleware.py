import logging
import time
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.config.settings import get_settings

# Error bodies echo upstream messages; keep log lines bounded.
MAX_LOGGED_BODY_CHARS = 500


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self._logger = logging.getLogger(__name__)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        settings = get_settings()
        if not settings.API_LOGGING_ENABLED:
            return await call_next(request)

        started = time.perf_counter()
        error_details: Optional[str] = None

        try:
            response = await call_next(request)
        except Exception:
            self._logger.exception(
                f"{request.method} {request.url.path} raised before a response was formed"
            )
            raise

        if response.status_code >= 400:
            # Reading the body consumes the iterator, so the response is rebuilt.
            response_body = b"".join(
                [chunk async for chunk in response.body_iterator]
            )
            error_details = response_body.decode("utf-8", errors="replace")[
                :MAX_LOGGED_BODY_CHARS
            ]
            response = Response(
                content=response_body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        self._log(request, response.status_code, started, error_details)
        return response

    def _log(
        self,
        request: Request,
        status_code: int,
        started: float,
        error_details: Optional[str],
    ) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        client_host = request.client.host if request.client else "unknown"
        message = (
            f"{request.method} {request.url.path} -> {status_code} "
            f"({elapsed_ms:.1f} ms) client={client_host}"
        )
        if error_details is None:
            self._logger.info(message)
        else:
            self._logger.warning(f"{message} body={error_details}")
