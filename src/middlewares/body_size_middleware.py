from typing import List

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.config.settings import get_settings


def payload_too_large(max_bytes: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={
            "error": "Payload too large",
            "details": f"Request bodies are limited to {max_bytes} bytes",
        },
    )


class BodySizeLimitMiddleware:
    """
    Rejects request bodies larger than `MAX_REQUEST_BODY_BYTES`.

    A declared Content-Length is checked up front. Bodies without one (chunked
    uploads) are buffered and counted as they arrive, then replayed to the app.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        max_bytes = get_settings().MAX_REQUEST_BODY_BYTES
        content_length = Headers(scope=scope).get("content-length")

        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse(
                    status_code=400,
                    content={
                        "error": "Invalid request body",
                        "details": "The Content-Length header must be an integer",
                    },
                )
                await response(scope, receive, send)
                return
            if declared > max_bytes:
                await payload_too_large(max_bytes)(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        messages: List[Message] = []
        received = 0
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > max_bytes:
                await payload_too_large(max_bytes)(scope, receive, send)
                return
            if not message.get("more_body", False):
                break

        async def replay_receive() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay_receive, send)
