"""
Request body size limit.

Pure ASGI middleware: requests whose declared Content-Length is over the cap
are answered with 413 before the app runs, and every other request gets a
counting `receive` that raises RequestBodyTooLarge as soon as the bytes read
exceed the cap. Chunked uploads are therefore stopped mid-stream instead of
being spooled to disk in full.

The cap is MAX_INPUT_MB of file data plus a fixed allowance for multipart
boundaries and form fields.
"""
import logging

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Multipart framing, part headers and the small text fields
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class RequestBodyTooLarge(HTTPException):
    """
    Raised from receive() when the body passes the cap.

    Subclasses HTTPException so FastAPI's body parsing re-raises it
    unchanged instead of turning it into a 400.
    """

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(
            status_code=413,
            detail=f"Uploaded file exceeds the {max_bytes // (1024 * 1024)} MB limit"
        )


def body_too_large_response(exc: RequestBodyTooLarge) -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": exc.detail})


async def request_body_too_large_handler(request, exc: RequestBodyTooLarge):
    """Exception handler rendering RequestBodyTooLarge as {"error": ...}."""
    logger.warning(
        f"Rejected request body over {exc.max_bytes} bytes",
        extra={"event": "request_too_large", "path": request.url.path}
    )
    return body_too_large_response(exc)


class BodySizeLimitMiddleware:
    """Answer 413 for bodies larger than max_bytes plus multipart overhead."""

    def __init__(self, app: ASGIApp, max_bytes: int, overhead_bytes: int = MULTIPART_OVERHEAD_BYTES):
        self.app = app
        self.max_bytes = max_bytes
        self.limit = max_bytes + overhead_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.limit:
            logger.warning(
                f"Rejected request body of {content_length} bytes (limit {self.limit})",
                extra={"event": "request_too_large", "path": scope.get("path")}
            )
            response = body_too_large_response(RequestBodyTooLarge(self.max_bytes))
            await response(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.limit:
                    raise RequestBodyTooLarge(self.max_bytes)
            return message

        async def tracking_send(message: Message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except RequestBodyTooLarge as exc:
            # Normally rendered by the app's exception handler; this covers
            # reads that happen outside route handling
            if response_started:
                raise
            logger.warning(
                f"Rejected streamed request body over {self.limit} bytes",
                extra={"event": "request_too_large", "path": scope.get("path")}
            )
            await body_too_large_response(exc)(scope, receive, send)
