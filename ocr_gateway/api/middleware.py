import time

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ocr_gateway.api.errors import OcrServiceError
from ocr_gateway.dto.error_response import ErrorKind
from ocr_gateway.settings import settings
from ocr_gateway.utils.utils import build_error, build_error_response, format_size_limit, setup_logging


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every request. Never touches the response."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.log = setup_logging(component_name="http_access", log_level=settings.LOG_LEVEL)

    async def dispatch(self, request, call_next):
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            self.log.info(f"[{request.method}] {request.url.path} - Status: {status_code} - Duration: {duration_ms}ms")


class PayloadLimitMiddleware:
    """ Enforces the request body ceiling before routing.

    A declared Content-Length over the ceiling is rejected right away. Bodies
    without one (chunked) are counted while the application reads them and
    rejected as soon as the running total passes the ceiling.
    """

    def __init__(self, app: ASGIApp, max_body_size: int | None = None) -> None:
        self.app = app
        self.max_body_size = settings.MAX_PAYLOAD_BYTES if max_body_size is None else max_body_size
        self.error_message = "Request body exceeds " + format_size_limit(self.max_body_size) + " limit"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length", "")
        if content_length.isdigit():
            if int(content_length) > self.max_body_size:
                await build_error(ErrorKind.PAYLOAD_TOO_LARGE, self.error_message)(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise OcrServiceError(ErrorKind.PAYLOAD_TOO_LARGE, self.error_message)
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except OcrServiceError as exc:
            if response_started or exc.failure.kind != ErrorKind.PAYLOAD_TOO_LARGE:
                raise
            await build_error_response(exc.failure)(scope, receive, send)
