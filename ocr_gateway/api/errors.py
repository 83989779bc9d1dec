import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ocr_gateway.dto.error_response import ErrorKind, Failure
from ocr_gateway.utils.utils import build_error, build_error_response


class OcrServiceError(Exception):
    """Raised by the dispatcher layer for failures detected before a resolver runs."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.failure = Failure(kind=kind, message=message)


async def ocr_service_error_handler(request: Request, exc: OcrServiceError) -> ORJSONResponse:
    return build_error_response(exc.failure)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    return ORJSONResponse(status_code=exc.status_code,
                          content={"code": exc.status_code, "error": str(exc.detail)},
                          headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    details = "; ".join(
        ".".join(str(part) for part in error.get("loc", ())) + ": " + str(error.get("msg", ""))
        for error in exc.errors()
    )
    return build_error(ErrorKind.MALFORMED_REQUEST_BODY, "Invalid request: " + details)


async def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logging.getLogger("http_access").error(
        "unhandled error on " + request.method + " " + request.url.path + ": " + repr(exc))
    return build_error(ErrorKind.INTERNAL_ERROR, "Internal server error: " + str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OcrServiceError, ocr_service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
