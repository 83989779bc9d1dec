"""Utility helpers for the OCR gateway.

This module centralizes shared behaviors across the API and processor layers:
response shaping for results and errors, content-based file type detection,
service info payloads and logging setup.
"""

import logging
import sys
import time
from typing import Any

import filetype
import orjson
from fastapi import Response
from fastapi.responses import ORJSONResponse

from ocr_gateway.dto.error_response import ErrorKind, ErrorResponse, Failure
from ocr_gateway.settings import MEBIBYTE, settings

ERROR_KIND_HEADER = "X-Error-Kind"


def get_health_info() -> dict[str, Any]:
    """Return the payload of the `/api/health` endpoint.

    Returns:
        dict: status, service version and the current unix timestamp.
    """
    return {"status": "ok",
            "version": settings.OCR_SERVICE_VERSION,
            "timestamp": int(time.time())}


def get_version_info() -> dict[str, Any]:
    """Return the payload of the `/api/version` endpoint."""
    return {"name": settings.OCR_SERVICE_APP_NAME,
            "version": settings.OCR_SERVICE_VERSION,
            "api_version": settings.OCR_SERVICE_API_VERSION}


def format_size_limit(max_bytes: int) -> str:
    """Render a byte ceiling for error messages, e.g. 10485760 -> '10MB'."""
    if max_bytes >= MEBIBYTE and max_bytes % MEBIBYTE == 0:
        return f"{max_bytes // MEBIBYTE}MB"
    return f"{max_bytes} bytes"


def build_error_response(failure: Failure) -> ORJSONResponse:
    """Build the JSON response for a classified failure.

    The body is always `{"code": <status>, "error": <message>}`; the failure
    kind travels in the `X-Error-Kind` header so clients do not need to
    pattern-match on message text.

    Args:
        failure: The classified failure.

    Returns:
        ORJSONResponse: Response with the status mapped from the failure kind.
    """
    body = ErrorResponse(code=failure.status_code, error=failure.message)
    return ORJSONResponse(status_code=failure.status_code,
                          content=body.model_dump(),
                          headers={ERROR_KIND_HEADER: failure.kind.value})


def build_error(kind: ErrorKind, message: str) -> ORJSONResponse:
    return build_error_response(Failure(kind=kind, message=message))


def build_ocr_response(result: Any, elapsed_ms: int) -> Response:
    """Build the success response from an engine result.

    Results that are (or parse to) a JSON object get `processing_time_ms`
    attached. Text that is not valid JSON is passed through untouched.

    Args:
        result: Engine output: a dict/list, or JSON text.
        elapsed_ms: Inference duration in milliseconds.

    Returns:
        Response: 200 response carrying the engine result.
    """
    if isinstance(result, (str, bytes)):
        try:
            result = orjson.loads(result)
        except orjson.JSONDecodeError:
            return Response(content=result, media_type="application/json")

    if isinstance(result, dict):
        result = dict(result)
        result.setdefault("processing_time_ms", elapsed_ms)

    return ORJSONResponse(content=result)


def detect_file_type(stream: bytes) -> object | None:
    """Best-effort file type detection using the `filetype` library.

    Args:
        stream: Raw bytes to inspect.

    Returns:
        object | None: Detected type descriptor or None if unknown.
    """
    file_type = None
    try:
        file_type = filetype.guess(stream)
    except Exception:
        logging.error("Could not determine file Type")
    return file_type


def setup_logging(component_name: str = "config_logger", log_level: int = 20) -> logging.Logger:
    """Configure a logger that writes to stdout with a consistent format.

    Args:
        component_name: Logger name to configure.
        log_level: Logging level to set on the logger and handler.

    Returns:
        logging.Logger: Configured logger instance.
    """
    root_logger = logging.getLogger(component_name)
    log_format = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'
    log_handler = logging.StreamHandler(sys.stdout)
    log_handler.setFormatter(logging.Formatter(fmt=log_format))
    log_handler.setLevel(level=log_level)
    root_logger.setLevel(level=log_level)
    root_logger.propagate = False

    # only add the handler if a previous one does not exists
    handler_exists = False
    for h in root_logger.handlers:
        if isinstance(h, logging.StreamHandler) and h.level == log_handler.level:
            handler_exists = True
            break

    if not handler_exists:
        root_logger.addHandler(log_handler)

    return root_logger
