from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Stable classification of every way a request can fail."""

    MISSING_INPUT = "missing_input"
    INVALID_ENCODING = "invalid_encoding"
    UNSUPPORTED_FORMAT = "unsupported_format"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    TLS_UNAVAILABLE = "tls_unavailable"
    FETCH_FAILED = "fetch_failed"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    MALFORMED_REQUEST_BODY = "malformed_request_body"
    ENGINE_ERROR = "engine_error"
    INTERNAL_ERROR = "internal_error"


ERROR_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.MISSING_INPUT: 400,
    ErrorKind.INVALID_ENCODING: 400,
    ErrorKind.UNSUPPORTED_FORMAT: 400,
    ErrorKind.UNSUPPORTED_SCHEME: 400,
    ErrorKind.TLS_UNAVAILABLE: 400,
    ErrorKind.FETCH_FAILED: 400,
    ErrorKind.MALFORMED_REQUEST_BODY: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.ENGINE_ERROR: 500,
    ErrorKind.INTERNAL_ERROR: 500,
}


class Failure(BaseModel):
    """A classified failure, carried as a value instead of an exception."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return ERROR_KIND_STATUS[self.kind]


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    code: int = Field(..., description="HTTP status code, repeated in the body.")
    error: str = Field(..., description="Human readable error message.")
