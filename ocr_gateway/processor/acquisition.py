"""Image acquisition: one resolver per ingestion channel.

Every resolver returns an `Acquisition`; malformed or hostile input is a
classified failure, never an exception.
"""

import base64
import binascii
from typing import Any

from ocr_gateway.dto.acquisition import Acquisition
from ocr_gateway.dto.error_response import ErrorKind
from ocr_gateway.processor.decoder import decode_acquisition
from ocr_gateway.processor.fetcher import RemoteFetcher
from ocr_gateway.utils.utils import format_size_limit

UPLOAD_FIELD = "image"
BASE64_FIELD = "image"
URL_FIELD = "url"


def _required_string_field(body: Any, field: str) -> tuple[str | None, Acquisition | None]:
    if not isinstance(body, dict):
        return None, Acquisition.fail(ErrorKind.MALFORMED_REQUEST_BODY, "Invalid JSON: expected an object")
    if field not in body or body[field] is None:
        return None, Acquisition.fail(ErrorKind.MISSING_INPUT, f"Missing '{field}' field in JSON body")
    if not isinstance(body[field], str):
        return None, Acquisition.fail(ErrorKind.MALFORMED_REQUEST_BODY, f"'{field}' field must be a string")
    return body[field], None


def resolve_upload(file_name: str | None, stream: bytes | None, max_bytes: int) -> Acquisition:
    """Resolve the multipart `image` file field."""
    if stream is None:
        return Acquisition.fail(ErrorKind.MISSING_INPUT,
                                f"No image file provided. Use '{UPLOAD_FIELD}' field in form data.")

    if len(stream) > max_bytes:
        return Acquisition.fail(ErrorKind.PAYLOAD_TOO_LARGE,
                                "File size exceeds " + format_size_limit(max_bytes) + " limit")

    return decode_acquisition(stream)


def resolve_base64(body: Any, max_bytes: int) -> Acquisition:
    """Resolve a JSON body of the form {"image": "<base64>"}.

    Decoding is strict: characters outside the standard alphabet or bad
    padding are rejected before any image decoding is tried.
    """
    encoded, failure = _required_string_field(body, BASE64_FIELD)
    if failure is not None:
        return failure

    try:
        stream = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return Acquisition.fail(ErrorKind.INVALID_ENCODING, "Invalid base64 encoding")

    if len(stream) > max_bytes:
        return Acquisition.fail(ErrorKind.PAYLOAD_TOO_LARGE,
                                "Image size exceeds " + format_size_limit(max_bytes) + " limit")

    return decode_acquisition(stream)


def resolve_url(body: Any, fetcher: RemoteFetcher) -> Acquisition:
    """Resolve a JSON body of the form {"url": "http(s)://..."}.

    The fetcher enforces scheme, transport capability and the size ceiling;
    decoding only happens once the download fully succeeded.
    """
    url, failure = _required_string_field(body, URL_FIELD)
    if failure is not None:
        return failure

    fetched = fetcher.fetch(url)
    if fetched.failure is not None:
        return Acquisition(failure=fetched.failure)

    return decode_acquisition(fetched.content)
