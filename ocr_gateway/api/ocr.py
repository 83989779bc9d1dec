import traceback
from typing import Any

import orjson
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import ORJSONResponse
from starlette.datastructures import UploadFile

from ocr_gateway.api.errors import OcrServiceError
from ocr_gateway.dto.acquisition import Acquisition
from ocr_gateway.dto.error_response import ErrorKind
from ocr_gateway.processor.acquisition import UPLOAD_FIELD
from ocr_gateway.processor.decoder import UNSUPPORTED_FORMAT_MESSAGE
from ocr_gateway.processor.processor import Processor
from ocr_gateway.utils.utils import build_error, build_error_response, build_ocr_response

ocr_api = APIRouter(prefix="/api")


def get_processor(request: Request) -> Processor:
    return request.app.state.processor


async def read_json_body(request: Request) -> Any:
    body = await request.body()
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise OcrServiceError(ErrorKind.MALFORMED_REQUEST_BODY, "Invalid JSON: " + str(exc)) from exc


async def read_upload(request: Request) -> tuple[str | None, bytes | None]:
    """ Reads the `image` file field of a multipart form.

    A missing field, or an `image` field sent as plain text, yields
    (None, None) so the upload resolver reports the missing file.
    """
    async with request.form() as form:
        image = form.get(UPLOAD_FIELD)
        if not isinstance(image, UploadFile):
            return None, None
        return image.filename, await image.read()


def _respond(processor: Processor, acquisition: Acquisition) -> Response:
    """ Turns an acquisition outcome into exactly one response:
    the engine result on success, a formatted error otherwise.
    """

    if not acquisition.ok:
        if acquisition.failure is not None:
            return build_error_response(acquisition.failure)
        return build_error(ErrorKind.UNSUPPORTED_FORMAT, UNSUPPORTED_FORMAT_MESSAGE)

    try:
        result, elapsed_ms = processor.recognize(acquisition.image)  # type: ignore[arg-type]
        return build_ocr_response(result, elapsed_ms)
    except Exception as exc:
        processor.log.error("OCR engine exception: " + str(traceback.format_exc()))
        return build_error(ErrorKind.ENGINE_ERROR, "Internal server error: " + str(exc))


@ocr_api.post("/ocr", response_class=ORJSONResponse)
def ocr_upload(upload: tuple[str | None, bytes | None] = Depends(read_upload),
               processor: Processor = Depends(get_processor)) -> Response:
    """
        Multipart upload, the image travels in the `image` file field.
    """
    file_name, stream = upload
    return _respond(processor, processor.acquire_upload(file_name, stream))


@ocr_api.post("/ocr/base64", response_class=ORJSONResponse)
def ocr_base64(body: Any = Depends(read_json_body),
               processor: Processor = Depends(get_processor)) -> Response:
    """
        JSON body: {"image": "<base64 encoded image bytes>"}
    """
    return _respond(processor, processor.acquire_base64(body))


@ocr_api.post("/ocr/url", response_class=ORJSONResponse)
def ocr_url(body: Any = Depends(read_json_body),
            processor: Processor = Depends(get_processor)) -> Response:
    """
        JSON body: {"url": "http(s)://host[:port]/path"}
    """
    return _respond(processor, processor.acquire_url(body))
