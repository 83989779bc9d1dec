from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from ocr_gateway.dto.acquisition import Acquisition, DecodedImage
from ocr_gateway.dto.error_response import ErrorKind
from ocr_gateway.utils.utils import detect_file_type

# mime type (as sniffed by filetype) -> Pillow decoder name
SUPPORTED_IMAGE_TYPES: dict[str, str] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/bmp": "BMP",
    "image/tiff": "TIFF",
}

UNSUPPORTED_FORMAT_MESSAGE = "Invalid image format. Supported: JPEG, PNG, BMP, TIFF"

log = logging.getLogger("processor")


def decode_image_from_bytes(stream: bytes) -> DecodedImage:
    """ Decodes a compressed image container into an RGB raster.

    The container is recognised by its content, never by a file name.
    Anything that is not a fully decodable JPEG/PNG/BMP/TIFF yields an empty
    image instead of raising.

    Args:
        stream (bytes): raw image bytes

    Returns:
        DecodedImage: the decoded image, or DecodedImage.empty()
    """

    if not stream:
        return DecodedImage.empty()

    file_type = detect_file_type(stream)
    mime = str(getattr(file_type, "mime", ""))
    decoder_name = SUPPORTED_IMAGE_TYPES.get(mime)

    if decoder_name is None:
        log.info("rejected content with unsupported type: " + (mime or "unknown"))
        return DecodedImage.empty()

    try:
        with Image.open(BytesIO(stream), formats=[decoder_name]) as imgf:
            imgf.load()
            pixels = imgf.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        log.info("could not decode " + mime + " content: " + str(exc))
        return DecodedImage.empty()

    width, height = pixels.size
    if width <= 0 or height <= 0:
        return DecodedImage.empty()

    return DecodedImage(width=width, height=height, pixels=pixels, content_type=mime)


def decode_acquisition(stream: bytes) -> Acquisition:
    """Shared last step of every resolver: bytes -> Acquisition."""
    image = decode_image_from_bytes(stream)
    if image.is_empty:
        return Acquisition.fail(ErrorKind.UNSUPPORTED_FORMAT, UNSUPPORTED_FORMAT_MESSAGE)
    return Acquisition.success(image)
