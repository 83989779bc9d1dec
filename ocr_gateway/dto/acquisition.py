from __future__ import annotations

from PIL import Image
from pydantic import BaseModel, ConfigDict

from ocr_gateway.dto.error_response import ErrorKind, Failure


class DecodedImage(BaseModel):
    """An in-memory raster produced from compressed image bytes.

    Either fully valid (positive dimensions and a loaded pixel buffer) or
    empty; a half-decoded image is never handed out.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    width: int = 0
    """Width in pixels, 0 when empty."""

    height: int = 0
    """Height in pixels, 0 when empty."""

    pixels: Image.Image | None = None
    """RGB pixel buffer."""

    content_type: str = ""
    """Mime type detected from the content, e.g. image/png."""

    @classmethod
    def empty(cls) -> DecodedImage:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.pixels is None or self.width <= 0 or self.height <= 0


class FetchResult(BaseModel):
    """Outcome of a remote download, before any decoding happens."""

    model_config = ConfigDict(frozen=True)

    content: bytes = b""
    status_code: int | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class Acquisition(BaseModel):
    """Tagged outcome of an image resolver: a decoded image or a failure."""

    model_config = ConfigDict(frozen=True)

    image: DecodedImage | None = None
    failure: Failure | None = None

    @classmethod
    def success(cls, image: DecodedImage) -> Acquisition:
        return cls(image=image)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> Acquisition:
        return cls(failure=Failure(kind=kind, message=message))

    @property
    def ok(self) -> bool:
        return self.failure is None and self.image is not None and not self.image.is_empty
