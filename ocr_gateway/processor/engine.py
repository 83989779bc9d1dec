from __future__ import annotations

import time
from typing import Any, Protocol

from ocr_gateway.dto.acquisition import DecodedImage
from ocr_gateway.settings import settings
from ocr_gateway.utils.utils import setup_logging

# result codes of the JSON recognition payload
CODE_SUCCESS = 100
CODE_NO_TEXT = 101


class OcrEngine(Protocol):
    """Anything able to turn a decoded image into a JSON-shaped result."""

    def recognize(self, image: DecodedImage) -> Any:
        ...


class TesseractEngine:
    """ OCR engine backed by a single tesserocr API handle.

    The handle is created once and reused for every request. It is not
    reentrant, callers must serialize access (see Processor).
    """

    def __init__(self,
                 tessdata_prefix: str | None = None,
                 language: str | None = None,
                 page_seg_mode: int | None = None,
                 grayscale: bool | None = None) -> None:
        from tesserocr import PyTessBaseAPI

        self.log = setup_logging(component_name="engine", log_level=settings.LOG_LEVEL)
        self.tessdata_prefix = tessdata_prefix or settings.TESSDATA_PREFIX
        self.language = language or settings.TESSERACT_LANGUAGE
        self.page_seg_mode = settings.OCR_SERVICE_TESSERACT_PSM if page_seg_mode is None else page_seg_mode
        self.grayscale = settings.OCR_CONVERT_GRAYSCALE_IMAGES if grayscale is None else grayscale

        self.log.info("Initializing OCR engine | tessdata: " + self.tessdata_prefix + " | lang: " + self.language)
        self.tess_api = PyTessBaseAPI(path=self.tessdata_prefix, lang=self.language)  # type: ignore
        self.tess_api.SetPageSegMode(self.page_seg_mode)
        self.log.info("OCR engine initialized successfully")

    def recognize(self, image: DecodedImage) -> dict[str, Any]:
        """ Runs tesseract over the image, one entry per text line.

        Args:
            image (DecodedImage): a valid, non-empty decoded image

        Returns:
            dict: {"code": 100, "data": [{"text", "score", "box"}, ...]}
                or {"code": 101, "data": "No text found in image."}
        """
        from tesserocr import RIL, iterate_level

        pixels = image.pixels.convert("L") if self.grayscale else image.pixels

        ocr_start_time = time.time()
        self.tess_api.SetImage(pixels)
        self.tess_api.Recognize()

        lines: list[dict[str, Any]] = []
        result_iterator = self.tess_api.GetIterator()
        if result_iterator is not None:
            for line in iterate_level(result_iterator, RIL.TEXTLINE):
                text = (line.GetUTF8Text(RIL.TEXTLINE) or "").strip()
                if not text:
                    continue
                bounding_box = line.BoundingBox(RIL.TEXTLINE)
                if bounding_box is None:
                    continue
                x1, y1, x2, y2 = bounding_box
                lines.append({
                    "text": text,
                    "score": round(line.Confidence(RIL.TEXTLINE) / 100, 4),
                    "box": [[x1, y1], [x2, y1], [x2, y2], [x1, y2]],
                })

        self.tess_api.Clear()

        self.log.info(f"OCR finished | lines: {len(lines)} | Elapsed : {time.time() - ocr_start_time:.4f} seconds")

        if not lines:
            return {"code": CODE_NO_TEXT, "data": "No text found in image."}

        return {"code": CODE_SUCCESS, "data": lines}

    def close(self) -> None:
        self.tess_api.End()
