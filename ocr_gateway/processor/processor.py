from __future__ import annotations

import contextlib
import threading
import time
from typing import Any

from ocr_gateway.dto.acquisition import Acquisition, DecodedImage
from ocr_gateway.processor.acquisition import resolve_base64, resolve_upload, resolve_url
from ocr_gateway.processor.engine import OcrEngine
from ocr_gateway.processor.fetcher import RemoteFetcher
from ocr_gateway.settings import settings
from ocr_gateway.utils.utils import setup_logging


class Processor:
    """ Long-lived handle shared by all request handlers.

    Owns the OCR engine, the remote fetcher and the lock that serializes
    inference calls. One instance lives on `app.state.processor`.
    """

    def __init__(self,
                 engine: OcrEngine,
                 fetcher: RemoteFetcher | None = None,
                 max_bytes: int | None = None,
                 serialize_engine: bool | None = None):
        self.log = setup_logging(component_name="processor", log_level=settings.LOG_LEVEL)
        self.log.debug("log level set to : " + str(settings.LOG_LEVEL))

        self.engine = engine
        self.fetcher = fetcher if fetcher is not None else RemoteFetcher()
        self.max_bytes = settings.MAX_PAYLOAD_BYTES if max_bytes is None else max_bytes

        if serialize_engine is None:
            serialize_engine = settings.OCR_SERVICE_SERIALIZE_ENGINE
        self.engine_lock: threading.Lock | None = threading.Lock() if serialize_engine else None

    def acquire_upload(self, file_name: str | None, stream: bytes | None) -> Acquisition:
        if stream is not None:
            self.log.info(f"Received file: {file_name} ({len(stream)} bytes)")
        return self._log_outcome(resolve_upload(file_name, stream, self.max_bytes))

    def acquire_base64(self, body: Any) -> Acquisition:
        return self._log_outcome(resolve_base64(body, self.max_bytes))

    def acquire_url(self, body: Any) -> Acquisition:
        return self._log_outcome(resolve_url(body, self.fetcher))

    def _log_outcome(self, acquisition: Acquisition) -> Acquisition:
        if acquisition.ok:
            image = acquisition.image
            self.log.info(f"Image decoded: {image.width}x{image.height} ({image.content_type})")  # type: ignore
        elif acquisition.failure is not None:
            self.log.info("Image acquisition failed: " + acquisition.failure.kind.value
                          + " | " + acquisition.failure.message)
        return acquisition

    def recognize(self, image: DecodedImage) -> tuple[Any, int]:
        """ Runs the engine on a decoded image.

        Exceptions raised by the engine propagate to the caller, there are
        no retries.

        Args:
            image (DecodedImage): a valid decoded image

        Returns:
            tuple: engine result and the inference time in milliseconds
        """

        start_time = time.perf_counter()

        with self.engine_lock if self.engine_lock is not None else contextlib.nullcontext():
            result = self.engine.recognize(image)

        elapsed_ms = int(round((time.perf_counter() - start_time) * 1000))
        self.log.info(f"OCR finished | Elapsed : {elapsed_ms} ms")

        return result, elapsed_ms

    def close(self) -> None:
        self.fetcher.close()
        close_engine = getattr(self.engine, "close", None)
        if callable(close_engine):
            close_engine()
