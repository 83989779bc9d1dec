import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from ocr_gateway.api import api
from ocr_gateway.api.errors import register_exception_handlers
from ocr_gateway.api.middleware import PayloadLimitMiddleware, RequestTimingMiddleware
from ocr_gateway.processor.engine import OcrEngine, TesseractEngine
from ocr_gateway.processor.fetcher import RemoteFetcher
from ocr_gateway.processor.processor import Processor
from ocr_gateway.settings import settings

CORS_ALLOW_METHODS = ["POST", "GET", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    processor: Processor | None = getattr(app.state, "processor", None)
    if processor is not None:
        try:
            logging.info("shutting down processor (fetch client, ocr engine)")
            processor.close()
        except Exception as e:
            logging.error("error when shutting down processor: " + str(e))


def create_app(engine: OcrEngine | None = None, fetcher: RemoteFetcher | None = None) -> FastAPI:
    """
        :description: Creates the FastAPI application, applies the global request policies
                      (payload ceiling, CORS, request logging) and initializes the shared OCR engine
        :param engine: OCR engine to use, a TesseractEngine is created when omitted
        :param fetcher: remote image fetcher, one is built from the settings when omitted
        :return: FastAPI application instance
    """

    app = FastAPI(title="OCR Gateway",
                  description="OCR inference over HTTP: multipart upload, base64 JSON or remote URL",
                  version=settings.OCR_SERVICE_VERSION,
                  default_response_class=ORJSONResponse,
                  debug=settings.DEBUG_MODE,
                  lifespan=lifespan)
    app.include_router(api)
    register_exception_handlers(app)

    # last added runs first: timing wraps CORS, which wraps the payload ceiling
    app.add_middleware(PayloadLimitMiddleware, max_body_size=settings.MAX_PAYLOAD_BYTES)
    app.add_middleware(CORSMiddleware,
                       allow_origins=settings.CORS_ALLOW_ORIGINS,
                       allow_methods=CORS_ALLOW_METHODS,
                       allow_headers=CORS_ALLOW_HEADERS)
    app.add_middleware(RequestTimingMiddleware)

    if engine is None:
        engine = TesseractEngine()

    app.state.processor = Processor(engine=engine, fetcher=fetcher)

    return app
