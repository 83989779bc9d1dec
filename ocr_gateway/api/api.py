from fastapi import APIRouter

from ocr_gateway.api.health import health_api
from ocr_gateway.api.ocr import ocr_api

api = APIRouter()

api.include_router(health_api)
api.include_router(ocr_api)
