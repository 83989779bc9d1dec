from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from ocr_gateway.dto.info_response import HealthResponse, VersionResponse
from ocr_gateway.utils.utils import get_health_info, get_version_info

health_api = APIRouter(prefix="/api")


@health_api.get("/health", response_model=HealthResponse, response_class=ORJSONResponse)
def health() -> ORJSONResponse:
    return ORJSONResponse(content=HealthResponse(**get_health_info()).model_dump())


@health_api.get("/version", response_model=VersionResponse, response_class=ORJSONResponse)
def version() -> ORJSONResponse:
    return ORJSONResponse(content=VersionResponse(**get_version_info()).model_dump())
