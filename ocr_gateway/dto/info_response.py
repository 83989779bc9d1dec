from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response payload for the /api/health endpoint."""

    status: str = Field(..., description="Always 'ok' while the service answers.")
    version: str = Field(..., description="Service version string.")
    timestamp: int = Field(..., description="Server time in unix seconds.")


class VersionResponse(BaseModel):
    """Response payload for the /api/version endpoint."""

    name: str = Field(..., description="Service name.")
    version: str = Field(..., description="Service version string.")
    api_version: str = Field(..., description="Version of the REST API contract.")
