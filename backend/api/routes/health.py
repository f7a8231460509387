"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from modules.auth.config import OAuthConfig
from shared.config import get_settings

from ..dependencies import get_oauth_config

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str
    providers: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(config: OAuthConfig = Depends(get_oauth_config)) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports whether the database is configured and which identity
    providers have credentials.
    """
    settings = get_settings()
    database = "configured" if settings.supabase_url and settings.supabase_service_role_key else "missing"
    return ReadinessResponse(
        status="ready" if database == "configured" else "degraded",
        database=database,
        providers=config.configured_providers(),
    )
