"""Health check endpoint."""

from datetime import datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from blueshift import __version__
from blueshift.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    timestamp: datetime
    push_mock: bool = False
    # Empty until the first deployment has loaded the environments file
    deploy_environments: list[str] = Field(default_factory=list)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report service status and the environments it can deploy to."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    environments = sorted(orchestrator.config.environments) if orchestrator else []

    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.utcnow(),
        push_mock=settings.push_mock,
        deploy_environments=environments,
    )
