"""Dependency injection for API endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from blueshift.core.exceptions import ConfigurationError
from blueshift.core.orchestrator import DeploymentOrchestrator

basic_auth = HTTPBasic(auto_error=False)


async def get_orchestrator(request: Request) -> DeploymentOrchestrator:
    """Get the orchestrator built at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ConfigurationError("deployment orchestrator is not configured")
    return orchestrator


async def get_credentials(
    credentials: Annotated[HTTPBasicCredentials | None, Depends(basic_auth)],
) -> HTTPBasicCredentials:
    """Inline basic-auth credentials, empty when the header is absent."""
    return credentials or HTTPBasicCredentials(username="", password="")


# Type aliases for cleaner signatures
OrchestratorDep = Annotated[DeploymentOrchestrator, Depends(get_orchestrator)]
CredentialsDep = Annotated[HTTPBasicCredentials, Depends(get_credentials)]
