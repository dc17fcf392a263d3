"""Application deployment endpoints."""

import io
from typing import Annotated

from fastapi import APIRouter, Header, Request
from fastapi.responses import PlainTextResponse

from blueshift.api.deps import CredentialsDep, OrchestratorDep
from blueshift.models.deployment import DeploymentRequest

router = APIRouter()

APP_PATH = "/{environment}/{org}/{space}/{app_name}"


async def _deployment_request(
    request: Request,
    environment: str,
    org: str,
    space: str,
    app_name: str,
    credentials: CredentialsDep,
    correlation_id: str | None,
) -> DeploymentRequest:
    return DeploymentRequest(
        environment=environment,
        organization=org,
        space=space,
        application=app_name,
        content_type=request.headers.get("content-type"),
        body=io.BytesIO(await request.body()),
        username=credentials.username,
        password=credentials.password,
        uuid=correlation_id,
    )


@router.post(
    APP_PATH,
    response_class=PlainTextResponse,
    summary="Deploy an application",
    description="Push an artifact to every foundation of an environment using a blue-green strategy.",
)
async def deploy_app(
    request: Request,
    environment: str,
    org: str,
    space: str,
    app_name: str,
    orchestrator: OrchestratorDep,
    credentials: CredentialsDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> PlainTextResponse:
    """Deploy from a JSON body (``artifact_url``) or a ZIP body."""
    deployment = await _deployment_request(
        request, environment, org, space, app_name, credentials, x_correlation_id
    )
    outcome = await orchestrator.deploy(deployment)
    return PlainTextResponse(outcome.output, status_code=outcome.status_code)


@router.put(
    APP_PATH,
    response_class=PlainTextResponse,
    summary="Start or stop an application",
    description="Change the state of an already deployed application on every foundation.",
)
async def change_app_state(
    request: Request,
    environment: str,
    org: str,
    space: str,
    app_name: str,
    orchestrator: OrchestratorDep,
    credentials: CredentialsDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> PlainTextResponse:
    """Body: ``{"state": "stopped" | "started", "data": {...}}``."""
    deployment = await _deployment_request(
        request, environment, org, space, app_name, credentials, x_correlation_id
    )
    outcome = await orchestrator.change_state(deployment)
    return PlainTextResponse(outcome.output, status_code=outcome.status_code)
