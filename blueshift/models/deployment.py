"""Deployment data models."""

from enum import Enum
from io import IOBase
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """How the artifact arrives with the request."""

    JSON = "JSON"
    ZIP = "ZIP"


class CFContext(BaseModel):
    """Where an application lives on a foundation."""

    model_config = ConfigDict(frozen=True)

    environment: str
    organization: str
    space: str
    application: str


class Authorization(BaseModel):
    """Resolved platform credentials."""

    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: str = ""

    def __repr__(self) -> str:
        return f"Authorization(username={self.username!r}, password='***')"


class DeploymentRequest(BaseModel):
    """Raw inbound deployment request, as handed over by the HTTP layer."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    environment: str
    organization: str
    space: str
    application: str
    content_type: str | None = None
    body: IOBase
    username: str = ""
    password: str = ""
    uuid: str | None = None


class DeploymentDescriptor(BaseModel):
    """Fully resolved, immutable representation of one deployment."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Identity
    uuid: str
    cf_context: CFContext

    # Payload
    content_type: ContentType
    body: IOBase
    artifact_url: str = ""
    manifest: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    # Auth
    authorization: Authorization

    # Target metadata
    domain: str = ""
    skip_ssl: bool = False
    custom_params: dict[str, Any] = Field(default_factory=dict)
    environment_name: str = ""
    instances: int = 1

    @property
    def environment(self) -> str:
        return self.cf_context.environment

    @property
    def app_name(self) -> str:
        return self.cf_context.application


class LogMatchedError(BaseModel):
    """A known failure signature found in push output."""

    model_config = ConfigDict(frozen=True)

    description: str
    details: list[str] = Field(default_factory=list)
    solution: str = ""
    code: str = ""


class FoundationPushResult(BaseModel):
    """Outcome of pushing to a single foundation."""

    foundation: str
    success: bool
    status_code: int = 200
    output: str = ""
    error: str | None = None

    rolled_back: bool = False
    rollback_error: str | None = None


class DeploymentOutcome(BaseModel):
    """Aggregated result of a deployment, returned to the caller."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: int = 200
    error: Exception | None = None
    output: str = ""

    results: list[FoundationPushResult] = Field(default_factory=list)
    findings: list[LogMatchedError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None
