"""Request body schemas."""

from typing import Any

from pydantic import BaseModel, Field


class DeployRequestBody(BaseModel):
    """JSON body of a deploy request."""

    artifact_url: str
    manifest: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class PutRequestBody(BaseModel):
    """Body of a start/stop request."""

    state: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
