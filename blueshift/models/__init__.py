"""Data models for blueshift."""

from blueshift.models.deployment import (
    Authorization,
    CFContext,
    ContentType,
    DeploymentDescriptor,
    DeploymentOutcome,
    DeploymentRequest,
    FoundationPushResult,
    LogMatchedError,
)
from blueshift.models.requests import DeployRequestBody, PutRequestBody

__all__ = [
    # Deployment models
    "Authorization",
    "CFContext",
    "ContentType",
    "DeploymentDescriptor",
    "DeploymentOutcome",
    "DeploymentRequest",
    "FoundationPushResult",
    "LogMatchedError",
    # Request bodies
    "DeployRequestBody",
    "PutRequestBody",
]
