"""Core functionality for blueshift."""

from blueshift.core.exceptions import (
    BasicAuthHeaderNotFoundError,
    ConfigurationError,
    DeploymentError,
    EmptyRequestBodyError,
    EnvironmentNotFoundError,
    EventError,
    FetchError,
    InvalidContentTypeError,
    InvalidRequestBodyError,
    MissingParameterError,
    PushError,
    PushFailedWithRollbackError,
    RollbackError,
    StateChangeError,
)

__all__ = [
    "BasicAuthHeaderNotFoundError",
    "ConfigurationError",
    "DeploymentError",
    "EmptyRequestBodyError",
    "EnvironmentNotFoundError",
    "EventError",
    "FetchError",
    "InvalidContentTypeError",
    "InvalidRequestBodyError",
    "MissingParameterError",
    "PushError",
    "PushFailedWithRollbackError",
    "RollbackError",
    "StateChangeError",
]
