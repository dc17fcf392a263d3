"""Custom exceptions for blueshift."""

from typing import Any


class DeploymentError(Exception):
    """Base exception for blueshift."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(DeploymentError):
    """Invalid or incomplete startup configuration."""

    pass


class InvalidContentTypeError(DeploymentError):
    """Request content type is neither JSON nor an archive."""

    status_code = 400

    def __init__(self, content_type: str | None):
        super().__init__(
            f"content type '{content_type or ''}' not supported",
            {"content_type": content_type},
        )
        self.content_type = content_type


class EmptyRequestBodyError(DeploymentError):
    """Archive request arrived without a body."""

    status_code = 400

    def __init__(self):
        super().__init__("request body is empty")


class InvalidRequestBodyError(DeploymentError):
    """Request body could not be decoded."""

    def __init__(self, message: str):
        super().__init__(f"invalid request body: {message}", {"reason": message})


class MissingParameterError(DeploymentError):
    """Required JSON properties are missing."""

    def __init__(self, properties: list[str]):
        super().__init__(
            f"The following properties are missing: {', '.join(properties)}",
            {"properties": properties},
        )
        self.properties = properties


class EnvironmentNotFoundError(DeploymentError):
    """Environment is not configured."""

    def __init__(self, environment: str):
        super().__init__(
            f"environment not found: {environment}",
            {"environment": environment},
        )
        self.environment = environment


class BasicAuthHeaderNotFoundError(DeploymentError):
    """Environment requires credentials and none were supplied."""

    def __init__(self):
        super().__init__("basic auth header not found")


class EventError(DeploymentError):
    """An event handler failed."""

    def __init__(self, event_type: str, errors: list[BaseException]):
        reasons = "; ".join(str(e) for e in errors)
        super().__init__(
            f"an error occurred in the {event_type} event: {reasons}",
            {"event_type": event_type, "errors": [str(e) for e in errors]},
        )
        self.event_type = event_type
        self.errors = errors


class FetchError(DeploymentError):
    """Artifact could not be fetched or unpacked."""

    pass


class PushError(DeploymentError):
    """One or more foundations failed to push."""

    def __init__(self, failures: dict[str, str]):
        foundations = ", ".join(failures)
        super().__init__(
            f"push failed: cannot deploy application to {foundations}",
            {"failures": failures},
        )
        self.failures = failures


class RollbackError(DeploymentError):
    """Undoing a staged push failed on one or more foundations."""

    def __init__(self, failures: dict[str, str]):
        foundations = ", ".join(failures)
        super().__init__(
            f"rollback failed on {foundations}",
            {"failures": failures},
        )
        self.failures = failures


class PushFailedWithRollbackError(DeploymentError):
    """A push failed and the rollback of sibling foundations failed too."""

    def __init__(self, push_error: PushError, rollback_error: RollbackError):
        super().__init__(
            f"{push_error.message}; {rollback_error.message}",
            {"push": push_error.details, "rollback": rollback_error.details},
        )
        self.push_error = push_error
        self.rollback_error = rollback_error


class StateChangeError(DeploymentError):
    """Starting or stopping an application failed."""

    def __init__(self, state: str, failures: dict[str, str]):
        foundations = ", ".join(failures)
        super().__init__(
            f"cannot change application state to {state} on {foundations}",
            {"state": state, "failures": failures},
        )
        self.state = state
        self.failures = failures
