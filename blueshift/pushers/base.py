"""Base push capability shared by every foundation driver."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from blueshift.models.deployment import DeploymentDescriptor, FoundationPushResult
from blueshift.utils.logging import get_logger


class BasePusher(ABC):
    """Pushes one application to one foundation.

    A push is split in two so the coordinator can decide globally:
    - push(): stage the new version next to the running one, no traffic
    - finish_push(): cut traffic over and retire the previous version
    - undo_push(): discard the staged version, leaving the old one in place

    Implementations report failures through the returned result rather than
    raising, so every foundation's outcome can be collected.
    """

    def __init__(self, foundation: str):
        self.foundation = foundation
        self.logger = get_logger(f"pusher.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Driver name/identifier."""
        pass

    @abstractmethod
    async def push(
        self, descriptor: DeploymentDescriptor, app_path: Path
    ) -> FoundationPushResult:
        """Stage the new version of the application."""
        pass

    @abstractmethod
    async def finish_push(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        """Route traffic to the staged version."""
        pass

    @abstractmethod
    async def undo_push(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        """Remove the staged version."""
        pass

    @abstractmethod
    async def start(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        """Start an already deployed application."""
        pass

    @abstractmethod
    async def stop(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        """Stop an already deployed application."""
        pass

    async def cleanup(self) -> None:
        """Release any local state held by the driver."""
        return None

    def _result(
        self, success: bool, output: str, error: str | None = None
    ) -> FoundationPushResult:
        return FoundationPushResult(
            foundation=self.foundation,
            success=success,
            status_code=200 if success else 500,
            output=output,
            error=error,
        )


PusherFactory = Callable[[str], BasePusher]
