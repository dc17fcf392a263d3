"""Lifecycle events and the synchronous event bus."""

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from blueshift.core.exceptions import EventError
from blueshift.core.output import OutputSink
from blueshift.models.deployment import (
    Authorization,
    CFContext,
    ContentType,
    DeploymentDescriptor,
)
from blueshift.utils.logging import get_logger

logger = get_logger(__name__)


class EventKind(str, Enum):
    """Deployment lifecycle stages."""

    DEPLOY_START = "deploy.start"
    DEPLOY_SUCCESS = "deploy.success"
    DEPLOY_FAILURE = "deploy.failure"
    DEPLOY_FINISH = "deploy.finish"


@dataclass(frozen=True)
class Event:
    """A typed lifecycle broadcast."""

    kind: EventKind
    descriptor: DeploymentDescriptor
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class DeployStartedEvent:
    """Named event fired before any foundation is pushed."""

    uuid: str
    cf_context: CFContext
    authorization: Authorization
    content_type: ContentType
    body: Any
    data: dict[str, Any]
    environment: str
    response: OutputSink


@dataclass(frozen=True)
class DeploySuccessEvent:
    uuid: str
    cf_context: CFContext
    authorization: Authorization
    data: dict[str, Any]
    environment: str
    response: OutputSink


@dataclass(frozen=True)
class DeployFailureEvent:
    uuid: str
    cf_context: CFContext
    authorization: Authorization
    data: dict[str, Any]
    environment: str
    response: OutputSink
    error: Exception


@dataclass(frozen=True)
class DeployFinishedEvent:
    uuid: str
    cf_context: CFContext
    authorization: Authorization
    data: dict[str, Any]
    environment: str
    response: OutputSink
    error: Exception | None = None


LifecycleEvent = (
    DeployStartedEvent | DeploySuccessEvent | DeployFailureEvent | DeployFinishedEvent
)

EventHandler = Callable[[Event], Awaitable[None] | None]
LifecycleHandler = Callable[[Any], Awaitable[None] | None]


async def _invoke(handler: Callable[[Any], Any], event: Any) -> None:
    result = handler(event)
    if inspect.isawaitable(result):
        await result


class EventBus:
    """Registry of lifecycle handlers.

    Handlers run one after another in registration order and are awaited
    before the next one starts. Built once at startup and shared read-only
    by every deployment.
    """

    def __init__(self):
        self._handlers: dict[EventKind, list[EventHandler]] = {}
        self._bindings: list[tuple[type, LifecycleHandler]] = []

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Register a handler for typed broadcasts of ``kind``."""
        self._handlers.setdefault(kind, []).append(handler)
        logger.debug("events.subscribed", kind=kind.value, handler=_name(handler))

    def bind(self, event_type: type, handler: LifecycleHandler) -> None:
        """Register a handler for named events of ``event_type``."""
        self._bindings.append((event_type, handler))
        logger.debug("events.bound", event_type=event_type.__name__, handler=_name(handler))

    def handlers(self, kind: EventKind) -> list[EventHandler]:
        return list(self._handlers.get(kind, []))

    async def emit(self, event: Event) -> list[Exception | None]:
        """Broadcast a typed event.

        Returns:
            One slot per registered handler, ``None`` where it succeeded
        """
        errors: list[Exception | None] = []
        for handler in self.handlers(event.kind):
            try:
                await _invoke(handler, event)
            except Exception as e:
                logger.error(
                    "events.handler_failed",
                    kind=event.kind.value,
                    handler=_name(handler),
                    uuid=event.descriptor.uuid,
                    error=str(e),
                )
                errors.append(e)
            else:
                errors.append(None)
        return errors

    async def emit_event(self, event: LifecycleEvent) -> None:
        """Broadcast a named event to every handler bound to its type.

        Raises:
            EventError: On the first handler failure
        """
        for event_type, handler in list(self._bindings):
            if not isinstance(event, event_type):
                continue
            try:
                await _invoke(handler, event)
            except Exception as e:
                logger.error(
                    "events.binding_failed",
                    event_type=type(event).__name__,
                    handler=_name(handler),
                    uuid=event.uuid,
                    error=str(e),
                )
                raise EventError(type(event).__name__, [e]) from e


def _name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", type(handler).__name__)
