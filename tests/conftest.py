"""Pytest configuration and fixtures."""

import io
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from blueshift.config import DeployConfig, EnvironmentConfig
from blueshift.core.coordinator import PushCoordinator
from blueshift.core.events import EventBus
from blueshift.core.orchestrator import DeploymentOrchestrator
from blueshift.main import create_app
from blueshift.models.deployment import (
    Authorization,
    CFContext,
    ContentType,
    DeploymentDescriptor,
    FoundationPushResult,
)
from blueshift.pushers.base import BasePusher

FOUNDATIONS = ["https://api.cf.east.example.com", "https://api.cf.west.example.com"]


class FakePusher(BasePusher):
    """Scripted pusher that records every call in a shared journal."""

    def __init__(self, foundation: str, journal: list, script: dict, received: list):
        super().__init__(foundation)
        self.journal = journal
        self.received = received
        self.script = script

    @property
    def name(self) -> str:
        return "fake"

    def _step(self, action: str, descriptor=None) -> FoundationPushResult:
        self.journal.append((action, self.foundation))
        self.received.append((action, descriptor))
        outcome = self.script.get((action, self.foundation), True)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is True:
            return self._result(True, f"{action} {self.foundation} ok\n")
        return self._result(False, f"{action} {self.foundation}: {outcome}\n", outcome)

    async def push(self, descriptor, app_path):
        return self._step("push", descriptor)

    async def finish_push(self, descriptor):
        return self._step("finish", descriptor)

    async def undo_push(self, descriptor):
        return self._step("undo", descriptor)

    async def start(self, descriptor):
        return self._step("start", descriptor)

    async def stop(self, descriptor):
        return self._step("stop", descriptor)

    async def cleanup(self):
        self.journal.append(("cleanup", self.foundation))


class FakePusherFactory:
    """Pusher factory whose pushers follow ``script``.

    ``script`` maps ``(action, foundation)`` to ``True`` (success), an error
    string (failed result) or an exception instance (raised).
    """

    def __init__(self):
        self.journal: list[tuple[str, str]] = []
        self.script: dict = {}
        self.received: list = []

    def __call__(self, foundation: str) -> FakePusher:
        return FakePusher(foundation, self.journal, self.script, self.received)

    def descriptors(self, action: str) -> list:
        return [descriptor for name, descriptor in self.received if name == action]

    def calls(self, action: str) -> list[str]:
        return [foundation for name, foundation in self.journal if name == action]


class FakeFetcher:
    """Fetcher that hands out a temporary directory or a scripted error."""

    def __init__(self, root: Path):
        self.root = root
        self.error: Exception | None = None
        self.fetched = 0
        self.removed: list[Path] = []

    async def fetch(self, descriptor):
        if self.error is not None:
            raise self.error
        self.fetched += 1
        app_dir = self.root / f"app-{self.fetched}"
        app_dir.mkdir()
        return app_dir

    def remove(self, app_dir):
        self.removed.append(app_dir)


@pytest.fixture
def deploy_config() -> DeployConfig:
    """Two environments: an open one and one that requires credentials."""
    return DeployConfig(
        username="default-user",
        password="default-pass",
        environments={
            "sandbox": EnvironmentConfig(
                name="sandbox",
                foundations=FOUNDATIONS,
                domain="apps.example.com",
                skip_ssl=True,
            ),
            "prod": EnvironmentConfig(
                name="prod",
                foundations=FOUNDATIONS,
                domain="apps.example.com",
                authenticate=True,
                instances=2,
            ),
        },
    )


@pytest.fixture
def pushers() -> FakePusherFactory:
    return FakePusherFactory()


@pytest.fixture
def fetcher(tmp_path: Path) -> FakeFetcher:
    return FakeFetcher(tmp_path)


@pytest.fixture
def events() -> EventBus:
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def coordinator(pushers: FakePusherFactory, fetcher: FakeFetcher) -> PushCoordinator:
    return PushCoordinator(pushers, fetcher)


@pytest.fixture
def orchestrator(
    deploy_config: DeployConfig, events: EventBus, coordinator: PushCoordinator
) -> DeploymentOrchestrator:
    """Create orchestrator with test dependencies."""
    return DeploymentOrchestrator(
        config=deploy_config, events=events, coordinator=coordinator
    )


@pytest.fixture
def descriptor() -> DeploymentDescriptor:
    """A resolved JSON-mode descriptor for the sandbox environment."""
    return DeploymentDescriptor(
        uuid="test-uuid",
        cf_context=CFContext(
            environment="sandbox",
            organization="acme",
            space="dev",
            application="web",
        ),
        content_type=ContentType.JSON,
        body=io.BytesIO(b"{}"),
        artifact_url="https://artifacts.example.com/web.zip",
        authorization=Authorization(username="user", password="pass"),
        domain="apps.example.com",
        environment_name="sandbox",
    )


@pytest.fixture(autouse=True)
def no_silent_deploy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep silent deployment off unless a test turns it on."""
    monkeypatch.delenv("SILENT_DEPLOY_ENVIRONMENT", raising=False)
    monkeypatch.delenv("SILENT_DEPLOY_URL", raising=False)


@pytest.fixture
async def client(orchestrator: DeploymentOrchestrator) -> AsyncClient:
    """Create an async test client wired to the test orchestrator."""
    app = create_app(orchestrator=orchestrator)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
