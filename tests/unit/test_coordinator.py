"""Unit tests for the blue-green push coordinator."""

import pytest

from blueshift.config import DeployConfig
from blueshift.core.coordinator import PushCoordinator, run_all
from blueshift.core.exceptions import (
    FetchError,
    PushError,
    PushFailedWithRollbackError,
)
from blueshift.core.output import OutputSink
from blueshift.models.deployment import DeploymentDescriptor

EAST = "https://api.cf.east.example.com"
WEST = "https://api.cf.west.example.com"
SILENT = "https://api.cf.silent.example.com"


class TestRunAll:
    @pytest.mark.asyncio
    async def test_results_in_pusher_order(self, pushers):
        results = await run_all([pushers(EAST), pushers(WEST)], lambda p: p.stop(None))

        assert [r.foundation for r in results] == [EAST, WEST]
        assert all(r.success for r in results)

    @pytest.mark.asyncio
    async def test_exceptions_become_failed_results(self, pushers):
        pushers.script[("stop", WEST)] = RuntimeError("connection reset")

        results = await run_all([pushers(EAST), pushers(WEST)], lambda p: p.stop(None))

        assert results[0].success
        assert not results[1].success
        assert results[1].status_code == 500
        assert results[1].error == "connection reset"


class TestPushCoordinator:
    """Tests for PushCoordinator."""

    @pytest.fixture
    def environment(self, deploy_config: DeployConfig):
        return deploy_config.get_environment("sandbox")

    @pytest.mark.asyncio
    async def test_all_foundations_cut_over(
        self,
        coordinator: PushCoordinator,
        pushers,
        fetcher,
        descriptor: DeploymentDescriptor,
        environment,
    ):
        output = OutputSink()

        outcome = await coordinator.push(descriptor, environment, output)

        assert outcome.success
        assert outcome.status_code == 200
        assert sorted(pushers.calls("push")) == [EAST, WEST]
        assert sorted(pushers.calls("finish")) == [EAST, WEST]
        assert pushers.calls("undo") == []
        assert outcome.output == output.getvalue()
        assert outcome.output.index(f"push {EAST}") < outcome.output.index(f"push {WEST}")

    @pytest.mark.asyncio
    async def test_no_cut_over_before_every_push_reports(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        await coordinator.push(descriptor, environment, OutputSink())

        actions = [action for action, _ in pushers.journal if action in ("push", "finish")]
        assert actions == ["push", "push", "finish", "finish"]

    @pytest.mark.asyncio
    async def test_failed_push_rolls_back_the_others(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("push", WEST)] = "staging failed"

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert not outcome.success
        assert outcome.status_code == 500
        assert isinstance(outcome.error, PushError)
        assert outcome.error.failures == {WEST: "staging failed"}
        assert pushers.calls("undo") == [EAST]
        assert pushers.calls("finish") == []

        east, west = outcome.results
        assert east.rolled_back
        assert not west.rolled_back
        assert "undo " + EAST in outcome.output

    @pytest.mark.asyncio
    async def test_nothing_to_roll_back(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("push", EAST)] = "down"
        pushers.script[("push", WEST)] = "down"

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert isinstance(outcome.error, PushError)
        assert pushers.calls("undo") == []

    @pytest.mark.asyncio
    async def test_rollback_failure_is_reported(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("push", WEST)] = "staging failed"
        pushers.script[("undo", EAST)] = "delete refused"

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert isinstance(outcome.error, PushFailedWithRollbackError)
        assert outcome.error.push_error.failures == {WEST: "staging failed"}
        assert outcome.error.rollback_error.failures == {EAST: "delete refused"}
        assert outcome.results[0].rollback_error == "delete refused"
        assert outcome.status_code == 500

    @pytest.mark.asyncio
    async def test_raising_pusher_counts_as_failure(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("push", EAST)] = OSError("cf not installed")

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert outcome.error.failures == {EAST: "cf not installed"}
        assert pushers.calls("undo") == [WEST]

    @pytest.mark.asyncio
    async def test_cut_over_failure_is_not_rolled_back(
        self, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("finish", EAST)] = "map-route failed"

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert isinstance(outcome.error, PushError)
        assert outcome.error.failures == {EAST: "map-route failed"}
        assert pushers.calls("undo") == []

    @pytest.mark.asyncio
    async def test_fetch_failure(
        self, coordinator: PushCoordinator, pushers, fetcher, descriptor, environment
    ):
        fetcher.error = FetchError("could not process zip file: bad archive")

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert outcome.status_code == 500
        assert outcome.error is fetcher.error
        assert pushers.journal == []

    @pytest.mark.asyncio
    async def test_resources_released(
        self, coordinator: PushCoordinator, pushers, fetcher, descriptor, environment
    ):
        pushers.script[("push", WEST)] = "staging failed"

        await coordinator.push(descriptor, environment, OutputSink())

        assert sorted(pushers.calls("cleanup")) == [EAST, WEST]
        assert len(fetcher.removed) == 1


class TestSilentDeploy:
    @pytest.fixture
    def environment(self, deploy_config: DeployConfig):
        return deploy_config.get_environment("sandbox")

    @pytest.fixture
    def silent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SILENT_DEPLOY_ENVIRONMENT", "SANDBOX")
        monkeypatch.setenv("SILENT_DEPLOY_URL", SILENT)

    @pytest.mark.asyncio
    async def test_matching_environment(
        self, silent, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert outcome.success
        assert SILENT in pushers.calls("push")
        assert SILENT in pushers.calls("finish")
        assert [r.foundation for r in outcome.results] == [EAST, WEST]
        assert f"finish {SILENT} ok" in outcome.output

    @pytest.mark.asyncio
    async def test_failure_does_not_change_status(
        self, silent, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        pushers.script[("push", SILENT)] = "quota exceeded"

        outcome = await coordinator.push(descriptor, environment, OutputSink())

        assert outcome.success
        assert outcome.status_code == 200
        assert f"silent deployment to {SILENT} failed: quota exceeded" in outcome.output

    @pytest.mark.asyncio
    async def test_other_environment(
        self, monkeypatch, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        monkeypatch.setenv("SILENT_DEPLOY_ENVIRONMENT", "prod")
        monkeypatch.setenv("SILENT_DEPLOY_URL", SILENT)

        await coordinator.push(descriptor, environment, OutputSink())

        assert SILENT not in pushers.calls("push")

    @pytest.mark.asyncio
    async def test_url_required(
        self, monkeypatch, coordinator: PushCoordinator, pushers, descriptor, environment
    ):
        monkeypatch.setenv("SILENT_DEPLOY_ENVIRONMENT", "sandbox")

        await coordinator.push(descriptor, environment, OutputSink())

        assert len(pushers.calls("push")) == 2
