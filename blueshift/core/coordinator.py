"""Blue-green push coordinator.

Pushes one artifact to every foundation of an environment, decides global
success once every foundation has reported, then either cuts all of them
over or rolls back the ones that staged successfully.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Protocol

from blueshift.config import EnvironmentConfig, SilentDeploySettings
from blueshift.core.exceptions import (
    DeploymentError,
    PushError,
    PushFailedWithRollbackError,
    RollbackError,
)
from blueshift.core.output import OutputSink
from blueshift.models.deployment import (
    DeploymentDescriptor,
    DeploymentOutcome,
    FoundationPushResult,
)
from blueshift.pushers.base import BasePusher, PusherFactory
from blueshift.utils.logging import get_deployment_logger

SUCCESS_STATUS = 200
FAILURE_STATUS = 500


class Fetcher(Protocol):
    async def fetch(self, descriptor: DeploymentDescriptor) -> Path: ...

    def remove(self, app_dir: Path) -> None: ...


async def run_all(
    pushers: list[BasePusher],
    action: Callable[[BasePusher], Awaitable[FoundationPushResult]],
) -> list[FoundationPushResult]:
    """Run ``action`` on every pusher concurrently, in a task group.

    Results come back in pusher order. An action that raises is turned into
    a failed result so the join always observes every foundation.
    """

    async def guarded(pusher: BasePusher) -> FoundationPushResult:
        try:
            return await action(pusher)
        except Exception as e:
            return FoundationPushResult(
                foundation=pusher.foundation,
                success=False,
                status_code=FAILURE_STATUS,
                error=str(e) or type(e).__name__,
            )

    async with asyncio.TaskGroup() as group:
        tasks = [group.create_task(guarded(pusher)) for pusher in pushers]
    return [task.result() for task in tasks]


class PushCoordinator:
    """Blue-green engine over all foundations of one environment."""

    def __init__(self, pusher_factory: PusherFactory, fetcher: Fetcher):
        self.pusher_factory = pusher_factory
        self.fetcher = fetcher

    async def push(
        self,
        descriptor: DeploymentDescriptor,
        environment: EnvironmentConfig,
        output: OutputSink,
    ) -> DeploymentOutcome:
        """Deploy to every foundation, all or nothing."""
        logger = get_deployment_logger("coordinator", descriptor.uuid)

        try:
            app_path = await self.fetcher.fetch(descriptor)
        except DeploymentError as e:
            logger.error("coordinator.fetch_failed", error=e.message)
            return DeploymentOutcome(
                status_code=FAILURE_STATUS, error=e, output=output.getvalue()
            )

        pushers = [self.pusher_factory(foundation) for foundation in environment.foundations]
        try:
            silent = SilentDeploySettings()
            async with asyncio.TaskGroup() as group:
                primary = group.create_task(
                    self._push_all(descriptor, pushers, app_path, logger)
                )
                silent_push = None
                if silent.matches(descriptor.environment):
                    silent_push = group.create_task(
                        self._silent_push(descriptor, silent.silent_deploy_url, app_path)
                    )
            outcome = primary.result()
            silent_output = silent_push.result() if silent_push else ""
        finally:
            for pusher in pushers:
                await pusher.cleanup()
            self.fetcher.remove(app_path)

        for result in outcome.results:
            output.write(result.output)
        if silent_output:
            output.write(silent_output)

        outcome.output = output.getvalue()
        return outcome

    async def _push_all(
        self,
        descriptor: DeploymentDescriptor,
        pushers: list[BasePusher],
        app_path: Path,
        logger,
    ) -> DeploymentOutcome:
        logger.info("coordinator.pushing", foundations=[p.foundation for p in pushers])

        results = await run_all(pushers, lambda p: p.push(descriptor, app_path))

        if all(result.success for result in results):
            return await self._cut_over(descriptor, pushers, results, logger)
        return await self._roll_back(descriptor, pushers, results, logger)

    async def _cut_over(
        self,
        descriptor: DeploymentDescriptor,
        pushers: list[BasePusher],
        results: list[FoundationPushResult],
        logger,
    ) -> DeploymentOutcome:
        finished = await run_all(pushers, lambda p: p.finish_push(descriptor))

        for result, finish in zip(results, finished):
            result.output += finish.output
            if not finish.success:
                # Cut-over failures are reported, never rolled back.
                result.success = False
                result.status_code = finish.status_code
                result.error = finish.error

        failures = {r.foundation: r.error or "unknown error" for r in results if not r.success}
        if failures:
            logger.error("coordinator.cut_over_failed", failures=failures)
            return DeploymentOutcome(
                status_code=_status_of(results),
                error=PushError(failures),
                results=results,
            )

        logger.info("coordinator.pushed", foundations=len(results))
        return DeploymentOutcome(status_code=SUCCESS_STATUS, results=results)

    async def _roll_back(
        self,
        descriptor: DeploymentDescriptor,
        pushers: list[BasePusher],
        results: list[FoundationPushResult],
        logger,
    ) -> DeploymentOutcome:
        failures = {r.foundation: r.error or "unknown error" for r in results if not r.success}
        logger.error("coordinator.push_failed", failures=failures)
        push_error = PushError(failures)

        staged = [(p, r) for p, r in zip(pushers, results) if r.success]
        if not staged:
            return DeploymentOutcome(
                status_code=_status_of(results), error=push_error, results=results
            )

        logger.info("coordinator.rolling_back", foundations=[p.foundation for p, _ in staged])
        undone = await run_all([p for p, _ in staged], lambda p: p.undo_push(descriptor))

        rollback_failures: dict[str, str] = {}
        for (_, result), undo in zip(staged, undone):
            result.output += undo.output
            result.rolled_back = undo.success
            if not undo.success:
                result.rollback_error = undo.error or "unknown error"
                rollback_failures[result.foundation] = result.rollback_error

        error: DeploymentError = push_error
        if rollback_failures:
            logger.error("coordinator.rollback_failed", failures=rollback_failures)
            error = PushFailedWithRollbackError(push_error, RollbackError(rollback_failures))

        return DeploymentOutcome(status_code=_status_of(results), error=error, results=results)

    async def _silent_push(
        self, descriptor: DeploymentDescriptor, url: str, app_path: Path
    ) -> str:
        """Best-effort extra push; failures end up in the output only."""
        logger = get_deployment_logger("coordinator", descriptor.uuid)
        pusher = self.pusher_factory(url)
        try:
            result = await pusher.push(descriptor, app_path)
            if result.success:
                finish = await pusher.finish_push(descriptor)
                result.output += finish.output
                result.success = finish.success
                result.error = finish.error
        except Exception as e:
            logger.warning("coordinator.silent_deploy_failed", url=url, error=str(e))
            return f"silent deployment to {url} failed: {e}\n"
        finally:
            await pusher.cleanup()

        if not result.success:
            logger.warning("coordinator.silent_deploy_failed", url=url, error=result.error)
            return result.output + f"silent deployment to {url} failed: {result.error}\n"

        logger.info("coordinator.silent_deployed", url=url)
        return result.output


def _status_of(results: list[FoundationPushResult]) -> int:
    for result in results:
        if not result.success:
            return result.status_code if result.status_code != SUCCESS_STATUS else FAILURE_STATUS
    return SUCCESS_STATUS
