"""Start/stop of already deployed applications.

Runs outside the push pipeline: no artifact, no events, no rollback.
"""

from blueshift.config import EnvironmentConfig
from blueshift.core.coordinator import FAILURE_STATUS, SUCCESS_STATUS, run_all
from blueshift.core.exceptions import StateChangeError
from blueshift.core.output import OutputSink
from blueshift.models.deployment import DeploymentDescriptor, DeploymentOutcome
from blueshift.pushers.base import BasePusher, PusherFactory
from blueshift.utils.logging import get_deployment_logger

STOPPED = "stopped"
STARTED = "started"


class StateToggler:
    """Starts or stops an application on every foundation of an environment."""

    def __init__(self, pusher_factory: PusherFactory):
        self.pusher_factory = pusher_factory

    async def apply(
        self,
        descriptor: DeploymentDescriptor,
        environment: EnvironmentConfig,
        state: str,
        output: OutputSink,
    ) -> DeploymentOutcome:
        """Dispatch on the requested state; unknown states are a no-op."""
        if state == STOPPED:
            return await self.stop(descriptor, environment, output)
        if state == STARTED:
            return await self.start(descriptor, environment, output)

        get_deployment_logger("lifecycle", descriptor.uuid).info(
            "lifecycle.state_ignored", state=state
        )
        return DeploymentOutcome(status_code=SUCCESS_STATUS, output=output.getvalue())

    async def stop(
        self,
        descriptor: DeploymentDescriptor,
        environment: EnvironmentConfig,
        output: OutputSink,
    ) -> DeploymentOutcome:
        return await self._change(STOPPED, descriptor, environment, output)

    async def start(
        self,
        descriptor: DeploymentDescriptor,
        environment: EnvironmentConfig,
        output: OutputSink,
    ) -> DeploymentOutcome:
        return await self._change(STARTED, descriptor, environment, output)

    async def _change(
        self,
        state: str,
        descriptor: DeploymentDescriptor,
        environment: EnvironmentConfig,
        output: OutputSink,
    ) -> DeploymentOutcome:
        logger = get_deployment_logger("lifecycle", descriptor.uuid)
        logger.info(
            "lifecycle.changing_state",
            state=state,
            app=descriptor.app_name,
            foundations=environment.foundations,
        )

        pushers = [self.pusher_factory(foundation) for foundation in environment.foundations]

        def action(pusher: BasePusher):
            if state == STOPPED:
                return pusher.stop(descriptor)
            return pusher.start(descriptor)

        try:
            results = await run_all(pushers, action)
        finally:
            for pusher in pushers:
                await pusher.cleanup()

        for result in results:
            output.write(result.output)

        failures = {r.foundation: r.error or "unknown error" for r in results if not r.success}
        if failures:
            logger.error("lifecycle.state_change_failed", state=state, failures=failures)
            error = StateChangeError(state, failures)
            output.writeline(error.message)
            return DeploymentOutcome(
                status_code=FAILURE_STATUS,
                error=error,
                output=output.getvalue(),
                results=results,
            )

        logger.info("lifecycle.state_changed", state=state)
        return DeploymentOutcome(
            status_code=SUCCESS_STATUS, output=output.getvalue(), results=results
        )
