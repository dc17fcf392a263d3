"""Deployment Orchestrator.

Sequences one deployment end to end: descriptor, start events, blue-green
push, error classification, success/failure events, finish events.
"""

from blueshift.config import DeployConfig
from blueshift.core.classifier import ErrorClassifier, format_findings
from blueshift.core.coordinator import FAILURE_STATUS, PushCoordinator
from blueshift.core.descriptor import DescriptorBuilder
from blueshift.core.events import (
    DeployFailureEvent,
    DeployFinishedEvent,
    DeployStartedEvent,
    DeploySuccessEvent,
    Event,
    EventBus,
    EventKind,
    LifecycleEvent,
)
from blueshift.core.exceptions import DeploymentError, EventError
from blueshift.core.lifecycle import StateToggler
from blueshift.core.output import OutputSink
from blueshift.models.deployment import (
    DeploymentDescriptor,
    DeploymentOutcome,
    DeploymentRequest,
)
from blueshift.utils.logging import get_deployment_logger, get_logger


class DeploymentOrchestrator:
    """Runs the deployment pipeline for a single request.

    Pipeline steps:
    1. build - Resolve the request into a descriptor
    2. start - Emit start events; any handler failure aborts
    3. push - Blue-green push to every foundation
    4. report - Classify failures, emit success or failure events
    5. finish - Emit finish events; a failure here fails the deployment
    """

    def __init__(
        self,
        config: DeployConfig,
        events: EventBus,
        coordinator: PushCoordinator,
        classifier: ErrorClassifier | None = None,
        toggler: StateToggler | None = None,
    ):
        self.config = config
        self.events = events
        self.coordinator = coordinator
        self.classifier = classifier or ErrorClassifier()
        self.toggler = toggler or StateToggler(coordinator.pusher_factory)
        self.builder = DescriptorBuilder(config)
        self.logger = get_logger("orchestrator")

    async def deploy(
        self, request: DeploymentRequest, output: OutputSink | None = None
    ) -> DeploymentOutcome:
        """Run the complete pipeline for a request.

        Never raises for pipeline failures: the error, status code and
        accumulated output are carried by the returned outcome.
        """
        output = output or OutputSink()

        try:
            descriptor = self.builder.build(request)
        except DeploymentError as e:
            self.logger.error(
                "orchestrator.deploy.rejected",
                environment=request.environment,
                app=request.application,
                error=e.message,
            )
            output.writeline(e.message)
            return DeploymentOutcome(
                status_code=e.status_code, error=e, output=output.getvalue()
            )

        logger = get_deployment_logger("orchestrator", descriptor.uuid)
        logger.info(
            "orchestrator.deploy.started",
            environment=descriptor.environment,
            org=descriptor.cf_context.organization,
            space=descriptor.cf_context.space,
            app=descriptor.app_name,
            content_type=descriptor.content_type.value,
        )

        try:
            await self._emit_start(descriptor, output)
        except EventError as e:
            logger.error("orchestrator.deploy.start_event_failed", error=e.message)
            output.writeline(e.message)
            return DeploymentOutcome(
                status_code=FAILURE_STATUS, error=e, output=output.getvalue()
            )

        _write_summary(descriptor, output)

        environment = self.config.get_environment(descriptor.environment)
        outcome = await self.coordinator.push(descriptor, environment, output)

        if outcome.error is not None:
            outcome.findings = self.classifier.find_errors(outcome.output)
            if outcome.findings:
                output.write("\n" + format_findings(outcome.findings))
            output.writeline(str(outcome.error))
            await self._emit_failure(descriptor, output, outcome.error, logger)
        else:
            await self._emit_success(descriptor, output, logger)

        try:
            await self._emit_finish(descriptor, output, outcome.error)
        except EventError as e:
            logger.error("orchestrator.deploy.finish_event_failed", error=e.message)
            output.writeline(e.message)
            outcome.error = e
            outcome.status_code = FAILURE_STATUS

        outcome.output = output.getvalue()
        logger.info(
            "orchestrator.deploy.completed",
            status_code=outcome.status_code,
            success=outcome.success,
        )
        return outcome

    async def change_state(
        self, request: DeploymentRequest, output: OutputSink | None = None
    ) -> DeploymentOutcome:
        """Start or stop an already deployed application."""
        output = output or OutputSink()

        try:
            descriptor, state = self.builder.build_state_change(request)
        except DeploymentError as e:
            output.writeline(e.message)
            return DeploymentOutcome(
                status_code=e.status_code, error=e, output=output.getvalue()
            )

        environment = self.config.get_environment(descriptor.environment)
        return await self.toggler.apply(descriptor, environment, state, output)

    async def _emit(self, event: Event, named: LifecycleEvent) -> None:
        """Run the typed fan-out, then the named one, regardless of failures.

        Raises:
            EventError: The first failure of either fan-out
        """
        errors = await self.events.emit(event)
        first: EventError | None = None
        failed = [e for e in errors if e is not None]
        if failed:
            first = EventError(event.kind.value, failed)

        try:
            await self.events.emit_event(named)
        except EventError as e:
            first = first or e

        if first is not None:
            raise first

    async def _emit_start(self, descriptor: DeploymentDescriptor, output: OutputSink) -> None:
        await self._emit(
            Event(kind=EventKind.DEPLOY_START, descriptor=descriptor, data={"response": output}),
            DeployStartedEvent(
                uuid=descriptor.uuid,
                cf_context=descriptor.cf_context,
                authorization=descriptor.authorization,
                content_type=descriptor.content_type,
                body=descriptor.body,
                data=descriptor.data,
                environment=descriptor.environment,
                response=output,
            ),
        )

    async def _emit_success(
        self, descriptor: DeploymentDescriptor, output: OutputSink, logger
    ) -> None:
        try:
            await self._emit(
                Event(
                    kind=EventKind.DEPLOY_SUCCESS,
                    descriptor=descriptor,
                    data={"response": output},
                ),
                DeploySuccessEvent(
                    uuid=descriptor.uuid,
                    cf_context=descriptor.cf_context,
                    authorization=descriptor.authorization,
                    data=descriptor.data,
                    environment=descriptor.environment,
                    response=output,
                ),
            )
        except EventError as e:
            logger.error("orchestrator.deploy.success_event_failed", error=e.message)

    async def _emit_failure(
        self,
        descriptor: DeploymentDescriptor,
        output: OutputSink,
        error: Exception,
        logger,
    ) -> None:
        try:
            await self._emit(
                Event(
                    kind=EventKind.DEPLOY_FAILURE,
                    descriptor=descriptor,
                    data={"response": output, "error": error},
                ),
                DeployFailureEvent(
                    uuid=descriptor.uuid,
                    cf_context=descriptor.cf_context,
                    authorization=descriptor.authorization,
                    data=descriptor.data,
                    environment=descriptor.environment,
                    response=output,
                    error=error,
                ),
            )
        except EventError as e:
            logger.error("orchestrator.deploy.failure_event_failed", error=e.message)

    async def _emit_finish(
        self,
        descriptor: DeploymentDescriptor,
        output: OutputSink,
        error: Exception | None,
    ) -> None:
        await self._emit(
            Event(
                kind=EventKind.DEPLOY_FINISH,
                descriptor=descriptor,
                data={"response": output, "error": error},
            ),
            DeployFinishedEvent(
                uuid=descriptor.uuid,
                cf_context=descriptor.cf_context,
                authorization=descriptor.authorization,
                data=descriptor.data,
                environment=descriptor.environment,
                response=output,
                error=error,
            ),
        )


def _write_summary(descriptor: DeploymentDescriptor, output: OutputSink) -> None:
    context = descriptor.cf_context
    output.writeline("Deployment Parameters:")
    if descriptor.artifact_url:
        output.writeline(f"Artifact URL: {descriptor.artifact_url}")
    output.writeline(f"Username:     {descriptor.authorization.username}")
    output.writeline(f"Environment:  {context.environment}")
    output.writeline(f"Org:          {context.organization}")
    output.writeline(f"Space:        {context.space}")
    output.writeline(f"AppName:      {context.application}")
    output.writeline(f"UUID:         {descriptor.uuid}")
    output.writeline()
