"""Post-deploy health checks against every foundation."""

import httpx

from blueshift.config import DeployConfig
from blueshift.core.events import DeploySuccessEvent, LifecycleEvent
from blueshift.utils.logging import get_deployment_logger


class HealthCheckError(Exception):
    """An application endpoint did not answer with 200."""

    def __init__(self, url: str, status_code: int | None, reason: str = ""):
        detail = f"status {status_code}" if status_code is not None else reason
        super().__init__(f"health check failed for {url}: {detail}")
        self.url = url
        self.status_code = status_code


class HealthChecker:
    """Probes the deployed application on each foundation.

    The application URL is derived from the foundation API URL by swapping
    ``old_url`` for ``new_url`` and prefixing the application name, e.g.
    ``https://api.cf.example.com`` becomes ``https://my-app.apps.example.com``.
    """

    def __init__(
        self,
        config: DeployConfig,
        client: httpx.AsyncClient,
        endpoint: str = "/health",
        old_url: str = "api.cf",
        new_url: str = "apps",
    ):
        self.config = config
        self.client = client
        self.endpoint = endpoint
        self.old_url = old_url
        self.new_url = new_url

    def app_url(self, foundation: str, app_name: str) -> str:
        scheme, sep, host = foundation.partition("://")
        if not sep:
            scheme, host = "https", foundation
        host = host.replace(self.old_url, self.new_url, 1)
        return f"{scheme}://{app_name}.{host.rstrip('/')}{self.endpoint}"

    async def __call__(self, event: LifecycleEvent) -> None:
        match event:
            case DeploySuccessEvent():
                await self.check(event)
            case _:
                return None

    async def check(self, event: DeploySuccessEvent) -> None:
        """Raise HealthCheckError for the first endpoint that is not healthy."""
        logger = get_deployment_logger("healthchecker", event.uuid)
        environment = self.config.get_environment(event.environment)
        if environment is None:
            return

        for foundation in environment.foundations:
            url = self.app_url(foundation, event.cf_context.application)
            try:
                response = await self.client.get(url)
            except httpx.HTTPError as e:
                logger.error("healthchecker.unreachable", url=url, error=str(e))
                event.response.writeline(f"health check failed for {url}: {e}")
                raise HealthCheckError(url, None, str(e)) from e

            if response.status_code != 200:
                logger.error("healthchecker.unhealthy", url=url, status_code=response.status_code)
                event.response.writeline(
                    f"health check failed for {url}: status {response.status_code}"
                )
                raise HealthCheckError(url, response.status_code)

            logger.info("healthchecker.healthy", url=url)
            event.response.writeline(f"health check passed for {url}")
