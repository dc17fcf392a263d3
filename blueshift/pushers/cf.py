"""Cloud Foundry CLI pusher.

Drives the ``cf`` CLI against one foundation. Each pusher gets its own
CF_HOME so concurrent pushes to different foundations do not share a login.
"""

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from blueshift.config import settings
from blueshift.models.deployment import DeploymentDescriptor, FoundationPushResult
from blueshift.pushers.base import BasePusher
from blueshift.utils.fetcher import MANIFEST_FILE

GREEN_SUFFIX = "-green"


class CommandFailed(Exception):
    """A CLI command exited non-zero."""

    def __init__(self, command: str, returncode: int):
        super().__init__(f"'{command}' exited with status {returncode}")
        self.command = command
        self.returncode = returncode


class CFPusher(BasePusher):
    """Blue-green pushes through the platform CLI.

    The new version is pushed as ``<app>-green`` without routes. Cutting
    over maps the application route to it, deletes the old version and
    renames it; undoing simply deletes it.
    """

    def __init__(
        self,
        foundation: str,
        command: str | None = None,
        timeout: int | None = None,
        mock: bool | None = None,
    ):
        super().__init__(foundation)
        self.command = command or settings.push_command
        self.timeout = timeout or settings.push_timeout
        self.mock = settings.push_mock if mock is None else mock
        self._home = Path(tempfile.mkdtemp(prefix="blueshift-cf-"))
        self._logged_in = False
        self._app_existed = False

    @property
    def name(self) -> str:
        return "cf"

    async def push(
        self, descriptor: DeploymentDescriptor, app_path: Path
    ) -> FoundationPushResult:
        app = descriptor.app_name
        output: list[str] = []
        try:
            await self._login(descriptor, output)
            self._app_existed = await self._app_exists(app, output)

            cmd = ["push", app + GREEN_SUFFIX, "-p", str(app_path), "--no-route"]
            manifest = app_path / MANIFEST_FILE
            if manifest.exists():
                cmd.extend(["-f", str(manifest)])
            else:
                cmd.extend(["-i", str(descriptor.instances)])
            await self._run(cmd, output)

        except (CommandFailed, OSError, asyncio.TimeoutError) as e:
            self.logger.error(
                "cf_pusher.push_failed",
                uuid=descriptor.uuid,
                foundation=self.foundation,
                error=str(e),
            )
            await self._discard_green(app, output)
            return self._result(False, "".join(output), str(e))

        return self._result(True, "".join(output))

    async def finish_push(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        app = descriptor.app_name
        green = app + GREEN_SUFFIX
        output: list[str] = []
        try:
            if descriptor.domain:
                await self._run(
                    ["map-route", green, descriptor.domain, "--hostname", app], output
                )
            else:
                self.logger.warning(
                    "cf_pusher.no_domain",
                    uuid=descriptor.uuid,
                    foundation=self.foundation,
                )

            if self._app_existed:
                await self._run(["delete", app, "-f"], output)
            await self._run(["rename", green, app], output)

        except (CommandFailed, OSError, asyncio.TimeoutError) as e:
            return self._result(False, "".join(output), str(e))

        return self._result(True, "".join(output))

    async def undo_push(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        output: list[str] = []
        try:
            await self._run(["delete", descriptor.app_name + GREEN_SUFFIX, "-f"], output)
        except (CommandFailed, OSError, asyncio.TimeoutError) as e:
            return self._result(False, "".join(output), str(e))
        return self._result(True, "".join(output))

    async def start(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        return await self._change_state("start", descriptor)

    async def stop(self, descriptor: DeploymentDescriptor) -> FoundationPushResult:
        return await self._change_state("stop", descriptor)

    async def cleanup(self) -> None:
        shutil.rmtree(self._home, ignore_errors=True)

    async def _change_state(
        self, action: str, descriptor: DeploymentDescriptor
    ) -> FoundationPushResult:
        output: list[str] = []
        try:
            await self._login(descriptor, output)
            await self._run([action, descriptor.app_name], output)
        except (CommandFailed, OSError, asyncio.TimeoutError) as e:
            return self._result(False, "".join(output), str(e))
        return self._result(True, "".join(output))

    async def _login(self, descriptor: DeploymentDescriptor, output: list[str]) -> None:
        if self._logged_in:
            return

        api = ["api", self.foundation]
        if descriptor.skip_ssl:
            api.append("--skip-ssl-validation")
        await self._run(api, output)

        auth = descriptor.authorization
        await self._run(
            ["auth"],
            output,
            env={"CF_USERNAME": auth.username, "CF_PASSWORD": auth.password},
        )
        await self._run(
            [
                "target",
                "-o",
                descriptor.cf_context.organization,
                "-s",
                descriptor.cf_context.space,
            ],
            output,
        )
        self._logged_in = True

    async def _app_exists(self, app: str, output: list[str]) -> bool:
        try:
            await self._run(["app", app], output)
        except CommandFailed:
            return False
        return True

    async def _discard_green(self, app: str, output: list[str]) -> None:
        if not self._logged_in:
            return
        try:
            await self._run(["delete", app + GREEN_SUFFIX, "-f"], output)
        except (CommandFailed, OSError, asyncio.TimeoutError) as e:
            self.logger.warning(
                "cf_pusher.discard_failed",
                foundation=self.foundation,
                error=str(e),
            )

    async def _run(
        self,
        args: list[str],
        output: list[str],
        env: dict[str, str] | None = None,
    ) -> str:
        """Run one CLI command, appending its combined output.

        Raises:
            CommandFailed: If the command exits non-zero
        """
        display = " ".join([self.command, *args])
        output.append(f"$ {display}\n")

        if self.mock:
            await asyncio.sleep(0)
            text = f"[{self.foundation}] OK\n"
            output.append(text)
            return text

        process_env = os.environ.copy()
        process_env["CF_HOME"] = str(self._home)
        if env:
            process_env.update(env)

        self.logger.debug("cf_pusher.running", foundation=self.foundation, cmd=display)

        process = await asyncio.create_subprocess_exec(
            self.command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=process_env,
        )
        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            process.kill()
            await process.wait()
            raise

        text = stdout.decode(errors="replace") if stdout else ""
        output.append(text)

        if process.returncode != 0:
            raise CommandFailed(display, process.returncode)
        return text


def create_cf_pusher(foundation: str) -> CFPusher:
    """Default pusher factory."""
    return CFPusher(foundation)
