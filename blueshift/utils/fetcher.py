"""Artifact fetching.

Materialises the artifact of a deployment as a local application directory:
either the archive posted as the request body, or whatever ``artifact_url``
points to.
"""

import asyncio
import base64
import binascii
import shutil
import tempfile
import zipfile
from pathlib import Path

import httpx

from blueshift.core.exceptions import FetchError
from blueshift.models.deployment import ContentType, DeploymentDescriptor
from blueshift.utils.logging import get_logger

MANIFEST_FILE = "manifest.yml"
ARTIFACT_FILE = "artifact"


def decode_manifest(manifest: str) -> str:
    """Accept a manifest either as plain YAML or base64-encoded YAML."""
    try:
        return base64.b64decode(manifest, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return manifest


class ArtifactFetcher:
    """Downloads or unpacks artifacts into temporary directories."""

    def __init__(
        self,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("fetcher")

    async def fetch(self, descriptor: DeploymentDescriptor) -> Path:
        """Produce a local application directory for a deployment.

        Raises:
            FetchError: If the artifact cannot be downloaded or unpacked
        """
        app_dir = Path(tempfile.mkdtemp(prefix="blueshift-"))
        try:
            if descriptor.content_type == ContentType.ZIP:
                await self._fetch_from_zip(descriptor, app_dir)
            else:
                await self._fetch_from_url(descriptor, app_dir)

            if descriptor.manifest:
                (app_dir / MANIFEST_FILE).write_text(decode_manifest(descriptor.manifest))
        except Exception:
            self.remove(app_dir)
            raise

        self.logger.debug("fetcher.fetched", uuid=descriptor.uuid, path=str(app_dir))
        return app_dir

    def remove(self, app_dir: Path) -> None:
        shutil.rmtree(app_dir, ignore_errors=True)

    async def _fetch_from_zip(self, descriptor: DeploymentDescriptor, app_dir: Path) -> None:
        archive = app_dir.with_suffix(".zip")
        try:
            if descriptor.body.seekable():
                descriptor.body.seek(0)
            with open(archive, "wb") as f:
                shutil.copyfileobj(descriptor.body, f)
            await asyncio.to_thread(_unzip, archive, app_dir)
        except (OSError, zipfile.BadZipFile) as e:
            raise FetchError(f"could not process zip file: {e}") from e
        finally:
            archive.unlink(missing_ok=True)

    async def _fetch_from_url(self, descriptor: DeploymentDescriptor, app_dir: Path) -> None:
        url = descriptor.artifact_url
        download = app_dir.with_suffix(".download")
        self.logger.info("fetcher.downloading", uuid=descriptor.uuid, url=url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=not descriptor.skip_ssl,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(download, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)

            if zipfile.is_zipfile(download):
                await asyncio.to_thread(_unzip, download, app_dir)
            else:
                shutil.move(str(download), app_dir / ARTIFACT_FILE)
        except httpx.HTTPError as e:
            raise FetchError(f"cannot fetch artifact from {url}: {e}") from e
        except (OSError, zipfile.BadZipFile) as e:
            raise FetchError(f"cannot unpack artifact from {url}: {e}") from e
        finally:
            download.unlink(missing_ok=True)


def _unzip(archive: Path, destination: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(destination)
