"""
Download transports used by the provisioner.

``CurlTransport`` shells out to curl. ``HttpTransport`` is an independent
aiohttp client, so a broken curl installation does not block provisioning.
"""

import asyncio
from pathlib import Path

import aiohttp

from ..core.exceptions import DependencyError, ExecutionError
from ..core.logging_config import get_logger
from ..execution.process import ProcessRunner

CHUNK_SIZE = 64 * 1024


class Transport:
    """Fetches ``url`` into ``dest``, following redirects."""

    name = "transport"

    async def download(self, url: str, dest: Path) -> None:
        raise NotImplementedError


class CurlTransport(Transport):
    """Downloads with ``curl -fsSL``."""

    name = "curl"

    def __init__(self, runner: ProcessRunner, timeout: float = 300.0):
        self.runner = runner
        self.timeout = timeout

    async def download(self, url: str, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            result = await self.runner.run(
                ["curl", "-fsSL", "-o", str(dest), url],
                name=f"Download {dest.name}",
                timeout=self.timeout,
            )
        except ExecutionError as e:
            raise DependencyError(f"curl could not run: {e.message}", dependency=dest.name)

        if result.exit_code != 0:
            raise DependencyError(
                f"curl exited with {result.exit_code}: {result.stdout.strip()[:200]}",
                dependency=dest.name,
            )


class HttpTransport(Transport):
    """Streams the download through aiohttp."""

    name = "http"

    def __init__(self, timeout: float = 300.0):
        self.timeout = timeout
        self.logger = get_logger(__name__)

    async def download(self, url: str, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if response.status != 200:
                        raise DependencyError(
                            f"HTTP {response.status} fetching {url}",
                            dependency=dest.name,
                        )
                    written = 0
                    with open(dest, "wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)
                            written += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DependencyError(f"HTTP download failed: {e}", dependency=dest.name)
        except OSError as e:
            raise DependencyError(f"Could not write {dest}: {e}", dependency=dest.name)

        self.logger.debug(f"Downloaded {written} bytes to {dest}")
