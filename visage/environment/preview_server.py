"""Preview server process handle — start, wait for readiness, stop."""

from __future__ import annotations

import asyncio
import logging
import shlex
from pathlib import Path
from urllib.parse import urlparse

from visage.errors import EnvironmentStartError

logger = logging.getLogger(__name__)


def _host_port(base_url: str) -> tuple[str, int]:
    parsed = urlparse(base_url)
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return parsed.hostname or "localhost", port


class PreviewServer:
    """A child process serving the component catalog.

    stdout and stderr go to ``log_path`` so a failed start can be diagnosed.
    """

    def __init__(self, command: str, cwd: Path, log_path: Path):
        self.command = command
        self.cwd = cwd
        self.log_path = log_path
        self.process: asyncio.subprocess.Process | None = None
        self._log_file = None

    @property
    def returncode(self) -> int | None:
        return self.process.returncode if self.process else None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        args = shlex.split(self.command)
        if not args:
            raise EnvironmentStartError("Preview server start command is empty")

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._log_file = open(self.log_path, "wb")
        logger.info("Starting preview server: %s (cwd=%s)", self.command, self.cwd)
        try:
            self.process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self.cwd),
                stdout=self._log_file,
                stderr=self._log_file,
            )
        except OSError as e:
            self._close_log()
            raise EnvironmentStartError(f"Failed to start preview server {self.command!r}: {e}") from e
        logger.debug("Preview server pid=%d, output in %s", self.process.pid, self.log_path)

    async def wait_until_ready(self, base_url: str, timeout: float) -> None:
        """Poll until ``base_url`` accepts TCP connections."""
        host, port = _host_port(base_url)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            if not self.running:
                raise EnvironmentStartError(
                    f"Preview server exited with code {self.returncode} before becoming ready "
                    f"(see {self.log_path})"
                )
            try:
                _reader, writer = await asyncio.open_connection(host, port)
            except OSError:
                if loop.time() >= deadline:
                    raise EnvironmentStartError(
                        f"Preview server at {base_url} did not become ready within {timeout}s "
                        f"(see {self.log_path})"
                    ) from None
                await asyncio.sleep(0.5)
                continue
            writer.close()
            await writer.wait_closed()
            logger.info("Preview server ready at %s", base_url)
            return

    async def stop(self, timeout: float = 10) -> None:
        """Send SIGTERM and wait for exit; kill if it outlives ``timeout``."""
        if self.process is None:
            return
        if self.process.returncode is None:
            logger.info("Stopping preview server (pid=%d)", self.process.pid)
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self.process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Preview server did not exit within %ss, killing it", timeout)
                self.process.kill()
                await self.process.wait()
        logger.debug("Preview server exited with code %s", self.process.returncode)
        self._close_log()

    def _close_log(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
