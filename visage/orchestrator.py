"""Check orchestrator — brings up the preview server and browser, checks every story, tears down."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable

from visage.baseline.registry import BaselineRegistryManager
from visage.classifier import classify, compile_skip_patterns, is_skipped, skip
from visage.discovery.stories import discover_stories
from visage.environment.browser import BrowserSession
from visage.environment.preview_server import PreviewServer
from visage.errors import CheckAborted, ManifestNotFoundError, TeardownError, VisageError
from visage.extractor.fingerprint import FingerprintExtractor
from visage.models.baseline import BaselineRegistry
from visage.models.config import VisageConfig
from visage.models.regression import RegressionStatus, RegressionTestResult
from visage.models.story import Story

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"


class Orchestrator:
    """Coordinates discover → start environment → extract/classify each story → teardown."""

    def __init__(
        self,
        config: VisageConfig,
        project_dir: Path | None = None,
        *,
        server_factory: Callable[[VisageConfig, Path], PreviewServer] | None = None,
        browser_factory: Callable[[], BrowserSession] | None = None,
        registry_manager: BaselineRegistryManager | None = None,
    ):
        self.config = config
        self.project_dir = Path(project_dir) if project_dir else config.project_path
        self.state_dir = self.project_dir / config.state_dir
        self.server_factory = server_factory or self._default_server
        self.browser_factory = browser_factory or BrowserSession
        self.registry_manager = registry_manager or BaselineRegistryManager(
            registry_path=self.state_dir / "baselines.json",
            base_url=config.base_url,
        )
        self.extractor = FingerprintExtractor(config)

    def _default_server(self, config: VisageConfig, project_dir: Path) -> PreviewServer:
        return PreviewServer(
            command=config.start_command,
            cwd=project_dir,
            log_path=self.state_dir / "preview-server.log",
        )

    def check(self) -> list[RegressionTestResult]:
        """Run the full check pipeline."""
        return asyncio.run(self._check())

    async def _check(self) -> list[RegressionTestResult]:
        start = time.time()
        logger.info("=== Starting visual check of %s ===", self.project_dir)

        manifest = self.project_dir / MANIFEST_FILENAME
        if not manifest.is_file():
            raise ManifestNotFoundError(manifest)

        skip_patterns = compile_skip_patterns(self.config.skip_patterns)
        registry = self.registry_manager.load()

        logger.info("--- Stage 1: Discover ---")
        stage_start = time.time()
        stories = discover_stories(
            self.project_dir,
            ignore_file=self.config.ignore_file,
            state_dir=self.config.state_dir,
        )
        logger.info("--- Stage 1 complete: %d stories in %.1fs ---",
                    len(stories), time.time() - stage_start)

        results: list[RegressionTestResult] = []
        try:
            await self._run_environment(stories, registry, skip_patterns, results)
        except VisageError as e:
            raise CheckAborted(e, results) from e

        self.registry_manager.save(registry)

        counts = {status: 0 for status in RegressionStatus}
        for r in results:
            counts[r.status] += 1
        logger.info(
            "=== Check complete: %d created, %d passed, %d failed, %d skipped (%.1fs) ===",
            counts[RegressionStatus.CREATED], counts[RegressionStatus.PASSED],
            counts[RegressionStatus.FAILED], counts[RegressionStatus.SKIPPED],
            time.time() - start,
        )
        return results

    async def _run_environment(
        self,
        stories: list[Story],
        registry: BaselineRegistry,
        skip_patterns: list,
        results: list[RegressionTestResult],
    ) -> None:
        logger.info("--- Stage 2: Start environment ---")
        server = self.server_factory(self.config, self.project_dir)
        await server.start()
        server_failed = True
        try:
            await server.wait_until_ready(
                self.config.base_url, self.config.server_ready_timeout_seconds,
            )
            session = self.browser_factory()
            await session.start()
            browser_failed = True
            try:
                logger.info("--- Stage 3: Check %d stories ---", len(stories))
                for index, story in enumerate(stories):
                    logger.info("Checking story [%d/%d]: %s", index + 1, len(stories), story)
                    result = await self._check_story(story, session, registry, skip_patterns)
                    logger.info("[%s] %s", result.status.value.upper(), result.component)
                    results.append(result)
                browser_failed = False
            finally:
                await self._teardown("browser", session.close(), browser_failed)
            server_failed = False
        finally:
            await self._teardown("preview server",
                                 server.stop(self.config.server_stop_timeout_seconds),
                                 server_failed)

    async def _check_story(
        self,
        story: Story,
        session: BrowserSession,
        registry: BaselineRegistry,
        skip_patterns: list,
    ) -> RegressionTestResult:
        if is_skipped(story, skip_patterns):
            return skip(story)

        current = await self.extractor.extract(story, session)
        baseline = self.registry_manager.get_baseline(registry, current.component, current.viewport)
        result = classify(story, current, baseline)
        if result.status == RegressionStatus.CREATED:
            self.registry_manager.store_baseline(registry, current)
        return result

    async def _teardown(self, what: str, awaitable, run_failed: bool) -> None:
        """Await a teardown step.

        When the run has already failed, a teardown error is logged so it does
        not replace the original error.
        """
        try:
            await awaitable
        except Exception as e:
            if not run_failed:
                raise TeardownError(f"Failed to stop {what}: {e}") from e
            logger.error("Failed to stop %s: %s", what, e)
