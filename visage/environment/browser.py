"""Headless browser session shared across all stories of a run."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Error as PlaywrightError, Page, Playwright, async_playwright

from visage.errors import EnvironmentStartError
from visage.models.config import ViewportConfig

logger = logging.getLogger(__name__)

CI_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium configured for sandboxless CI execution."""
    return await playwright.chromium.launch(headless=headless, args=CI_BROWSER_ARGS)


class BrowserSession:
    """Owns the browser and drains its event stream on one background task.

    Browser and page events are pushed onto a queue; ``None`` marks the end
    of the stream (the browser disconnected).
    """

    def __init__(self, headless: bool = True):
        self.headless = headless
        self.browser: Browser | None = None
        self._playwright: Playwright | None = None
        self._events: asyncio.Queue[Optional[tuple[str, str]]] = asyncio.Queue()
        self._drain_task: asyncio.Task | None = None

    async def start(self) -> None:
        logger.debug("Launching headless Chromium...")
        try:
            self._playwright = await async_playwright().start()
            self.browser = await launch_browser(self._playwright, headless=self.headless)
        except PlaywrightError as e:
            await self._stop_playwright()
            raise EnvironmentStartError(f"Failed to launch browser: {e}") from e

        self.browser.on("disconnected", lambda _: self._events.put_nowait(None))
        self._drain_task = asyncio.create_task(self._drain_events())
        logger.info("Browser launched (version %s)", self.browser.version)

    async def _drain_events(self) -> int:
        count = 0
        while True:
            event = await self._events.get()
            if event is None:
                break
            kind, detail = event
            count += 1
            logger.debug("Browser %s: %s", kind, detail)
        logger.debug("Browser event stream closed after %d events", count)
        return count

    def _emit(self, kind: str, detail: str) -> None:
        self._events.put_nowait((kind, detail))

    def _watch_page(self, page: Page) -> None:
        page.on("console", lambda msg: self._emit("console", f"[{msg.type}] {msg.text}"))
        page.on("pageerror", lambda err: self._emit("pageerror", str(err)))
        page.on("crash", lambda p: self._emit("crash", p.url))

    @asynccontextmanager
    async def new_page(self, viewport: ViewportConfig) -> AsyncIterator[Page]:
        """Open a page in a fresh context; the context is closed on exit."""
        if self.browser is None:
            raise RuntimeError("Browser session not started")
        context = await self.browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
        )
        try:
            page = await context.new_page()
            self._watch_page(page)
            yield page
        finally:
            await context.close()

    async def close(self) -> None:
        """Close the browser, then wait for the event drain to finish."""
        try:
            if self.browser is not None:
                try:
                    await self.browser.close()
                finally:
                    self.browser = None
                    # The disconnected event normally ends the stream; make sure it ends.
                    self._events.put_nowait(None)
                    if self._drain_task is not None:
                        await self._drain_task
                        self._drain_task = None
        finally:
            await self._stop_playwright()
        logger.info("Browser closed")

    async def _stop_playwright(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
