"""Fingerprint extractor — renders one story and hashes what it shows."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from playwright.async_api import Error as PlaywrightError, Page

from visage.environment.browser import BrowserSession
from visage.errors import ExtractionError, MissingStyleError
from visage.extractor.hashing import dom_hash, style_hash, visual_hash
from visage.models.config import VisageConfig
from visage.models.regression import RegressionTest
from visage.models.story import Story

logger = logging.getLogger(__name__)

# Text of the first rule of the first attached stylesheet, or "" if there is none
FIRST_CSS_RULE_JS = """() => {
    const sheet = document.styleSheets[0];
    if (!sheet) return "";
    const rule = sheet.cssRules[0];
    return rule ? rule.cssText : "";
}"""


def story_url(base_url: str, story: Story) -> str:
    return f"{base_url.rstrip('/')}/{story}"


class FingerprintExtractor:
    """Computes the dom/style/visual fingerprint of a story in a live browser."""

    def __init__(self, config: VisageConfig):
        self.config = config

    async def extract(self, story: Story, session: BrowserSession) -> RegressionTest:
        url = story_url(self.config.base_url, story)
        logger.debug("Checking %s %s %s", story.component_name, story.name, url)

        try:
            html, style, screenshot = await self._render(story, session, url)
        except PlaywrightError as e:
            raise ExtractionError(story, f"failed to open page: {e}") from e

        try:
            vhash = visual_hash(screenshot)
        except ValueError as e:
            raise ExtractionError(story, str(e)) from e

        return RegressionTest(
            component=story.component_key,
            viewport=self.config.viewport.name,
            dom_hash=dom_hash(html),
            style_hash=style_hash(style),
            visual_hash=vhash,
            captured_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    async def _render(self, story: Story, session: BrowserSession, url: str) -> tuple[str, str, bytes]:
        async with session.new_page(self.config.viewport) as page:
            await self._navigate(story, page, url)
            html = await self._step(story, "get page content", page.content(),
                                    self.config.evaluation_timeout_seconds)
            style = await self._step(story, "get styles from page",
                                     page.evaluate(FIRST_CSS_RULE_JS),
                                     self.config.evaluation_timeout_seconds)
            if not style:
                raise MissingStyleError(story)
            screenshot = await self._step(
                story, "take screenshot",
                page.screenshot(
                    type="png",
                    full_page=True,
                    omit_background=True,
                    timeout=self.config.screenshot_timeout_seconds * 1000,
                ),
                self.config.screenshot_timeout_seconds,
            )
        return html, str(style), screenshot

    async def _navigate(self, story: Story, page: Page, url: str) -> None:
        timeout = self.config.navigation_timeout_seconds
        try:
            await page.goto(url, wait_until="load", timeout=timeout * 1000)
        except PlaywrightError as e:
            raise ExtractionError(story, f"failed to navigate to {url}: {e}") from e

    async def _step(self, story: Story, what: str, awaitable, timeout: float):
        """Await one page operation under a timeout, wrapping failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionError(story, f"timed out after {timeout}s trying to {what}") from e
        except PlaywrightError as e:
            raise ExtractionError(story, f"failed to {what}: {e}") from e
