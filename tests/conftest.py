"""Pytest configuration and shared fixtures."""

import io
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from visage.errors import EnvironmentStartError
from visage.models.config import ViewportConfig, VisageConfig
from visage.models.regression import RegressionTest
from visage.models.story import Story


# ============================================================================
# Helpers
# ============================================================================


def make_png(color=(255, 255, 255), size=(64, 64), split=None) -> bytes:
    """Render a PNG in memory. ``split`` paints the left half black ("vertical")
    or the top half black ("horizontal")."""
    image = Image.new("RGB", size, color)
    if split == "vertical":
        image.paste((0, 0, 0), (0, 0, size[0] // 2, size[1]))
    elif split == "horizontal":
        image.paste((0, 0, 0), (0, 0, size[0], size[1] // 2))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def make_page(
    html: str = "<html><body><button>Hi</button></body></html>",
    css: str = "button { color: red; }",
    png: bytes | None = None,
) -> AsyncMock:
    """A Playwright page double whose reads return fixed content."""
    page = AsyncMock()
    page.content.return_value = html
    page.evaluate.return_value = css
    page.screenshot.return_value = png if png is not None else make_png(split="vertical")
    return page


def write_story_file(path: Path, *names: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    body = "\n".join(f"export const {n}: Story = {{ args: {{}} }};" for n in names)
    path.write_text(
        "import type { Meta, StoryObj } from '@storybook/react';\n"
        "type Story = StoryObj<typeof meta>;\n" + body + "\n"
    )
    return path


class FakeServer:
    """Stands in for PreviewServer; records lifecycle calls."""

    def __init__(self, fail_start=False, fail_ready=False, fail_stop=False):
        self.fail_start = fail_start
        self.fail_ready = fail_ready
        self.fail_stop = fail_stop
        self.started = False
        self.stopped = False

    async def start(self):
        if self.fail_start:
            raise EnvironmentStartError("Failed to start preview server 'npm start'")
        self.started = True

    async def wait_until_ready(self, base_url, timeout):
        if self.fail_ready:
            raise EnvironmentStartError(f"Preview server at {base_url} did not become ready")

    async def stop(self, timeout=10):
        self.stopped = True
        if self.fail_stop:
            raise RuntimeError("process vanished")


class FakeSession:
    """Stands in for BrowserSession; hands out pages built by ``page_factory``."""

    def __init__(self, page_factory: Callable[[], AsyncMock] = make_page,
                 fail_start=False, fail_close=False):
        self.page_factory = page_factory
        self.fail_start = fail_start
        self.fail_close = fail_close
        self.started = False
        self.closed = False
        self.pages_opened = 0
        self.pages_closed = 0

    async def start(self):
        if self.fail_start:
            raise EnvironmentStartError("Failed to launch browser")
        self.started = True

    @asynccontextmanager
    async def new_page(self, viewport):
        self.pages_opened += 1
        try:
            yield self.page_factory()
        finally:
            self.pages_closed += 1

    async def close(self):
        self.closed = True
        if self.fail_close:
            raise RuntimeError("browser already gone")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def viewport_config() -> ViewportConfig:
    return ViewportConfig()


@pytest.fixture
def visage_config(tmp_path: Path) -> VisageConfig:
    """A config pointing at a temporary project directory."""
    return VisageConfig(
        base_url="http://localhost:6006",
        project_dir=str(tmp_path),
        navigation_timeout_seconds=5,
        evaluation_timeout_seconds=5,
        screenshot_timeout_seconds=5,
    )


# ============================================================================
# Story Fixtures
# ============================================================================


@pytest.fixture
def story() -> Story:
    return Story(
        path=Path("src/components/Button.stories.tsx"),
        name="Primary",
        component_name="Button",
    )


@pytest.fixture
def regression_test(story: Story) -> RegressionTest:
    return RegressionTest(
        component=story.component_key,
        viewport="1920x1080",
        dom_hash="5d41402abc4b2a76b9719d911017c592",
        style_hash="aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d",
        visual_hash="ff00" * 16,
        captured_at="2026-01-01T00:00:00Z",
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A minimal component-library project with one story file."""
    (tmp_path / "package.json").write_text('{"name": "component-library"}')
    write_story_file(tmp_path / "src" / "Button.stories.tsx", "Default")
    return tmp_path
