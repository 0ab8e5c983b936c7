"""Fingerprint and classification data structures."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from visage.models.story import Story

HASH_FIELDS = ("dom_hash", "style_hash", "visual_hash")


class RegressionStatus(str, Enum):
    CREATED = "created"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RegressionTest(BaseModel):
    """Fingerprint of one rendered story at one point in time."""

    model_config = ConfigDict(frozen=True)

    component: str  # "<story name>.<story path>"
    viewport: str
    dom_hash: str  # MD5 hex of the rendered HTML
    style_hash: str  # SHA-1 hex of the first CSS rule
    visual_hash: str  # perceptual hash of the full-page screenshot
    captured_at: str  # ISO timestamp


class RegressionTestResult(BaseModel):
    status: RegressionStatus
    story: Story
    current: Optional[RegressionTest] = None
    baseline: Optional[RegressionTest] = None
    changed_fields: list[str] = Field(default_factory=list)

    @property
    def component(self) -> str:
        if self.current is not None:
            return self.current.component
        return self.story.component_key
