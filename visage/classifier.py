"""Regression classification — compares a fingerprint against its baseline."""

from __future__ import annotations

import logging
import re

from visage.errors import ConfigError
from visage.models.regression import (
    HASH_FIELDS,
    RegressionStatus,
    RegressionTest,
    RegressionTestResult,
)
from visage.models.story import Story

logger = logging.getLogger(__name__)


def compile_skip_patterns(patterns: list[str]) -> list[re.Pattern[str]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(f"^(?:{pattern})$"))
        except re.error as e:
            raise ConfigError(f"Invalid skip pattern {pattern!r}: {e}") from e
    return compiled


def is_skipped(story: Story, skip_patterns: list[re.Pattern[str]]) -> bool:
    """True if project policy marks the story as non-evaluable."""
    return any(p.match(story.component_key) for p in skip_patterns)


def skip(story: Story) -> RegressionTestResult:
    return RegressionTestResult(status=RegressionStatus.SKIPPED, story=story)


def classify(
    story: Story,
    current: RegressionTest,
    baseline: RegressionTest | None,
) -> RegressionTestResult:
    """Classify ``current`` against ``baseline`` by exact per-hash equality.

    No baseline means the story is new (created); otherwise the result passes
    only if the dom, style, and visual hashes all match.
    """
    if baseline is None:
        return RegressionTestResult(
            status=RegressionStatus.CREATED, story=story, current=current,
        )

    changed = [
        field for field in HASH_FIELDS
        if getattr(current, field) != getattr(baseline, field)
    ]
    if changed:
        logger.debug("%s differs from baseline in %s", current.component, ", ".join(changed))
        status = RegressionStatus.FAILED
    else:
        status = RegressionStatus.PASSED

    return RegressionTestResult(
        status=status,
        story=story,
        current=current,
        baseline=baseline,
        changed_fields=changed,
    )
