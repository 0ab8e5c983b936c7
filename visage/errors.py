"""Typed error kinds for each pipeline stage."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from visage.models.regression import RegressionTestResult
    from visage.models.story import Story


class VisageError(Exception):
    """Base class for every fatal pipeline error."""

    stage = "unknown"


class ConfigError(VisageError):
    stage = "config"


class ManifestNotFoundError(ConfigError):
    def __init__(self, manifest_path: Path):
        self.manifest_path = manifest_path
        super().__init__(f"No package.json found in {manifest_path.parent}")


class DiscoveryError(VisageError):
    stage = "discovery"


class IgnorePatternError(DiscoveryError):
    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid ignore pattern {pattern!r}: {reason}")


class EnvironmentStartError(VisageError):
    stage = "environment"


class ExtractionError(VisageError):
    stage = "extraction"

    def __init__(self, story: Story, message: str):
        self.story = story
        super().__init__(f"Failed to check story {story}: {message}")


class MissingStyleError(ExtractionError):
    def __init__(self, story: Story):
        super().__init__(story, "no styles found")


class BaselineStoreError(VisageError):
    stage = "baseline"


class CheckAborted(VisageError):
    """Raised when a run stops on its first fatal error.

    ``results`` holds the classifications finished before the failure;
    the failing error is chained as ``__cause__``.
    """

    def __init__(self, error: VisageError, results: list[RegressionTestResult]):
        self.error = error
        self.results = results
        self.stage = error.stage
        super().__init__(str(error))


class TeardownError(VisageError):
    stage = "environment"
