"""Baseline registry — stores the last accepted fingerprint per component and viewport."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from pydantic import ValidationError

from visage.errors import BaselineStoreError
from visage.models.baseline import BaselineRegistry
from visage.models.regression import RegressionTest

logger = logging.getLogger(__name__)


class BaselineRegistryManager:
    """Manages the baseline registry JSON file."""

    def __init__(self, registry_path: Path, base_url: str):
        self.registry_path = registry_path
        self.base_url = base_url

    def load(self) -> BaselineRegistry:
        """Load registry from disk, or create a new one if none exists yet.

        A registry that exists but cannot be read is an error: starting from
        an empty registry would quietly report every story as created.
        """
        if not self.registry_path.exists():
            return BaselineRegistry(base_url=self.base_url)
        try:
            with open(self.registry_path) as f:
                data = json.load(f)
            return BaselineRegistry(**data)
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            raise BaselineStoreError(
                f"Failed to load baseline registry {self.registry_path}: {e}"
            ) from e

    def save(self, registry: BaselineRegistry) -> None:
        """Persist registry to disk."""
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        registry.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        with open(self.registry_path, "w") as f:
            json.dump(registry.model_dump(), f, indent=2)
        logger.debug("Saved baseline registry to %s", self.registry_path)

    def _baseline_key(self, component: str, viewport: str) -> str:
        return f"{component}__{viewport}"

    def get_baseline(
        self, registry: BaselineRegistry, component: str, viewport: str,
    ) -> RegressionTest | None:
        """Look up the accepted fingerprint for a component+viewport combination."""
        return registry.baselines.get(self._baseline_key(component, viewport))

    def store_baseline(self, registry: BaselineRegistry, test: RegressionTest) -> None:
        """Insert or replace the baseline for ``test.component`` at ``test.viewport``."""
        key = self._baseline_key(test.component, test.viewport)
        registry.baselines[key] = test
        logger.info("Stored baseline for %s", key)
