"""Story records produced by discovery."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator


class Story(BaseModel):
    """One exported story entry point in a ``*.stories.ts[x]`` file."""

    model_config = ConfigDict(frozen=True)

    path: Path
    name: str
    component_name: str

    @field_validator("name", "component_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v

    @property
    def component_key(self) -> str:
        """Stable baseline key, ``<name>.<path>``."""
        return f"{self.name}.{self.path}"

    def __str__(self) -> str:
        return f"{self.path}, {self.name}"
