"""Configuration models for visage."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from visage.errors import ConfigError

CONFIG_FILENAME = "visage.json"


class ViewportConfig(BaseModel):
    width: int = 1920
    height: int = 1080
    name: str = "1920x1080"


class VisageConfig(BaseModel):
    # Preview server
    base_url: str
    start_command: str = "npm start"
    server_ready_timeout_seconds: float = 60
    server_stop_timeout_seconds: float = 10

    # Project layout
    project_dir: str = "."
    ignore_file: str = ".gitignore"
    state_dir: str = ".visage"

    # Extraction
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    navigation_timeout_seconds: float = 30
    evaluation_timeout_seconds: float = 30
    screenshot_timeout_seconds: float = 30

    # Stories matching any of these (anchored against the component key) are skipped
    skip_patterns: list[str] = Field(default_factory=list)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("base_url is required")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "VisageConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        try:
            config = cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e
        # Relative project paths are anchored at the config file, not the cwd
        if not Path(config.project_dir).is_absolute():
            config.project_dir = str((path.parent / config.project_dir).resolve())
        return config

    @property
    def project_path(self) -> Path:
        return Path(self.project_dir)

    @property
    def state_path(self) -> Path:
        return self.project_path / self.state_dir


def resolve_config_path(cwd: Path, home: Path) -> Path:
    """Find the config file: ``./visage.json`` first, then ``~/.config/visage.json``."""
    local_path = cwd / CONFIG_FILENAME
    if local_path.exists():
        return local_path
    home_path = home / ".config" / CONFIG_FILENAME
    if home_path.exists():
        return home_path
    raise ConfigError(f"No configuration file found (looked for {local_path} and {home_path})")
