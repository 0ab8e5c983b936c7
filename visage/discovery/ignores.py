"""Ignore patterns loaded from the project's ignore file."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from visage.errors import DiscoveryError, IgnorePatternError

logger = logging.getLogger(__name__)

# Directory names under the story root that are never searched, whatever the ignore file says
DEFAULT_IGNORED_DIRS = frozenset({
    ".git",
    ".idea",
    ".vscode",
    "node_modules",
    "patches",
    "dist",
    "build",
    "coverage",
    "out",
    "tmp",
    "temp",
})


def load_ignore_patterns(root: Path, ignore_file: str = ".gitignore") -> list[str]:
    """Read ignore patterns from ``root/<ignore_file>``, falling back to the parent directory.

    Blank lines and ``#`` comments are dropped; duplicates keep their first position.
    """
    root = Path(root)
    candidates = [root / ignore_file, root.parent / ignore_file]
    path = next((p for p in candidates if p.is_file()), None)
    if path is None:
        logger.debug("No %s found for %s", ignore_file, root)
        return []

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Failed to read ignore file {path}: {e}") from e

    patterns: list[str] = []
    for line in content.splitlines():
        line = line.rstrip()
        if line and not line.startswith("#") and line not in patterns:
            patterns.append(line)

    logger.debug("Loaded %d ignore patterns from %s", len(patterns), path)
    return patterns


def compile_ignore_patterns(patterns: list[str]) -> list[re.Pattern[str]]:
    """Compile each pattern once, anchored to match a whole path."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(f"^(?:{pattern})$"))
        except re.error as e:
            raise IgnorePatternError(pattern, str(e)) from e
    return compiled


def ignored_dir_names(state_dir: str | None = None) -> frozenset[str]:
    """Built-in directory names to prune, plus the name of visage's own state directory."""
    if not state_dir:
        return DEFAULT_IGNORED_DIRS
    return DEFAULT_IGNORED_DIRS | {Path(state_dir).name}


def is_ignored(path: str, compiled: list[re.Pattern[str]]) -> bool:
    return any(regex.match(path) for regex in compiled)
