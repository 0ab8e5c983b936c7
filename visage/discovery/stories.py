"""Story discovery — finds exported stories in ``*.stories.ts`` / ``*.stories.tsx`` files."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from pydantic import ValidationError

from visage.discovery.ignores import (
    compile_ignore_patterns,
    ignored_dir_names,
    is_ignored,
    load_ignore_patterns,
)
from visage.errors import DiscoveryError
from visage.models.story import Story

logger = logging.getLogger(__name__)

STORY_SUFFIXES = (".stories.ts", ".stories.tsx")
STORY_EXPORT_RE = re.compile(r"export const (\w+): Story")


def component_name_from_path(path: Path) -> str:
    """``src/Button.stories.tsx`` -> ``Button``."""
    return path.name.split(".", 1)[0]


def _raise_walk_error(error: OSError) -> None:
    raise DiscoveryError(f"Failed to read directory {error.filename}: {error}") from error


def _story_files(
    root: Path,
    compiled: list[re.Pattern[str]],
    skip_dirs: frozenset[str],
) -> list[Path]:
    if not root.is_dir():
        raise DiscoveryError(f"Story root is not a directory: {root}")
    files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        # Prune in place so os.walk never descends into ignored directories
        dirnames[:] = [
            name for name in dirnames
            if name not in skip_dirs
            and not is_ignored(os.path.join(dirpath, name) + os.sep, compiled)
        ]
        for filename in filenames:
            if filename.endswith(STORY_SUFFIXES):
                files.append(Path(dirpath) / filename)
    return files


def stories_in_file(path: Path) -> list[Story]:
    """Extract one Story per ``export const <Name>: Story`` in ``path``."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Failed to read file {path}: {e}") from e

    component_name = component_name_from_path(path)
    try:
        return [
            Story(path=path, name=match.group(1), component_name=component_name)
            for match in STORY_EXPORT_RE.finditer(content)
        ]
    except ValidationError as e:
        raise DiscoveryError(f"Cannot derive a story from {path}: {e}") from e


def discover_stories(
    root: Path,
    ignore_patterns: list[str] | None = None,
    ignore_file: str = ".gitignore",
    state_dir: str | None = ".visage",
) -> list[Story]:
    """Scan ``root`` for story files and return every exported story, in walk order.

    ``ignore_patterns`` defaults to the patterns in the project's ignore file.
    Directories named in DEFAULT_IGNORED_DIRS, the ``state_dir`` and any
    directory whose path (with a trailing separator) matches an ignore
    pattern are not searched.
    Any unreadable directory or file aborts discovery with a DiscoveryError.
    """
    root = Path(root)
    if ignore_patterns is None:
        ignore_patterns = load_ignore_patterns(root, ignore_file)
    compiled = compile_ignore_patterns(ignore_patterns)

    stories: list[Story] = []
    for path in _story_files(root, compiled, ignored_dir_names(state_dir)):
        if is_ignored(str(path), compiled):
            logger.debug("Ignoring %s", path)
            continue
        for story in stories_in_file(path):
            logger.debug("Found story: %s %s %s", story.component_name, story.name, path)
            stories.append(story)

    logger.info("Found %d stories in %s", len(stories), root)
    return stories
