"""Directory walker: discovers candidate source files by extension."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger("phpscope.walker")


def _should_ignore(rel_parts: tuple[str, ...], patterns: Iterable[str]) -> bool:
    """Check if any component of a relative path matches an ignore pattern."""
    for part in rel_parts:
        for pattern in patterns:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def _matches_extension(name: str, extensions: tuple[str, ...]) -> bool:
    lower = name.lower()
    return any(lower.endswith(ext) for ext in extensions)


def walk_files(
    root: Path,
    extensions: str | Iterable[str],
    *,
    recursive: bool = True,
    ignore_patterns: Iterable[str] = (),
    max_file_size: int | None = None,
) -> Iterator[Path]:
    """Yield files under ``root`` whose name ends with one of ``extensions``.

    Traversal is depth-first with entries sorted by name. A missing or
    unreadable root yields nothing; callers that need to tell "no source yet"
    apart from "empty tree" check ``root.is_dir()`` first.
    """
    if isinstance(extensions, str):
        exts: tuple[str, ...] = (extensions.lower(),)
    else:
        exts = tuple(e.lower() for e in extensions)
    patterns = list(ignore_patterns)

    if not root.is_dir():
        logger.warning("Directory not found: %s", root)
        return

    def _scan(directory: Path, rel: tuple[str, ...]) -> Iterator[Path]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("Error scanning directory %s: %s", directory, e)
            return

        for entry in entries:
            rel_parts = rel + (entry.name,)
            if patterns and _should_ignore(rel_parts, patterns):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    if recursive:
                        yield from _scan(Path(entry.path), rel_parts)
                    continue
                if not entry.is_file():
                    continue
                if not _matches_extension(entry.name, exts):
                    continue
                if max_file_size is not None and entry.stat().st_size > max_file_size:
                    logger.debug("Skipping oversized file %s", entry.path)
                    continue
            except OSError:
                continue
            yield Path(entry.path)

    yield from _scan(root, ())
