"""Builds the declaration index and the schema index.

Walks a PHP source tree, parses each file, and derives the namespace map
and event map from the resulting declarations. Full rebuild on every call:
there is no incremental update.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .config import IndexConfig
from .languages import LANGUAGES
from .models import Declaration, EventInfo, Index, SchemaIndex
from .php_parser import PhpParser
from .sql_schema import SqlSchemaParser
from .walker import walk_files

logger = logging.getLogger("phpscope.index_builder")

# Names that look like events by namespace but are dispatcher plumbing
EVENT_EXCLUSIONS = frozenset({
    "EventManager", "EventManagerInterface",
    "EventListener", "EventListenerInterface",
    "EventSubscriber", "EventSubscriberInterface",
    "EventDispatcher", "EventDispatcherInterface",
    "EventAwareInterface", "EventAwareTrait",
})

_EVENT_SEGMENT = re.compile(r"(?:^|\\)Event(?:\\|$)")


@dataclass
class BuildStats:
    files_scanned: int = 0
    files_parsed: int = 0
    declarations: int = 0
    errors: int = 0
    elapsed_seconds: float = 0.0


def build_namespace_map(declarations: Iterable[Declaration]) -> dict[str, list[str]]:
    """Map each non-empty namespace to the simple names declared in it."""
    namespace_map: dict[str, list[str]] = {}
    for decl in declarations:
        if not decl.namespace:
            continue
        namespace_map.setdefault(decl.namespace, []).append(decl.name)
    return namespace_map


def is_event_declaration(decl: Declaration) -> bool:
    if decl.name in EVENT_EXCLUSIONS:
        return False
    if not _EVENT_SEGMENT.search(decl.namespace):
        return False
    parent = decl.extends or ""
    return (
        decl.name.endswith("Event")
        or parent.endswith("Event")
        or "AbstractEvent" in parent
    )


def format_event_parameter(param) -> str:
    rendered = f"{param.type} ${param.name}" if param.type else f"${param.name}"
    if param.default_value:
        rendered += f" = {param.default_value}"
    return rendered


def build_event_map(declarations: Iterable[Declaration]) -> dict[str, EventInfo]:
    """Derive event descriptors keyed by FQN. Later duplicates overwrite earlier ones."""
    event_map: dict[str, EventInfo] = {}
    for decl in declarations:
        if not is_event_declaration(decl):
            continue
        ctor = decl.find_method("__construct")
        parameters = [format_event_parameter(p) for p in ctor.parameters] if ctor else []
        event_map[decl.fqn] = EventInfo(
            name=decl.name,
            class_name=decl.fqn,
            parameters=parameters,
            description=decl.docblock,
        )
    return event_map


class IndexBuilder:
    """Builds an Index from a PHP source tree."""

    def __init__(self, config: IndexConfig | None = None, parser: PhpParser | None = None):
        self.config = config or IndexConfig()
        self.parser = parser or PhpParser()
        self.last_stats = BuildStats()

    def build_index(
        self,
        source_root: Path | None = None,
        commit: str | None = None,
        branch: str | None = None,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> Index:
        root = source_root or self.config.source_root
        stats = BuildStats()
        start = time.monotonic()

        logger.info("Indexing %s", root)

        files = list(walk_files(
            root, LANGUAGES["php"].extensions,
            ignore_patterns=self.config.ignore_patterns,
            max_file_size=self.config.max_file_size,
        ))
        stats.files_scanned = len(files)
        logger.info("Found %d PHP files to parse", len(files))

        declarations: list[Declaration] = []
        for i, path in enumerate(files):
            if on_progress:
                on_progress(str(path), i + 1, len(files))
            parsed, ok = self.parser.parse_file_checked(path)
            # A failed file keeps whatever parsed before the failure
            declarations.extend(parsed)
            if ok:
                stats.files_parsed += 1
            else:
                stats.errors += 1

        stats.declarations = len(declarations)
        index = Index(
            version=branch or "unknown",
            built_at=datetime.now(timezone.utc).isoformat(),
            commit=commit,
            declarations=declarations,
            namespace_map=build_namespace_map(declarations),
            event_map=build_event_map(declarations),
        )

        stats.elapsed_seconds = time.monotonic() - start
        self.last_stats = stats
        logger.info(
            "Parsed %d classes/interfaces/traits from %d files (%d events) in %.2fs. %d errors.",
            stats.declarations, stats.files_parsed, len(index.event_map),
            stats.elapsed_seconds, stats.errors,
        )
        return index


class SchemaIndexBuilder:
    """Builds a SchemaIndex from a directory of SQL DDL files."""

    def __init__(self, config: IndexConfig | None = None, parser: SqlSchemaParser | None = None):
        self.config = config or IndexConfig()
        self.parser = parser or SqlSchemaParser()

    def build_schema_index(self, sql_root: Path | None = None) -> SchemaIndex:
        root = sql_root or self.config.sql_root
        schema = self.parser.parse_directory(root)
        logger.info("Parsed %d tables from %s", len(schema.tables), root)
        return schema
