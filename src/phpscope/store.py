"""Holds the current index snapshots and swaps in rebuilt ones atomically."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from .config import IndexConfig
from .git import LocalSourceProvider
from .index_builder import BuildStats, IndexBuilder, SchemaIndexBuilder
from .models import Index, SchemaIndex, WebComponent
from .storage import (
    load_components,
    load_index,
    load_schema,
    save_components,
    save_index,
    save_schema,
)
from .webcomponents import parse_component_directory

logger = logging.getLogger("phpscope.store")


@dataclass(frozen=True)
class Snapshot:
    """One consistent set of indexes. Never mutated after construction."""
    index: Index | None = None
    schema: SchemaIndex | None = None
    components: list[WebComponent] = field(default_factory=list)


class IndexStore:
    """Thread-safe holder for the current Snapshot.

    Readers call ``snapshot()`` once per request and work on that object;
    a concurrent ``swap()`` never exposes a half-updated set of indexes.
    """

    def __init__(self, config: IndexConfig | None = None):
        self.config = config or IndexConfig()
        self._lock = threading.Lock()
        self._snapshot = Snapshot()
        self.last_stats: BuildStats | None = None

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def swap(self, snapshot: Snapshot) -> Snapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock:
            previous, self._snapshot = self._snapshot, snapshot
        return previous

    def load(self) -> Snapshot:
        """Load persisted artifacts without building. Missing parts stay empty."""
        snapshot = Snapshot(
            index=load_index(self.config.index_path),
            schema=load_schema(self.config.schema_path),
            components=load_components(self.config.components_path) or [],
        )
        self.swap(snapshot)
        return snapshot

    def build(
        self,
        provider: LocalSourceProvider | None = None,
        persist: bool = True,
        on_progress: Callable[[str, int, int], None] | None = None,
    ) -> Snapshot:
        """Rebuild every index from the provider's trees and install the result."""
        provider = provider or LocalSourceProvider(self.config)
        provenance = provider.provenance()

        builder = IndexBuilder(self.config)
        index = builder.build_index(
            provider.libraries_path, commit=provenance.commit, branch=provenance.branch,
            on_progress=on_progress,
        )
        self.last_stats = builder.last_stats
        schema = SchemaIndexBuilder(self.config).build_schema_index(provider.sql_path)
        components = parse_component_directory(provider.media_path)

        if persist:
            save_index(index, self.config.index_path)
            save_schema(schema, self.config.schema_path)
            save_components(components, self.config.components_path)
            logger.info("Saved indexes to %s", self.config.data_dir)

        snapshot = Snapshot(index=index, schema=schema, components=components)
        self.swap(snapshot)
        return snapshot

    def load_or_build(self, provider: LocalSourceProvider | None = None) -> Snapshot:
        """Use the persisted index if readable, else rebuild when sources exist.

        With neither a cache nor a source tree, the store stays empty.
        """
        snapshot = self.load()
        if snapshot.index is not None:
            logger.info(
                "Loaded index: %d declarations, %d events",
                len(snapshot.index.declarations), len(snapshot.index.event_map),
            )
            return snapshot

        provider = provider or LocalSourceProvider(self.config)
        if not provider.has_sources():
            logger.warning(
                "No cached index and no sources at %s; nothing to serve", provider.libraries_path,
            )
            return snapshot

        logger.info("No usable cached index; building from %s", provider.libraries_path)
        return self.build(provider)
