"""Index configuration.

Paths default to a local checkout layout and can be overridden through
environment variables or CLI options:

    PHPSCOPE_CACHE_DIR          checkout root (default: ./cache/libraries)
    PHPSCOPE_LIBRARIES_PATH     PHP source root (default: <checkout>/libraries/src)
    PHPSCOPE_SQL_DIR            SQL DDL directory (default: <checkout>/installation/sql/mysql)
    PHPSCOPE_MEDIA_SOURCE_DIR   web-component sources (default: <checkout>/build/media_source)
    PHPSCOPE_DATA_DIR           persisted index artifacts (default: ./data)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

# Default ignore patterns for the source walk
DEFAULT_IGNORE = [
    ".git",
    ".svn",
    ".hg",
    "node_modules",
    ".idea",
    ".vscode",
    ".DS_Store",
    "Thumbs.db",
    "*.min.js",
    "*.map",
]

# Max file size to parse (2 MB)
MAX_FILE_SIZE = 2_000_000

INDEX_FILENAME = "index.json.gz"
SCHEMA_FILENAME = "schema.json.gz"
COMPONENTS_FILENAME = "webcomponents.json.gz"


@dataclass
class IndexConfig:
    checkout_dir: Path = field(default_factory=lambda: Path("cache") / "libraries")
    libraries_dir: Path | None = None
    sql_dir: Path | None = None
    media_dir: Path | None = None
    data_dir: Path = field(default_factory=lambda: Path("data"))
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))
    max_file_size: int = MAX_FILE_SIZE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> IndexConfig:
        env = os.environ if environ is None else environ
        config = cls()
        if env.get("PHPSCOPE_CACHE_DIR"):
            config.checkout_dir = Path(env["PHPSCOPE_CACHE_DIR"])
        if env.get("PHPSCOPE_LIBRARIES_PATH"):
            config.libraries_dir = Path(env["PHPSCOPE_LIBRARIES_PATH"])
        if env.get("PHPSCOPE_SQL_DIR"):
            config.sql_dir = Path(env["PHPSCOPE_SQL_DIR"])
        if env.get("PHPSCOPE_MEDIA_SOURCE_DIR"):
            config.media_dir = Path(env["PHPSCOPE_MEDIA_SOURCE_DIR"])
        if env.get("PHPSCOPE_DATA_DIR"):
            config.data_dir = Path(env["PHPSCOPE_DATA_DIR"])
        return config

    @property
    def source_root(self) -> Path:
        return self.libraries_dir or self.checkout_dir / "libraries" / "src"

    @property
    def sql_root(self) -> Path:
        return self.sql_dir or self.checkout_dir / "installation" / "sql" / "mysql"

    @property
    def media_root(self) -> Path:
        return self.media_dir or self.checkout_dir / "build" / "media_source"

    @property
    def index_path(self) -> Path:
        return self.data_dir / INDEX_FILENAME

    @property
    def schema_path(self) -> Path:
        return self.data_dir / SCHEMA_FILENAME

    @property
    def components_path(self) -> Path:
        return self.data_dir / COMPONENTS_FILENAME
