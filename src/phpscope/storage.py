"""JSON persistence for built indexes.

Paths ending in ``.gz`` are gzip-compressed. Loaders return None for a
missing or unreadable artifact so callers can fall back to a rebuild.
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .models import Index, SchemaIndex, WebComponent

logger = logging.getLogger("phpscope.storage")


def _write_json(data: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, ensure_ascii=False)
    if path.suffix == ".gz":
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(payload)
    else:
        path.write_text(payload, encoding="utf-8")
    logger.debug("Wrote %s", path)


def _read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    try:
        if path.suffix == ".gz":
            with gzip.open(path, "rt", encoding="utf-8") as f:
                return json.load(f)
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable cache %s: %s", path, e)
        return None


def save_index(index: Index, path: Path) -> None:
    _write_json(index.to_dict(), path)


def load_index(path: Path) -> Index | None:
    data = _read_json(path)
    if data is None:
        return None
    try:
        return Index.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning("Ignoring malformed index %s: %s", path, e)
        return None


def save_schema(schema: SchemaIndex, path: Path) -> None:
    _write_json(schema.to_dict(), path)


def load_schema(path: Path) -> SchemaIndex | None:
    data = _read_json(path)
    if data is None:
        return None
    try:
        return SchemaIndex.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning("Ignoring malformed schema %s: %s", path, e)
        return None


def save_components(components: list[WebComponent], path: Path) -> None:
    _write_json({"components": [asdict(c) for c in components]}, path)


def load_components(path: Path) -> list[WebComponent] | None:
    data = _read_json(path)
    if data is None:
        return None
    try:
        return [WebComponent.from_dict(c) for c in data["components"]]
    except (KeyError, TypeError, AttributeError) as e:
        logger.warning("Ignoring malformed component cache %s: %s", path, e)
        return None
