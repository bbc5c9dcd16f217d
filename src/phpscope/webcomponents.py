"""Web component extraction from ES6 media sources.

Scans ``*.es6.js`` / ``*.w-c.es6.js`` files for ``customElements.define``
calls and pulls out observed attributes, accessor properties, dispatched
custom events, slots, the extended element and the class docblock.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .languages import COMPONENT_EXTENSIONS
from .models import ComponentProperty, WebComponent
from .walker import walk_files

logger = logging.getLogger("phpscope.webcomponents")

_DEFINE = re.compile(r"customElements\.define\(\s*['\"`]([^'\"`]+)['\"`]\s*,\s*(\w+)\s*[,)]")
_OBSERVED = re.compile(
    r"static\s+get\s+observedAttributes\s*\(\s*\)\s*\{[^}]*?return\s*\[([^\]]*)\]",
    re.DOTALL,
)
_ACCESSOR = re.compile(r"\b(?:get|set)\s+(\w+)\s*\(")
_CUSTOM_EVENT = re.compile(r"this\.dispatchEvent\(\s*new\s+CustomEvent\(\s*['\"`]([^'\"`]+)['\"`]")
_NAMED_SLOT = re.compile(r"<slot\s+name=['\"`]([^'\"`]+)['\"`]", re.IGNORECASE)
_DEFAULT_SLOT = re.compile(r"<slot(?:\s*/?>|\s+[^n][^>]*>)", re.IGNORECASE)

# Static lifecycle hooks are not instance properties
_NON_PROPERTIES = {"observedAttributes"}


def _unique(values) -> list[str]:
    seen: set[str] = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


def extract_observed_attributes(content: str) -> list[str]:
    m = _OBSERVED.search(content)
    if not m:
        return []
    attrs = (a.strip().strip("'\"`") for a in m.group(1).split(","))
    return [a for a in attrs if a]


def extract_properties(content: str) -> list[ComponentProperty]:
    names = (m.group(1) for m in _ACCESSOR.finditer(content))
    return [ComponentProperty(name=n) for n in _unique(names) if n not in _NON_PROPERTIES]


def extract_events(content: str) -> list[str]:
    return _unique(m.group(1) for m in _CUSTOM_EVENT.finditer(content))


def extract_slots(content: str) -> list[str]:
    """Slot names; ``""`` first when the template has an unnamed default slot."""
    slots = _unique(m.group(1) for m in _NAMED_SLOT.finditer(content))
    if _DEFAULT_SLOT.search(content):
        slots.insert(0, "")
    return slots


def extract_extends(content: str, class_name: str) -> str | None:
    m = re.search(rf"class\s+{re.escape(class_name)}\s+extends\s+(\w+)", content)
    return m.group(1) if m else None


def extract_docblock(content: str, class_name: str) -> str | None:
    pattern = re.compile(
        r"(/\*\*(?:(?!\*/).)*\*/)\s*(?:export\s+)?(?:default\s+)?class\s+"
        + re.escape(class_name) + r"[\s{]",
        re.DOTALL,
    )
    m = pattern.search(content)
    return m.group(1) if m else None


def parse_component(content: str, file_path: str) -> WebComponent | None:
    """Parse one JS source; None when it defines no custom element."""
    m = _DEFINE.search(content)
    if not m:
        return None
    tag_name, class_name = m.group(1), m.group(2)
    return WebComponent(
        tag_name=tag_name,
        class_name=class_name,
        file_path=file_path,
        attributes=extract_observed_attributes(content),
        properties=extract_properties(content),
        events=extract_events(content),
        slots=extract_slots(content),
        extends_element=extract_extends(content, class_name),
        docblock=extract_docblock(content, class_name),
    )


def parse_component_directory(root: Path) -> list[WebComponent]:
    """Recursively parse all component sources under ``root``."""
    components: list[WebComponent] = []
    for path in walk_files(root, COMPONENT_EXTENSIONS):
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error("Error reading %s: %s", path, e)
            continue
        component = parse_component(content, path.relative_to(root).as_posix())
        if component is not None:
            components.append(component)
    logger.info("Found %d web components under %s", len(components), root)
    return components
