"""Markdown rendering of index records and query results.

Also owns the two output-safety helpers: ``sanitise_path`` keeps absolute
local paths out of rendered text, and ``truncate_response`` caps output size
at a line boundary.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from .models import (
    AMBIGUOUS,
    NOT_FOUND,
    Declaration,
    EventInfo,
    Method,
    Parameter,
    Property,
    TableSchema,
    WebComponent,
)

if TYPE_CHECKING:
    from .query import (
        ComponentLookupResult,
        ListEventsResult,
        LookupResult,
        SchemaLookupResult,
        SearchOutput,
        ServicesResult,
    )

CHECKOUT_MARKER = "/cache/libraries/"
DEFAULT_MAX_CHARS = 50_000
TRUNCATION_NOTICE = "\n\n---\n*Response truncated. Use filters or parameters to narrow results.*"

_DOC_OPEN = re.compile(r"^/\*\*?\s*\n?")
_DOC_CLOSE = re.compile(r"\n?\s*\*/$")
_DOC_LINE = re.compile(r"^\s*\*\s?")


def clean_docblock(docblock: str) -> str:
    """Strip comment delimiters and leading ``*`` gutters."""
    text = _DOC_CLOSE.sub("", _DOC_OPEN.sub("", docblock.strip()))
    return "\n".join(_DOC_LINE.sub("", line) for line in text.split("\n")).strip()


def sanitise_path(path: str, source_root: str | Path | None = None) -> str:
    """Render ``path`` without leaking the local checkout location.

    Relative to ``source_root`` when inside it, else the part after the
    checkout marker, else just the file name.
    """
    posix = str(path).replace("\\", "/")
    if source_root is not None:
        root = str(source_root).replace("\\", "/").rstrip("/")
        if root and posix.startswith(root + "/"):
            return posix[len(root) + 1:]
    idx = posix.find(CHECKOUT_MARKER)
    if idx != -1:
        return posix[idx + len(CHECKOUT_MARKER):]
    if not PurePosixPath(posix).is_absolute():
        return posix
    return PurePosixPath(posix).name


def truncate_response(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Cut ``text`` at the last newline before ``max_chars`` and add a notice."""
    if len(text) <= max_chars:
        return text
    cutoff = text.rfind("\n", 0, max_chars)
    truncated = text[:cutoff] if cutoff > 0 else text[:max_chars]
    return truncated + TRUNCATION_NOTICE


# --- Signatures ---


def format_parameter(param: Parameter, with_default: bool = True) -> str:
    type_ = f"{param.type} " if param.type else ""
    ref = "&" if param.is_reference else ""
    variadic = "..." if param.is_variadic else ""
    default = f" = {param.default_value}" if with_default and param.default_value else ""
    return f"{type_}{ref}{variadic}${param.name}{default}"


def format_method_signature(method: Method, full: bool = False) -> str:
    """PHP-style method signature; ``full`` prefixes the visibility."""
    visibility = f"{method.visibility} " if full else ""
    abstract = "abstract " if method.is_abstract else ""
    static = "static " if method.is_static else ""
    params = ", ".join(format_parameter(p) for p in method.parameters)
    returns = f": {method.return_type}" if method.return_type else ""
    return f"{visibility}{abstract}{static}function {method.name}({params}){returns}"


def format_property_signature(prop: Property) -> str:
    static = "static " if prop.is_static else ""
    type_ = f"{prop.type} " if prop.type else ""
    return f"{prop.visibility} {static}{type_}${prop.name}"


def declaration_label(decl: Declaration) -> str:
    if decl.kind != "class":
        return decl.kind
    return "abstract class" if decl.is_abstract else "class"


def format_class_signature(decl: Declaration) -> str:
    sig = f"{declaration_label(decl)} {decl.name}"
    if decl.extends:
        sig += f" extends {decl.extends}"
    if decl.implements:
        sig += f" implements {', '.join(decl.implements)}"
    return sig


def _code_list(names: Iterable[str]) -> str:
    return ", ".join(f"`{n}`" for n in names)


# --- Classes and methods ---


def format_class_info(decl: Declaration, source_root: str | Path | None = None) -> str:
    lines = [f"## {declaration_label(decl)} {decl.name}"]
    if decl.namespace:
        lines.append(f"**Namespace:** `{decl.namespace}`")
    lines.append(f"**FQN:** `{decl.fqn}`")
    if decl.extends:
        lines.append(f"**Extends:** `{decl.extends}`")
    if decl.implements:
        lines.append(f"**Implements:** {_code_list(decl.implements)}")
    if decl.traits:
        lines.append(f"**Uses traits:** {_code_list(decl.traits)}")

    if decl.docblock:
        lines += ["", "### Description", clean_docblock(decl.docblock)]

    if decl.constants:
        lines += ["", "### Constants"]
        for c in decl.constants:
            value = f" = {c.value}" if c.value else ""
            lines.append(f"- `{c.name}`{value}")

    for visibility in ("public", "protected"):
        props = [p for p in decl.properties if p.visibility == visibility]
        if not props:
            continue
        lines += ["", f"### {visibility.capitalize()} Properties"]
        for p in props:
            static = "static " if p.is_static else ""
            type_ = f"{p.type} " if p.type else ""
            default = f" = {p.default_value}" if p.default_value and visibility == "public" else ""
            lines.append(f"- `{static}{type_}${p.name}`{default}")

    for visibility in ("public", "protected"):
        methods = [m for m in decl.methods if m.visibility == visibility]
        if not methods:
            continue
        lines += ["", f"### {visibility.capitalize()} Methods"]
        lines += [f"- `{format_method_signature(m)}`" for m in methods]

    lines += ["", f"**Source:** `{sanitise_path(decl.file_path, source_root)}`"]
    return "\n".join(lines)


def format_class_summary(decl: Declaration, source_root: str | Path | None = None) -> str:
    """Compact listing of member names without signatures."""
    lines = [f"## {declaration_label(decl)} {decl.name}", f"**FQN:** `{decl.fqn}`"]
    if decl.extends:
        lines.append(f"**Extends:** `{decl.extends}`")
    if decl.implements:
        lines.append(f"**Implements:** {_code_list(decl.implements)}")
    if decl.constants:
        lines += ["", f"**Constants:** {', '.join(c.name for c in decl.constants)}"]

    public_props = [f"${p.name}" for p in decl.properties if p.visibility == "public"]
    if public_props:
        lines.append(f"**Properties:** {', '.join(public_props)}")
    for visibility in ("public", "protected"):
        names = [m.name for m in decl.methods if m.visibility == visibility]
        if names:
            lines.append(f"**{visibility.capitalize()} methods:** {', '.join(names)}")

    lines += [
        "",
        f"**Source:** `{sanitise_path(decl.file_path, source_root)}`",
        "",
        "*Run lookup without --summary for signatures and docblocks.*",
    ]
    return "\n".join(lines)


def format_method_info(method: Method, class_name: str) -> str:
    lines = [
        f"## {class_name}::{method.name}()",
        "",
        "### Signature",
        "```php",
        format_method_signature(method, full=True),
        "```",
    ]
    if method.docblock:
        lines += ["", "### Documentation", clean_docblock(method.docblock)]
    if method.parameters:
        lines += ["", "### Parameters"]
        for p in method.parameters:
            bare = Parameter(
                name=p.name, type=p.type or "mixed",
                is_variadic=p.is_variadic, is_reference=p.is_reference,
            )
            default = f" (default: {p.default_value})" if p.default_value else ""
            lines.append(f"- `{format_parameter(bare)}`{default}")
    if method.return_type:
        lines += ["", "### Returns", f"`{method.return_type}`"]
    return "\n".join(lines)


def format_lookup_result(
    result: LookupResult, summary: bool = False, source_root: str | Path | None = None,
) -> str:
    """Render any lookup outcome, including next steps for misses."""
    if result.status == AMBIGUOUS:
        lines = [result.message, ""]
        lines += [f"- `{fqn}`" for fqn in result.suggestions]
        lines += ["", "Look up one of these by its fully qualified name."]
        return "\n".join(lines)

    if result.status == NOT_FOUND:
        lines = [result.message]
        if result.suggestions:
            lines += ["", "Did you mean:"]
            lines += [f"- `{fqn}`" for fqn in result.suggestions]
        lines += ["", "Try `phpscope search <term>` to find classes by partial name or docblock."]
        return "\n".join(lines)

    decl = result.declaration
    if result.member is not None:
        if result.method is not None:
            return format_method_info(result.method, decl.fqn)
        lines = [result.message]
        if result.suggestions:
            lines += ["", f"Similar methods: {', '.join(result.suggestions)}"]
        lines += ["", format_class_summary(decl, source_root)]
        return "\n".join(lines)

    if summary:
        return format_class_summary(decl, source_root)
    return format_class_info(decl, source_root)


# --- Search ---

_SEARCH_SECTIONS = (
    ("class", "Classes"),
    ("method", "Methods"),
    ("constant", "Constants"),
    ("property", "Properties"),
)


def format_search_results(output: SearchOutput) -> str:
    lines = [f'## Search Results for "{output.query}"']
    shown = len(output.results)
    more = f" (showing {shown})" if shown < output.total else ""
    lines += [f"Found {output.total} results{more}", ""]

    if not output.results:
        lines.append("No results found.")
        if output.suggestions:
            lines += ["", "**Try instead:**"]
            lines += [f"- {s}" for s in output.suggestions]
        return "\n".join(lines)

    for kind, label in _SEARCH_SECTIONS:
        rows = [r for r in output.results if r.kind == kind]
        if not rows:
            continue
        lines += [f"### {label}", ""]
        for row in rows:
            lines += [f"**{row.name}**", f"`{row.fqn}`"]
            if row.signature:
                lines.append(f"`{row.signature}`")
            if row.docblock:
                lines.append(f"> {row.docblock}")
            lines.append("")
    return "\n".join(lines)


# --- Events and services ---


def _event_namespace(event: EventInfo) -> str:
    return event.class_name.rpartition("\\")[0] or "(global)"


def format_events(result: ListEventsResult) -> str:
    """Full listing grouped by namespace with parameters and descriptions."""
    lines = [
        "## Events",
        f"Showing {len(result.events)} of {result.filtered} filtered ({result.total} total)",
        "",
    ]
    if not result.events:
        lines.append("No events found matching the criteria.")
        return "\n".join(lines)

    groups: dict[str, list[EventInfo]] = {}
    for event in result.events:
        groups.setdefault(_event_namespace(event), []).append(event)

    for namespace in sorted(groups):
        lines += [f"### {namespace}", ""]
        for event in groups[namespace]:
            lines += [f"#### {event.name}", f"**Class:** `{event.class_name}`"]
            if event.parameters:
                lines.append("**Parameters:**")
                lines += [f"- `{p}`" for p in event.parameters]
            if event.description:
                desc = " ".join(clean_docblock(event.description).split())
                lines.append(desc[:200] + ("..." if len(desc) > 200 else ""))
            lines.append("")
    return "\n".join(lines)


def format_events_compact(result: ListEventsResult) -> str:
    lines = [
        "## Events (compact)",
        f"Showing {len(result.events)} of {result.filtered} filtered ({result.total} total)",
        "",
    ]
    if not result.events:
        lines.append("No events found matching the criteria.")
        return "\n".join(lines)

    for event in result.events:
        n = len(event.parameters)
        lines.append(f"- **{event.name}** `{event.class_name}` ({n} param{'' if n == 1 else 's'})")

    hidden = result.filtered - len(result.events)
    if hidden > 0:
        lines += ["", f"*{hidden} more events not shown. Use --limit or filters to refine.*"]
    return "\n".join(lines)


def format_services(result: ServicesResult) -> str:
    lines = ["## DI Services", f"Found {len(result.services)} services ({result.total} total)", ""]
    if not result.services:
        lines.append("No services found matching the criteria.")
        return "\n".join(lines)

    sections = (
        ("Service Providers", [s for s in result.services if s.kind != "factory"]),
        ("Factories", [s for s in result.services if s.kind == "factory"]),
    )
    for title, services in sections:
        if not services:
            continue
        lines += [f"### {title}", ""]
        for svc in services:
            lines += [f"#### {svc.name}", f"`{svc.fqn}`"]
            if svc.methods:
                lines.append(f"Methods: {', '.join(svc.methods)}")
            lines.append("")
    return "\n".join(lines)


# --- Schema ---


def format_table_schema(table: TableSchema) -> str:
    lines = [f"## Table: `{table.name}`"]
    if table.comment:
        lines.append(f"> {table.comment}")
    if table.engine:
        lines.append(f"**Engine:** {table.engine}")
    if table.charset:
        lines.append(f"**Charset:** {table.charset}")
    lines += [
        "",
        "### Columns",
        "",
        "| Column | Type | Nullable | Default | Auto | Comment |",
        "|--------|------|----------|---------|------|---------|",
    ]
    for col in table.columns:
        lines.append(
            f"| `{col.name}` | {col.type} | {'YES' if col.nullable else 'NO'} "
            f"| {col.default_value or ''} | {'yes' if col.auto_increment else ''} "
            f"| {col.comment or ''} |"
        )
    lines.append("")

    if table.indexes:
        lines += ["### Indexes", ""]
        for idx in table.indexes:
            lines.append(f"- **{idx.name}** ({idx.kind}): {_code_list(idx.columns)}")
        lines.append("")
    return "\n".join(lines)


def format_schema_list(tables: list[TableSchema]) -> str:
    """Tables grouped by the first segment of their short name."""
    lines = ["## Database Schema", f"Found {len(tables)} tables", ""]
    groups: dict[str, list[TableSchema]] = {}
    for table in tables:
        groups.setdefault(table.short_name.split("_")[0], []).append(table)
    for group in sorted(groups):
        members = groups[group]
        lines.append(f"### {group} ({len(members)} tables)")
        lines += [f"- `{t.name}`: {len(t.columns)} columns" for t in members]
        lines.append("")
    return "\n".join(lines)


def format_schema_result(result: SchemaLookupResult, list_all: bool = False) -> str:
    if result.status == NOT_FOUND:
        return f"{result.message}\n\nTry `phpscope schema --list` to browse all tables."
    if result.status == AMBIGUOUS:
        names = "\n".join(f"- `{t.name}`" for t in result.tables)
        return f"{result.message}:\n{names}"
    if list_all:
        return format_schema_list(result.tables)
    return "\n".join(format_table_schema(t) for t in result.tables)


# --- Web components ---


def format_component(component: WebComponent, source_root: str | Path | None = None) -> str:
    lines = [f"## <{component.tag_name}>", f"**Class:** `{component.class_name}`"]
    if component.extends_element:
        lines.append(f"**Extends:** `{component.extends_element}`")
    if component.docblock:
        lines += ["", clean_docblock(component.docblock)]
    if component.attributes:
        lines += ["", "### Attributes"]
        lines += [f"- `{a}`" for a in component.attributes]
    if component.properties:
        lines += ["", "### Properties"]
        lines += [f"- `{p.name}`" for p in component.properties]
    if component.events:
        lines += ["", "### Events"]
        lines += [f"- `{e}`" for e in component.events]
    if component.slots:
        lines += ["", "### Slots"]
        lines += [f"- `{s}`" if s else "- (default)" for s in component.slots]
    lines += ["", f"**Source:** `{sanitise_path(component.file_path, source_root)}`"]
    return "\n".join(lines)


def format_component_list(components: list[WebComponent]) -> str:
    lines = ["## Web Components", f"Found {len(components)} components", ""]
    for c in sorted(components, key=lambda c: c.tag_name):
        lines.append(f"- `<{c.tag_name}>` {c.class_name}")
    return "\n".join(lines)


def format_component_result(result: ComponentLookupResult) -> str:
    if result.status == NOT_FOUND:
        return f"{result.message}\n\nTry `phpscope components` to list all web components."
    if result.status == AMBIGUOUS:
        names = "\n".join(f"- `<{c.tag_name}>` {c.class_name}" for c in result.components)
        return f"{result.message}:\n{names}"
    return format_component(result.components[0])
