"""Query operations over an in-memory index snapshot.

Every function here is pure: it reads an Index / SchemaIndex / component
list and returns a structured result. "Not found" and "ambiguous" are
results, not exceptions; ValueError is raised only for invalid filter
arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .format import (
    clean_docblock,
    format_class_signature,
    format_method_signature,
    format_property_signature,
)
from .models import (
    AMBIGUOUS,
    FOUND,
    NOT_FOUND,
    Declaration,
    EventInfo,
    Index,
    Method,
    SchemaIndex,
    ServiceInfo,
    TableSchema,
    WebComponent,
)
from .sql_schema import short_table_name

# Tunable lookup limits
MAX_AMBIGUOUS_CANDIDATES = 10
MAX_FUZZY_SUGGESTIONS = 5
MAX_EDIT_DISTANCE = 3

SEARCH_TYPES = ("all", "class", "method", "constant", "property")
SERVICE_KINDS = ("provider", "interface", "factory")
COMPONENT_PREFIX = "com_"
MAX_EVENT_LIMIT = 100


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


# --- Class lookup ---


@dataclass
class LookupResult:
    status: str
    message: str
    declaration: Declaration | None = None
    method: Method | None = None
    member: str | None = None
    suggestions: list[str] = field(default_factory=list)

    @property
    def member_found(self) -> bool:
        return self.member is not None and self.method is not None


def _select(index: Index, name: str) -> LookupResult | Declaration:
    term = name.lower().lstrip("\\")

    # Several exact hits fall through to the substring step
    for key in (lambda d: d.fqn.lower(), lambda d: d.name.lower()):
        exact = [d for d in index.declarations if key(d) == term]
        if len(exact) == 1:
            return exact[0]

    partial = [
        d for d in index.declarations
        if term in d.name.lower() or term in d.fqn.lower()
    ]
    if len(partial) == 1:
        return partial[0]
    if len(partial) > 1:
        return LookupResult(
            status=AMBIGUOUS,
            message=f'Multiple matches found for "{name}". Did you mean one of these?',
            suggestions=[d.fqn for d in partial[:MAX_AMBIGUOUS_CANDIDATES]],
        )

    close = [
        d.fqn for d in index.declarations
        if levenshtein(d.name.lower(), term) <= MAX_EDIT_DISTANCE
    ][:MAX_FUZZY_SUGGESTIONS]
    return LookupResult(
        status=NOT_FOUND,
        message=f'Class "{name}" not found in the index.',
        suggestions=close,
    )


def lookup_class(index: Index, name: str, member: str | None = None) -> LookupResult:
    """Find a declaration by FQN, simple name or substring, then optionally a method.

    Precedence: exact FQN, exact simple name, unique substring match. Several
    substring matches give an ambiguous result; no match gives edit-distance
    suggestions.
    """
    selected = _select(index, name)
    if isinstance(selected, LookupResult):
        return selected
    decl = selected

    if not member:
        return LookupResult(status=FOUND, message=f"Found {decl.fqn}", declaration=decl)

    method = decl.find_method(member)
    if method is None:
        needle = member.lower()
        return LookupResult(
            status=FOUND,
            message=f'Method "{member}" not found in {decl.fqn}. Available methods listed in class details.',
            declaration=decl,
            member=member,
            suggestions=[m.name for m in decl.methods if needle in m.name.lower()],
        )

    return LookupResult(
        status=FOUND,
        message=f"Found method {method.name} in {decl.fqn}",
        declaration=decl,
        method=method,
        member=member,
    )


# --- Search ---


@dataclass
class SearchResult:
    kind: str  # class | method | constant | property
    name: str
    fqn: str
    context: str | None = None
    docblock: str | None = None
    signature: str | None = None


@dataclass
class SearchOutput:
    query: str
    results: list[SearchResult]
    total: int
    suggestions: list[str] = field(default_factory=list)


# Topic keyword -> where to look instead, for zero-result searches
ZERO_RESULT_FALLBACKS: list[tuple[tuple[str, ...], str]] = [
    (("event", "plugin", "trigger", "dispatch", "subscriber"),
     "`phpscope events` to browse all event classes"),
    (("service", "container", "dependency", "provider", "factory"),
     "`phpscope services` to browse DI service providers and factories"),
    (("database", "query", "sql", "select", "insert", "update", "delete"),
     "`phpscope schema --list` to browse table schemas"),
    (("schema", "table", "column", "migration"),
     "`phpscope schema --list` to browse all database table schemas"),
    (("element", "webcomponent", "web component", "custom element", "slot"),
     "`phpscope components` to browse web components"),
    (("mvc", "model", "view", "controller", "component", "com_"),
     "`phpscope schema --component <name>` for a component's tables, or search for its Controller/Model class"),
]

DEFAULT_SUGGESTIONS = [
    "`phpscope events` to browse event classes",
    "`phpscope services` to browse DI service providers",
    "`phpscope search <shorter term>` with a shorter or more general term",
]


def zero_result_suggestions(query: str) -> list[str]:
    q = query.lower()
    suggestions = []
    for keywords, suggestion in ZERO_RESULT_FALLBACKS:
        if any(kw in q for kw in keywords) and suggestion not in suggestions:
            suggestions.append(suggestion)
    return suggestions or list(DEFAULT_SUGGESTIONS)


def _truncate_docblock(docblock: str | None, max_len: int = 100) -> str | None:
    if not docblock:
        return None
    cleaned = " ".join(clean_docblock(docblock).split())
    if len(cleaned) > max_len:
        return cleaned[:max_len] + "..."
    return cleaned


def search(index: Index, query: str, type_filter: str = "all", limit: int = 10) -> SearchOutput:
    """Case-insensitive substring search across declarations and their members."""
    if type_filter not in SEARCH_TYPES:
        raise ValueError(f"Invalid type filter {type_filter!r}; expected one of {SEARCH_TYPES}")

    term = query.lower()
    results: list[SearchResult] = []

    def wants(kind: str) -> bool:
        return type_filter in ("all", kind)

    for decl in index.declarations:
        if wants("class") and (
            term in decl.name.lower()
            or term in decl.fqn.lower()
            or (decl.docblock and term in decl.docblock.lower())
        ):
            results.append(SearchResult(
                kind="class",
                name=decl.name,
                fqn=decl.fqn,
                docblock=_truncate_docblock(decl.docblock),
                signature=format_class_signature(decl),
            ))

        if wants("method"):
            for method in decl.methods:
                if term in method.name.lower() or (
                    method.docblock and term in method.docblock.lower()
                ):
                    results.append(SearchResult(
                        kind="method",
                        name=method.name,
                        fqn=f"{decl.fqn}::{method.name}()",
                        context=decl.fqn,
                        docblock=_truncate_docblock(method.docblock),
                        signature=format_method_signature(method, full=True),
                    ))

        if wants("constant"):
            for const in decl.constants:
                if term in const.name.lower():
                    results.append(SearchResult(
                        kind="constant",
                        name=const.name,
                        fqn=f"{decl.fqn}::{const.name}",
                        context=decl.fqn,
                        signature=f"{const.name} = {const.value}" if const.value else const.name,
                    ))

        if wants("property"):
            for prop in decl.properties:
                if term in prop.name.lower():
                    results.append(SearchResult(
                        kind="property",
                        name=prop.name,
                        fqn=f"{decl.fqn}::${prop.name}",
                        context=decl.fqn,
                        signature=format_property_signature(prop),
                    ))

    # Exact name, then prefix, then shorter names; sort is stable otherwise
    results.sort(key=lambda r: (
        r.name.lower() != term,
        not r.name.lower().startswith(term),
        len(r.name),
    ))

    return SearchOutput(
        query=query,
        results=results[:max(limit, 0)],
        total=len(results),
        suggestions=zero_result_suggestions(query) if not results else [],
    )


# --- Events ---


@dataclass
class ListEventsResult:
    events: list[EventInfo]
    total: int
    filtered: int


def list_events(
    index: Index,
    filter: str | None = None,
    namespace: str | None = None,
    limit: int | None = 30,
) -> ListEventsResult:
    """Event descriptors, optionally filtered by text and by namespace."""
    events = list(index.event_map.values())
    total = len(events)

    if namespace:
        ns = namespace.lower()
        events = [e for e in events if ns in e.class_name.lower()]

    if filter:
        needle = filter.lower()
        events = [
            e for e in events
            if needle in e.name.lower()
            or needle in e.class_name.lower()
            or (e.description and needle in e.description.lower())
        ]

    filtered = len(events)
    if limit is not None:
        events = events[:min(max(1, limit), MAX_EVENT_LIMIT)]
    return ListEventsResult(events=events, total=total, filtered=filtered)


# --- Services ---


@dataclass
class ServicesResult:
    services: list[ServiceInfo]
    total: int


def _public_methods(decl: Declaration) -> list[str]:
    return [m.name for m in decl.methods if m.visibility == "public"]


def get_services(
    index: Index, filter: str | None = None, kind: str | None = None, limit: int = 30,
) -> ServicesResult:
    """Service providers and factories found by naming convention."""
    if kind is not None and kind not in SERVICE_KINDS:
        raise ValueError(f"Invalid service kind {kind!r}; expected one of {SERVICE_KINDS}")

    services: list[ServiceInfo] = []
    for decl in index.declarations:
        if (
            decl.name.endswith("ServiceProvider")
            or any("ServiceProviderInterface" in i for i in decl.implements)
            or "Service" in decl.namespace
        ):
            services.append(ServiceInfo(
                name=decl.name,
                fqn=decl.fqn,
                kind="provider" if decl.name.endswith("ServiceProvider") else "interface",
                description=decl.docblock,
                methods=_public_methods(decl),
            ))

    for decl in index.declarations:
        if decl.name.endswith("Factory") or "Factory" in decl.namespace:
            services.append(ServiceInfo(
                name=decl.name,
                fqn=decl.fqn,
                kind="factory",
                description=decl.docblock,
                methods=_public_methods(decl),
            ))

    total = len(services)
    if kind:
        services = [s for s in services if s.kind == kind]
    if filter:
        needle = filter.lower()
        services = [s for s in services if needle in s.name.lower() or needle in s.fqn.lower()]
    return ServicesResult(services=services[:max(limit, 0)], total=total)


# --- Schema ---


@dataclass
class SchemaLookupResult:
    status: str
    message: str
    tables: list[TableSchema] = field(default_factory=list)


def lookup_schema(
    schema: SchemaIndex,
    table_name: str | None = None,
    component: str | None = None,
    list_all: bool = False,
) -> SchemaLookupResult:
    """Find tables by name (exact, then substring), by component prefix, or all."""
    if list_all:
        return SchemaLookupResult(
            status=FOUND, message=f"Found {len(schema.tables)} tables", tables=list(schema.tables),
        )

    if table_name:
        short = short_table_name(table_name)
        table = schema.table_map.get(short)
        if table is not None:
            return SchemaLookupResult(status=FOUND, message=f"Found {table.name}", tables=[table])

        needle = short.lower()
        raw = table_name.lower()
        matches = [
            t for t in schema.tables
            if needle in t.short_name.lower() or raw in t.name.lower()
        ]
        if len(matches) == 1:
            return SchemaLookupResult(status=FOUND, message=f"Found {matches[0].name}", tables=matches)
        if len(matches) > 1:
            return SchemaLookupResult(
                status=AMBIGUOUS, message=f'Multiple tables match "{table_name}"', tables=matches,
            )
        return SchemaLookupResult(status=NOT_FOUND, message=f'Table "{table_name}" not found in schema.')

    if component:
        prefix = component[len(COMPONENT_PREFIX):] if component.startswith(COMPONENT_PREFIX) else component
        matches = [
            t for t in schema.tables
            if t.short_name == prefix or t.short_name.startswith(prefix + "_")
        ]
        if not matches:
            return SchemaLookupResult(
                status=NOT_FOUND, message=f'No tables found for component "{component}".',
            )
        return SchemaLookupResult(
            status=FOUND, message=f"Found {len(matches)} tables for {component}", tables=matches,
        )

    raise ValueError("Provide table_name, component, or list_all=True")


# --- Web components ---


@dataclass
class ComponentLookupResult:
    status: str
    message: str
    components: list[WebComponent] = field(default_factory=list)


def lookup_component(components: list[WebComponent], name: str) -> ComponentLookupResult:
    """Find a web component by tag or class name (exact, then substring)."""
    term = name.lower()
    exact = [
        c for c in components
        if c.tag_name.lower() == term or c.class_name.lower() == term
    ]
    matches = exact or [
        c for c in components
        if term in c.tag_name.lower() or term in c.class_name.lower()
    ]
    if len(matches) == 1:
        return ComponentLookupResult(status=FOUND, message=f"Found <{matches[0].tag_name}>", components=matches)
    if len(matches) > 1:
        return ComponentLookupResult(
            status=AMBIGUOUS, message=f'Multiple components match "{name}"', components=matches,
        )
    return ComponentLookupResult(status=NOT_FOUND, message=f'Web component "{name}" not found.')
