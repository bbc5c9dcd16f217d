"""Record types for the declaration, event, schema and web-component indexes.

Every record round-trips through ``to_dict()`` / ``from_dict()`` so the
persisted JSON keeps stable field names.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

INDEX_FORMAT_VERSION = "1"

# Query outcome statuses
FOUND = "found"
AMBIGUOUS = "ambiguous"
NOT_FOUND = "not_found"


@dataclass
class Parameter:
    name: str
    type: str | None = None
    default_value: str | None = None
    is_variadic: bool = False
    is_reference: bool = False


@dataclass
class Method:
    name: str
    visibility: str = "public"
    is_static: bool = False
    is_abstract: bool = False
    parameters: list[Parameter] = field(default_factory=list)
    return_type: str | None = None
    docblock: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Method:
        data = dict(data)
        data["parameters"] = [Parameter(**p) for p in data.get("parameters", [])]
        return cls(**data)


@dataclass
class Property:
    name: str
    visibility: str = "public"
    is_static: bool = False
    type: str | None = None
    default_value: str | None = None
    docblock: str | None = None


@dataclass
class Constant:
    name: str
    value: str | None = None
    visibility: str = "public"
    docblock: str | None = None


@dataclass
class Declaration:
    """A class, interface or trait found in one source file."""
    name: str
    namespace: str = ""
    kind: str = "class"
    is_abstract: bool = False
    extends: str | None = None
    implements: list[str] = field(default_factory=list)
    traits: list[str] = field(default_factory=list)
    docblock: str | None = None
    methods: list[Method] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)
    file_path: str = ""

    @property
    def fqn(self) -> str:
        return f"{self.namespace}\\{self.name}" if self.namespace else self.name

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"

    @property
    def is_trait(self) -> bool:
        return self.kind == "trait"

    def find_method(self, name: str) -> Method | None:
        lower = name.lower()
        for method in self.methods:
            if method.name.lower() == lower:
                return method
        return None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["fqn"] = self.fqn
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Declaration:
        data = dict(data)
        data.pop("fqn", None)
        data["methods"] = [Method.from_dict(m) for m in data.get("methods", [])]
        data["properties"] = [Property(**p) for p in data.get("properties", [])]
        data["constants"] = [Constant(**c) for c in data.get("constants", [])]
        return cls(**data)


@dataclass
class EventInfo:
    name: str
    class_name: str
    parameters: list[str] = field(default_factory=list)
    description: str | None = None


@dataclass
class Index:
    """Immutable snapshot of every parsed declaration plus derived maps."""
    version: str = "unknown"
    built_at: str = ""
    commit: str | None = None
    declarations: list[Declaration] = field(default_factory=list)
    namespace_map: dict[str, list[str]] = field(default_factory=dict)
    event_map: dict[str, EventInfo] = field(default_factory=dict)
    format_version: str = INDEX_FORMAT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "format_version": self.format_version,
            "version": self.version,
            "built_at": self.built_at,
            "commit": self.commit,
            "declarations": [d.to_dict() for d in self.declarations],
            "namespace_map": self.namespace_map,
            "event_map": {k: asdict(v) for k, v in self.event_map.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Index:
        return cls(
            format_version=data.get("format_version", INDEX_FORMAT_VERSION),
            version=data.get("version", "unknown"),
            built_at=data.get("built_at", ""),
            commit=data.get("commit"),
            declarations=[Declaration.from_dict(d) for d in data.get("declarations", [])],
            namespace_map={k: list(v) for k, v in data.get("namespace_map", {}).items()},
            event_map={k: EventInfo(**v) for k, v in data.get("event_map", {}).items()},
        )


@dataclass
class Column:
    name: str
    type: str
    nullable: bool = True
    default_value: str | None = None
    auto_increment: bool = False
    comment: str | None = None


@dataclass
class IndexDef:
    name: str
    kind: str
    columns: list[str] = field(default_factory=list)


@dataclass
class TableSchema:
    name: str  # e.g. "#__content"
    short_name: str  # e.g. "content"
    columns: list[Column] = field(default_factory=list)
    indexes: list[IndexDef] = field(default_factory=list)
    engine: str | None = None
    charset: str | None = None
    comment: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableSchema:
        data = dict(data)
        data["columns"] = [Column(**c) for c in data.get("columns", [])]
        data["indexes"] = [IndexDef(**i) for i in data.get("indexes", [])]
        return cls(**data)


@dataclass
class SchemaIndex:
    tables: list[TableSchema] = field(default_factory=list)
    table_map: dict[str, TableSchema] = field(default_factory=dict)

    @classmethod
    def from_tables(cls, tables: list[TableSchema]) -> SchemaIndex:
        table_map: dict[str, TableSchema] = {}
        for table in tables:
            # Later definitions of the same table replace earlier ones
            table_map[table.short_name] = table
        return cls(tables=list(tables), table_map=table_map)

    def to_dict(self) -> dict[str, Any]:
        # table_map is derived; only the ordered list is stored
        return {"tables": [asdict(t) for t in self.tables]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaIndex:
        return cls.from_tables([TableSchema.from_dict(t) for t in data.get("tables", [])])


@dataclass
class ComponentProperty:
    name: str
    type: str | None = None
    description: str | None = None


@dataclass
class WebComponent:
    """A custom element defined via ``customElements.define``."""
    tag_name: str
    class_name: str
    file_path: str
    attributes: list[str] = field(default_factory=list)
    properties: list[ComponentProperty] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    slots: list[str] = field(default_factory=list)
    extends_element: str | None = None
    docblock: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WebComponent:
        data = dict(data)
        data["properties"] = [ComponentProperty(**p) for p in data.get("properties", [])]
        return cls(**data)


@dataclass
class ServiceInfo:
    name: str
    fqn: str
    kind: str  # provider | interface | factory
    description: str | None = None
    methods: list[str] = field(default_factory=list)
