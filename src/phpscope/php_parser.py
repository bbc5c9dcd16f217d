"""Tree-sitter based PHP declaration parser.

Extracts classes, interfaces and traits with their methods, properties and
constants. No type inference or cross-file resolution: names are kept as
written in the source.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from tree_sitter import Node, Parser

from .languages import LANGUAGES, get_language
from .models import Constant, Declaration, Method, Parameter, Property
from .walker import walk_files

logger = logging.getLogger("phpscope.php_parser")

DECLARATION_TYPES = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "trait_declaration": "trait",
}

TYPE_NODES = {
    "union_type",
    "intersection_type",
    "disjunctive_normal_form_type",
    "optional_type",
    "named_type",
    "primitive_type",
    "bottom_type",
}

# Class constant declarations are "const_declaration" in current grammars
CONST_DECLARATION_TYPES = {"const_declaration", "class_constant_declaration"}

SCALAR_LITERALS = {"string", "encapsed_string", "integer", "float"}
KEYWORD_LITERALS = {"boolean", "null"}
# Constant references are identifiers, not computed expressions
REFERENCE_EXPRESSIONS = {"name", "qualified_name", "class_constant_access_expression"}

ARRAY_PLACEHOLDER = "[...]"
EXPRESSION_PLACEHOLDER = "..."


def _text(node: Node | None) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _compact(text: str) -> str:
    return "".join(text.split())


def _find_child(node: Node, types: Iterable[str] | str) -> Node | None:
    wanted = {types} if isinstance(types, str) else set(types)
    for child in node.children:
        if child.type in wanted:
            return child
    return None


def _field(node: Node, field_name: str, fallback_type: str) -> Node | None:
    """Child by field name, or the first child of ``fallback_type``."""
    child = node.child_by_field_name(field_name)
    if child is None:
        child = _find_child(node, fallback_type)
    return child


def _extract_docblock(node: Node) -> str | None:
    """Return the block comment immediately preceding a declaration node.

    Line comments between the block and the node are skipped; any other
    sibling ends the search.
    """
    prev = node.prev_sibling
    while prev is not None and prev.type == "comment":
        text = _text(prev).strip()
        if text.startswith("/*"):
            return text
        prev = prev.prev_sibling
    return None


def render_type(node: Node | None) -> str | None:
    """Render a type annotation back to source form (``?A``, ``A|B``, ``A&B``)."""
    if node is None:
        return None
    if node.type == "union_type":
        return "|".join(filter(None, (render_type(c) for c in node.named_children)))
    if node.type == "intersection_type":
        return "&".join(filter(None, (render_type(c) for c in node.named_children)))
    if node.type == "optional_type":
        inner = node.named_children[0] if node.named_children else None
        return "?" + (render_type(inner) or "")
    return _compact(_text(node)) or None


def render_value(node: Node | None) -> str | None:
    """Summarize a default/constant value as short literal text."""
    if node is None:
        return None
    kind = node.type
    if kind in SCALAR_LITERALS:
        return _text(node)
    if kind in KEYWORD_LITERALS:
        return _text(node).lower()
    if kind == "array_creation_expression":
        return ARRAY_PLACEHOLDER
    if kind == "unary_op_expression":
        operand = node.named_children[-1] if node.named_children else None
        if operand is not None and operand.type in ("integer", "float"):
            return _compact(_text(node))
        return EXPRESSION_PLACEHOLDER
    if kind in REFERENCE_EXPRESSIONS:
        return _compact(_text(node))
    if kind == "parenthesized_expression" and node.named_children:
        return render_value(node.named_children[0])
    return EXPRESSION_PLACEHOLDER


def _modifiers(node: Node) -> tuple[str, bool, bool]:
    """Return (visibility, is_static, is_abstract) from a member's modifiers."""
    visibility = "public"
    is_static = False
    is_abstract = False
    for child in node.children:
        if child.type == "visibility_modifier":
            text = _text(child).strip().lower()
            if text in ("protected", "private"):
                visibility = text
        elif child.type == "static_modifier":
            is_static = True
        elif child.type == "abstract_modifier":
            is_abstract = True
    return visibility, is_static, is_abstract


def _type_of(node: Node) -> str | None:
    type_node = node.child_by_field_name("type")
    if type_node is None:
        type_node = _find_child(node, TYPE_NODES)
    return render_type(type_node)


def _variable_name(node: Node | None) -> str:
    """Name of a ``$var`` node without the sigil."""
    if node is None:
        return ""
    if node.type == "by_ref":
        inner = _find_child(node, "variable_name")
        if inner is not None:
            node = inner
    name = _find_child(node, "name")
    if name is not None:
        return _text(name)
    return _text(node).lstrip("&$")


def _names_in(node: Node | None) -> list[str]:
    """Names listed in an extends/implements/use clause, in order."""
    if node is None:
        return []
    return [_compact(_text(c)) for c in node.named_children
            if c.type in ("name", "qualified_name")]


class PhpParser:
    """Parses PHP source into Declaration records."""

    def __init__(self) -> None:
        language = get_language("php")
        if language is None:
            raise RuntimeError(
                "tree-sitter PHP grammar not available; install the 'tree-sitter-php' package"
            )
        self._parser = Parser(language)

    def parse_file(self, path: Path) -> list[Declaration]:
        declarations, _ = self.parse_file_checked(path)
        return declarations

    def parse_file_checked(self, path: Path) -> tuple[list[Declaration], bool]:
        """Parse one file and report whether it was read and parsed cleanly.

        The flag is False when the file could not be read or the parse
        failed partway; the declarations collected before the failure are
        still returned.
        """
        try:
            source = path.read_bytes()
        except OSError as e:
            logger.error("Error reading %s: %s", path, e)
            return [], False
        return self._parse(source, str(path))

    def parse_content(self, source: str | bytes, file_path: str) -> list[Declaration]:
        """Parse one file's text. Never raises; returns what was parsed."""
        declarations, _ = self._parse(source, file_path)
        return declarations

    def _parse(self, source: str | bytes, file_path: str) -> tuple[list[Declaration], bool]:
        if isinstance(source, str):
            source = source.encode("utf-8")

        declarations: list[Declaration] = []
        try:
            tree = self._parser.parse(source)
            if tree.root_node.has_error:
                logger.debug("Syntax errors in %s; extracting what parses", file_path)
            self._walk(tree.root_node, "", file_path, declarations)
        except Exception as e:
            logger.error("Parse error in %s: %s", file_path, e)
            return declarations, False
        return declarations, True

    def parse_directory(
        self, root: Path, ignore_patterns: Iterable[str] = (),
        max_file_size: int | None = None,
    ) -> list[Declaration]:
        declarations: list[Declaration] = []
        for path in walk_files(
            root, LANGUAGES["php"].extensions,
            ignore_patterns=ignore_patterns, max_file_size=max_file_size,
        ):
            declarations.extend(self.parse_file(path))
        return declarations

    def _walk(self, node: Node, namespace: str, file_path: str, out: list[Declaration]) -> None:
        for child in node.named_children:
            if child.type == "namespace_definition":
                name_node = _field(child, "name", "namespace_name")
                name = _compact(_text(name_node)).lstrip("\\")
                body = _field(child, "body", "compound_statement")
                if body is not None:
                    # Block form scopes only its own body
                    self._walk(body, name, file_path, out)
                else:
                    namespace = name
                continue

            kind = DECLARATION_TYPES.get(child.type)
            if kind is not None:
                decl = self._parse_declaration(child, kind, namespace, file_path)
                if decl is not None:
                    out.append(decl)
                continue

            self._walk(child, namespace, file_path, out)

    def _parse_declaration(
        self, node: Node, kind: str, namespace: str, file_path: str,
    ) -> Declaration | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None

        # Interfaces may extend several parents; only the first is kept
        parents = _names_in(_find_child(node, "base_clause"))
        decl = Declaration(
            name=_text(name_node),
            namespace=namespace,
            kind=kind,
            is_abstract=_find_child(node, "abstract_modifier") is not None,
            extends=parents[0] if parents else None,
            implements=_names_in(_find_child(node, "class_interface_clause")),
            docblock=_extract_docblock(node),
            file_path=file_path,
        )

        body = _field(node, "body", "declaration_list")
        if body is None:
            return decl

        for member in body.named_children:
            if member.type == "method_declaration":
                method = self._parse_method(member)
                if method is not None:
                    decl.methods.append(method)
            elif member.type == "property_declaration":
                decl.properties.extend(self._parse_properties(member))
            elif member.type in CONST_DECLARATION_TYPES:
                decl.constants.extend(self._parse_constants(member))
            elif member.type == "use_declaration":
                decl.traits.extend(_names_in(member))
        return decl

    def _parse_method(self, node: Node) -> Method | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        visibility, is_static, is_abstract = _modifiers(node)
        params_node = node.child_by_field_name("parameters")
        return Method(
            name=_text(name_node),
            visibility=visibility,
            is_static=is_static,
            is_abstract=is_abstract,
            parameters=self._parse_parameters(params_node),
            return_type=render_type(node.child_by_field_name("return_type")),
            docblock=_extract_docblock(node),
        )

    def _parse_parameters(self, node: Node | None) -> list[Parameter]:
        if node is None:
            return []
        params: list[Parameter] = []
        for child in node.named_children:
            if child.type not in (
                "simple_parameter", "variadic_parameter", "property_promotion_parameter",
            ):
                continue
            name_node = child.child_by_field_name("name")
            params.append(Parameter(
                name=_variable_name(name_node),
                type=_type_of(child),
                default_value=render_value(child.child_by_field_name("default_value")),
                is_variadic=child.type == "variadic_parameter",
                is_reference=(
                    _find_child(child, "reference_modifier") is not None
                    or (name_node is not None and name_node.type == "by_ref")
                ),
            ))
        return params

    def _parse_properties(self, node: Node) -> list[Property]:
        visibility, is_static, _ = _modifiers(node)
        prop_type = _type_of(node)
        doc = _extract_docblock(node)
        props: list[Property] = []
        for element in node.named_children:
            if element.type != "property_element":
                continue
            default = element.child_by_field_name("default_value")
            if default is None:
                initializer = _find_child(element, "property_initializer")
                if initializer is not None and initializer.named_children:
                    default = initializer.named_children[0]
            name_node = _field(element, "name", "variable_name")
            props.append(Property(
                name=_variable_name(name_node),
                visibility=visibility,
                is_static=is_static,
                type=prop_type,
                default_value=render_value(default),
                docblock=doc,
            ))
        return props

    def _parse_constants(self, node: Node) -> list[Constant]:
        visibility, _, _ = _modifiers(node)
        doc = _extract_docblock(node)
        constants: list[Constant] = []
        for element in node.named_children:
            if element.type != "const_element":
                continue
            parts = element.named_children
            if not parts:
                continue
            value = parts[-1] if len(parts) > 1 else None
            constants.append(Constant(
                name=_text(parts[0]),
                value=render_value(value),
                visibility=visibility,
                docblock=doc,
            ))
        return constants
