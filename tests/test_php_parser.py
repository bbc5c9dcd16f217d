"""Tests for the tree-sitter PHP declaration parser."""

from pathlib import Path

import pytest

from phpscope.php_parser import PhpParser


@pytest.fixture(scope="module")
def parser():
    return PhpParser()


WIDGET_SOURCE = '''\
<?php
/**
 * File header.
 */

namespace Acme\\Widget;

use Acme\\Base\\Thing;

/**
 * A widget.
 */
abstract class Widget extends Thing implements Countable, Renderable
{
    use HasOptions, Loggable;

    public const VERSION = '1.0';
    const DEFAULT_SIZE = 10, MAX_SIZE = -1;
    private const FLAGS = [1, 2];

    /** @var string */
    public ?string $title = null;
    protected static int $count = 0;
    private array $items = [];
    public $untyped;

    public function __construct(protected string $name, int|string $id = self::DEFAULT_SIZE)
    {
    }

    /**
     * Render it.
     */
    public function render(array &$data, string ...$extra): string
    {
        return '';
    }

    abstract protected function build(): void;

    public static function create(?Thing $parent = null, $flag = true)
    {
        return null;
    }

    public function combine(Countable&Traversable $items, (Countable&Traversable)|null $pair = null)
    {
    }
}
'''


@pytest.fixture(scope="module")
def widget(parser):
    decls = parser.parse_content(WIDGET_SOURCE, "Widget.php")
    assert len(decls) == 1
    return decls[0]


class TestClassDeclaration:
    def test_identity(self, widget):
        assert widget.name == "Widget"
        assert widget.namespace == "Acme\\Widget"
        assert widget.fqn == "Acme\\Widget\\Widget"
        assert widget.kind == "class"
        assert widget.file_path == "Widget.php"

    def test_abstract_and_parents(self, widget):
        assert widget.is_abstract
        assert widget.extends == "Thing"
        assert widget.implements == ["Countable", "Renderable"]

    def test_traits(self, widget):
        assert widget.traits == ["HasOptions", "Loggable"]

    def test_docblock_is_nearest_block_comment(self, widget):
        assert widget.docblock is not None
        assert "A widget." in widget.docblock
        assert "File header" not in widget.docblock


class TestMembers:
    def test_constants(self, widget):
        consts = {c.name: c for c in widget.constants}
        assert set(consts) == {"VERSION", "DEFAULT_SIZE", "MAX_SIZE", "FLAGS"}
        assert consts["VERSION"].value == "'1.0'"
        assert consts["DEFAULT_SIZE"].value == "10"
        assert consts["MAX_SIZE"].value == "-1"
        assert consts["FLAGS"].value == "[...]"
        assert consts["FLAGS"].visibility == "private"
        assert consts["DEFAULT_SIZE"].visibility == "public"

    def test_properties(self, widget):
        props = {p.name: p for p in widget.properties}
        assert set(props) == {"title", "count", "items", "untyped"}

        assert props["title"].type == "?string"
        assert props["title"].default_value == "null"
        assert props["title"].visibility == "public"
        assert "@var string" in props["title"].docblock

        assert props["count"].is_static
        assert props["count"].visibility == "protected"
        assert props["count"].type == "int"
        assert props["count"].default_value == "0"

        assert props["items"].visibility == "private"
        assert props["items"].default_value == "[...]"

        assert props["untyped"].type is None
        assert props["untyped"].default_value is None

    def test_method_names_in_order(self, widget):
        assert [m.name for m in widget.methods] == ["__construct", "render", "build", "create", "combine"]

    def test_promoted_and_union_parameters(self, widget):
        ctor = widget.find_method("__construct")
        assert [p.name for p in ctor.parameters] == ["name", "id"]
        assert ctor.parameters[0].type == "string"
        assert ctor.parameters[1].type == "int|string"
        assert ctor.parameters[1].default_value == "self::DEFAULT_SIZE"

    def test_reference_and_variadic_parameters(self, widget):
        render = widget.find_method("render")
        data, extra = render.parameters
        assert data.name == "data"
        assert data.is_reference
        assert not data.is_variadic
        assert extra.name == "extra"
        assert extra.type == "string"
        assert extra.is_variadic
        assert render.return_type == "string"
        assert "Render it." in render.docblock

    def test_modifiers(self, widget):
        build = widget.find_method("build")
        assert build.is_abstract
        assert build.visibility == "protected"
        assert build.return_type == "void"

        create = widget.find_method("create")
        assert create.is_static
        assert create.visibility == "public"
        assert create.return_type is None

    def test_nullable_type_and_keyword_defaults(self, widget):
        parent, flag = widget.find_method("create").parameters
        assert parent.type == "?Thing"
        assert parent.default_value == "null"
        assert flag.type is None
        assert flag.default_value == "true"

    def test_intersection_and_dnf_types(self, widget):
        items, pair = widget.find_method("combine").parameters
        assert items.type == "Countable&Traversable"
        assert not items.is_reference
        assert pair.type == "(Countable&Traversable)|null"
        assert not pair.is_reference
        assert pair.default_value == "null"

    def test_find_method_is_case_insensitive(self, widget):
        assert widget.find_method("RENDER") is widget.find_method("render")
        assert widget.find_method("missing") is None


class TestNamespaces:
    def test_file_without_namespace(self, parser):
        decls = parser.parse_content("<?php\nclass Plain {}\n", "Plain.php")
        assert len(decls) == 1
        assert decls[0].namespace == ""
        assert decls[0].fqn == "Plain"

    def test_semicolon_namespaces_apply_to_following_declarations(self, parser):
        source = "<?php\nnamespace One;\nclass A {}\nnamespace Two;\nclass B {}\n"
        decls = parser.parse_content(source, "multi.php")
        assert [d.fqn for d in decls] == ["One\\A", "Two\\B"]

    def test_block_namespaces(self, parser):
        source = '''\
<?php
namespace First {
    class A {}
}
namespace Second {
    interface B {}
    trait C {}
}
namespace {
    class Globally {}
}
'''
        decls = parser.parse_content(source, "blocks.php")
        assert [(d.fqn, d.kind) for d in decls] == [
            ("First\\A", "class"),
            ("Second\\B", "interface"),
            ("Second\\C", "trait"),
            ("Globally", "class"),
        ]


class TestOtherDeclarations:
    def test_interface_keeps_first_parent(self, parser):
        decls = parser.parse_content(
            "<?php\ninterface Both extends First, Second {\n    public function run(): void;\n}\n",
            "Both.php",
        )
        assert decls[0].is_interface
        assert decls[0].extends == "First"
        assert [m.name for m in decls[0].methods] == ["run"]

    def test_trait(self, parser):
        decls = parser.parse_content(
            "<?php\ntrait Greets {\n    protected function greet() {}\n}\n", "Greets.php",
        )
        assert decls[0].is_trait
        assert decls[0].methods[0].visibility == "protected"

    def test_line_comment_between_docblock_and_class(self, parser):
        source = "<?php\n/** Documented. */\n// note\nclass X {}\n"
        decls = parser.parse_content(source, "X.php")
        assert decls[0].docblock == "/** Documented. */"

    def test_no_docblock(self, parser):
        decls = parser.parse_content("<?php\n$a = 1;\nclass Bare {}\n", "Bare.php")
        assert decls[0].docblock is None

    def test_multiple_classes_in_one_file(self, parser):
        decls = parser.parse_content("<?php\nclass A {}\nclass B {}\n", "ab.php")
        assert [d.name for d in decls] == ["A", "B"]


class TestMalformedInput:
    def test_syntax_error_does_not_raise(self, parser):
        source = "<?php\nclass Good {}\nclass Broken { public function ( }\n"
        decls = parser.parse_content(source, "broken.php")
        assert "Good" in [d.name for d in decls]

    def test_empty_and_non_php_content(self, parser):
        assert parser.parse_content("", "empty.php") == []
        assert parser.parse_content("just some html", "page.php") == []

    def test_bytes_input(self, parser):
        decls = parser.parse_content(b"<?php\nclass FromBytes {}\n", "bytes.php")
        assert decls[0].name == "FromBytes"


class TestFiles:
    def test_parse_file(self, parser, tmp_path):
        path = tmp_path / "Thing.php"
        path.write_text("<?php\nnamespace Acme;\nclass Thing {}\n")
        decls = parser.parse_file(path)
        assert decls[0].fqn == "Acme\\Thing"
        assert decls[0].file_path == str(path)

    def test_missing_file_returns_empty(self, parser, tmp_path):
        assert parser.parse_file(tmp_path / "nope.php") == []

    def test_parse_file_checked_reports_status(self, parser, tmp_path):
        path = tmp_path / "Thing.php"
        path.write_text("<?php\nclass Thing {}\n")
        decls, ok = parser.parse_file_checked(path)
        assert ok
        assert [d.name for d in decls] == ["Thing"]

        assert parser.parse_file_checked(tmp_path / "nope.php") == ([], False)

    def test_parse_directory_honors_ignore_patterns(self, parser, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "Kept.php").write_text("<?php\nclass Kept {}\n")
        (tmp_path / "vendor").mkdir()
        (tmp_path / "vendor" / "Skipped.php").write_text("<?php\nclass Skipped {}\n")
        (tmp_path / "src" / "notes.txt").write_text("class NotPhp {}")

        decls = parser.parse_directory(Path(tmp_path), ignore_patterns=["vendor"])
        assert [d.name for d in decls] == ["Kept"]
