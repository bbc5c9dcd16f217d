"""Tests for the SQL DDL schema parser."""

import pytest

from phpscope.sql_schema import (
    SqlSchemaParser,
    parse_column,
    parse_index,
    short_table_name,
    split_table_body,
)


CONTENT_DDL = """\
--
-- Table structure for table `#__content`
--

CREATE TABLE IF NOT EXISTS `#__content` (
  `id` int unsigned NOT NULL AUTO_INCREMENT,
  `asset_id` int unsigned NOT NULL DEFAULT 0 COMMENT 'FK to the #__assets table.',
  `title` varchar(255) NOT NULL DEFAULT '',
  `alias` varchar(400) CHARACTER SET utf8mb4 COLLATE utf8mb4_bin NOT NULL DEFAULT '',
  `introtext` mediumtext NOT NULL,
  `state` tinyint NOT NULL DEFAULT 0,
  `created` datetime NOT NULL,
  `checked_out` int unsigned,
  `publish_up` datetime NULL DEFAULT NULL,
  `status` ENUM('a','b','c') NOT NULL DEFAULT 'a',
  `price` decimal(10,2) DEFAULT 0.00,
  PRIMARY KEY (`id`),
  KEY `idx_alias` (`alias`(191)),
  UNIQUE KEY `idx_asset` (`asset_id`),
  KEY `idx_state_created` (`state`, `created` DESC),
  FULLTEXT KEY `idx_text` (`introtext`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 DEFAULT COLLATE=utf8mb4_unicode_ci COMMENT='Articles';

INSERT INTO `#__content` (`id`, `title`) VALUES (1, 'Hello (world);');

CREATE TABLE #__tags (id int NOT NULL, PRIMARY KEY (id));
"""


@pytest.fixture
def parser():
    return SqlSchemaParser()


@pytest.fixture
def content_table(parser):
    tables = parser.parse_sql(CONTENT_DDL)
    return tables[0]


class TestShortTableName:
    @pytest.mark.parametrize("name", ["#__content", "content", "#__#__users", "", "#__"])
    def test_idempotent(self, name):
        once = short_table_name(name)
        assert short_table_name(once) == once

    def test_strips_prefix(self):
        assert short_table_name("#__content") == "content"
        assert short_table_name("content") == "content"


class TestSplitTableBody:
    def test_enum_values_stay_in_one_part(self):
        parts = split_table_body("`status` ENUM('a','b','c') NOT NULL, `id` int")
        assert len(parts) == 2
        assert "ENUM('a','b','c')" in parts[0]

    def test_nested_parens_and_quoted_commas(self):
        parts = split_table_body("a decimal(10,2), b varchar(5) DEFAULT 'x,y', KEY k (a, b)")
        assert [p.strip() for p in parts] == [
            "a decimal(10,2)",
            "b varchar(5) DEFAULT 'x,y'",
            "KEY k (a, b)",
        ]


class TestParseColumn:
    def test_nullability_default(self):
        assert parse_column("`note` text").nullable is True
        assert parse_column("`note` text NOT NULL").nullable is False

    def test_reserved_leaders_are_not_columns(self):
        assert parse_column("PRIMARY KEY (`id`)") is None
        assert parse_column("CONSTRAINT fk FOREIGN KEY (a) REFERENCES b (id)") is None

    def test_comment_does_not_leak_into_attributes(self):
        col = parse_column("`x` int COMMENT 'NOT NULL DEFAULT 5 in text'")
        assert col.nullable is True
        assert col.default_value is None
        assert col.comment == "NOT NULL DEFAULT 5 in text"

    def test_current_timestamp_default(self):
        col = parse_column("`modified` datetime NOT NULL DEFAULT CURRENT_TIMESTAMP")
        assert col.default_value == "CURRENT_TIMESTAMP"


class TestParseIndex:
    def test_size_qualifier_stripped(self):
        idx = parse_index("KEY idx_alias (alias(191))")
        assert idx.name == "idx_alias"
        assert idx.kind == "index"
        assert idx.columns == ["alias"]

    def test_primary_key(self):
        idx = parse_index("PRIMARY KEY (`id`, `lang`)")
        assert idx.name == "PRIMARY"
        assert idx.kind == "primary"
        assert idx.columns == ["id", "lang"]

    def test_sort_order_stripped(self):
        idx = parse_index("INDEX `idx_x` (`a` ASC, `b` DESC)")
        assert idx.columns == ["a", "b"]

    def test_column_is_not_index(self):
        assert parse_index("`id` int NOT NULL") is None


class TestParseSql:
    def test_scenario_single_table(self, parser):
        sql = (
            "CREATE TABLE `#__content` (`id` int unsigned NOT NULL AUTO_INCREMENT, "
            "`title` varchar(255) NOT NULL DEFAULT '', PRIMARY KEY (`id`)) "
            "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;"
        )
        tables = parser.parse_sql(sql)
        assert len(tables) == 1
        table = tables[0]
        assert table.short_name == "content"
        assert [c.name for c in table.columns] == ["id", "title"]
        id_col, title_col = table.columns
        assert id_col.auto_increment and not id_col.nullable
        assert not title_col.nullable and title_col.default_value == "''"
        assert len(table.indexes) == 1
        assert table.indexes[0].kind == "primary"
        assert table.indexes[0].columns == ["id"]
        assert table.engine == "InnoDB"
        assert table.charset == "utf8mb4"

    def test_tables_found(self, parser):
        tables = parser.parse_sql(CONTENT_DDL)
        assert [t.name for t in tables] == ["#__content", "#__tags"]
        assert tables[1].short_name == "tags"
        assert [c.name for c in tables[1].columns] == ["id"]

    def test_columns(self, content_table):
        cols = {c.name: c for c in content_table.columns}
        assert len(content_table.columns) == 11
        assert cols["id"].type == "int unsigned"
        assert cols["asset_id"].default_value == "0"
        assert cols["asset_id"].comment == "FK to the #__assets table."
        assert cols["status"].type == "ENUM('a','b','c')"
        assert cols["status"].default_value == "'a'"
        assert cols["price"].type == "decimal(10,2)"
        assert cols["price"].default_value == "0.00"
        assert cols["checked_out"].nullable
        assert cols["publish_up"].nullable
        assert cols["publish_up"].default_value == "NULL"

    def test_indexes(self, content_table):
        idx = {i.name: i for i in content_table.indexes}
        assert idx["PRIMARY"].columns == ["id"]
        assert idx["idx_alias"].columns == ["alias"]
        assert idx["idx_asset"].kind == "unique"
        assert idx["idx_state_created"].columns == ["state", "created"]
        assert idx["idx_text"].kind == "fulltext"

    def test_table_options(self, content_table):
        assert content_table.engine == "InnoDB"
        assert content_table.charset == "utf8mb4"
        assert content_table.comment == "Articles"

    def test_unterminated_statement_skipped(self, parser):
        sql = "CREATE TABLE #__ok (id int);\nCREATE TABLE #__broken (id int"
        tables = parser.parse_sql(sql)
        assert [t.short_name for t in tables] == ["ok"]

    def test_no_tables(self, parser):
        assert parser.parse_sql("SELECT 1;") == []


class TestParseDirectory:
    def test_non_recursive_and_last_write_wins(self, parser, tmp_path):
        (tmp_path / "base.sql").write_text("CREATE TABLE #__users (id int);")
        (tmp_path / "zz_update.sql").write_text("CREATE TABLE #__users (id int, name text);")
        (tmp_path / "nested").mkdir()
        (tmp_path / "nested" / "other.sql").write_text("CREATE TABLE #__nested (id int);")

        schema = parser.parse_directory(tmp_path)
        assert "nested" not in schema.table_map
        assert len([t for t in schema.tables if t.short_name == "users"]) == 2
        assert set(schema.table_map) == {"users"}

    def test_missing_directory(self, parser, tmp_path):
        schema = parser.parse_directory(tmp_path / "missing")
        assert schema.tables == []
        assert schema.table_map == {}
