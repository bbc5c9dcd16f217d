"""Tests for the click command line interface."""

import pytest
from click.testing import CliRunner

from phpscope.cli import main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("PHPSCOPE_CACHE_DIR", "PHPSCOPE_LIBRARIES_PATH", "PHPSCOPE_SQL_DIR",
                "PHPSCOPE_MEDIA_SOURCE_DIR", "PHPSCOPE_DATA_DIR"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def checkout(tmp_path):
    root = tmp_path / "checkout"
    src = root / "libraries" / "src"
    (src / "Event").mkdir(parents=True)
    (src / "Service").mkdir()
    sql = root / "installation" / "sql" / "mysql"
    sql.mkdir(parents=True)

    (src / "Widget.php").write_text('''\
<?php
namespace Acme\\Ui;

/**
 * Renders a widget.
 */
class Widget
{
    public const MODE = 'html';

    public function render(array $data = []): string
    {
        return '';
    }
}

class WidgetFactory {}
''')
    (src / "Event" / "PingEvent.php").write_text('''\
<?php
namespace Acme\\Event;

class PingEvent extends AbstractEvent
{
    public function __construct(string $host) {}
}
''')
    (src / "Service" / "MailServiceProvider.php").write_text('''\
<?php
namespace Acme\\Service;

class MailServiceProvider
{
    public function register() {}
}
''')
    (sql / "base.sql").write_text(
        "CREATE TABLE `#__content` (`id` int NOT NULL AUTO_INCREMENT, PRIMARY KEY (`id`));\n"
        "CREATE TABLE `#__content_rating` (`content_id` int NOT NULL);\n"
    )
    return root


@pytest.fixture
def built(checkout, tmp_path, monkeypatch):
    data = tmp_path / "data"
    monkeypatch.setenv("PHPSCOPE_CACHE_DIR", str(checkout))
    monkeypatch.setenv("PHPSCOPE_DATA_DIR", str(data))
    result = CliRunner().invoke(main, ["build"])
    assert result.exit_code == 0, result.output
    return data


def run(*args):
    return CliRunner().invoke(main, list(args))


def test_build_reports_counts(built):
    assert (built / "index.json.gz").exists()


def test_build_output(checkout, tmp_path):
    result = run("build", "--source", str(checkout / "libraries" / "src"),
                 "--sql-dir", str(checkout / "installation" / "sql" / "mysql"),
                 "--data-dir", str(tmp_path / "out"))
    assert result.exit_code == 0, result.output
    assert "Declarations:    4" in result.output
    assert "Events:          1" in result.output
    assert "Tables:          2" in result.output


def test_build_without_sources(tmp_path):
    result = run("build", "--source", str(tmp_path / "missing"), "--data-dir", str(tmp_path / "d"))
    assert result.exit_code == 1
    assert "Run sync first" in result.output


def test_query_without_index(tmp_path):
    result = run("lookup", "Widget", "--data-dir", str(tmp_path / "empty"))
    assert result.exit_code == 1
    assert "phpscope build" in result.output


def test_lookup(built):
    result = run("lookup", "Widget")
    assert result.exit_code == 0
    assert "## class Widget" in result.output
    assert "`MODE` = 'html'" in result.output
    assert "**Source:** `Widget.php`" in result.output


def test_lookup_member(built):
    result = run("lookup", "Widget", "--member", "render")
    assert "public function render(array $data = [...]): string" in result.output


def test_lookup_ambiguous(built):
    result = run("lookup", "idget")
    assert "Acme\\Ui\\Widget" in result.output
    assert "Acme\\Ui\\WidgetFactory" in result.output


def test_search(built):
    result = run("search", "render", "--type", "method")
    assert result.exit_code == 0
    assert "Found 1 results" in result.output
    assert "Acme\\Ui\\Widget::render()" in result.output


def test_search_rejects_unknown_type(built):
    result = run("search", "x", "--type", "function")
    assert result.exit_code != 0


def test_events(built):
    result = run("events", "--compact")
    assert "**PingEvent**" in result.output
    assert "(1 param)" in result.output


def test_services(built):
    result = run("services")
    assert "MailServiceProvider" in result.output
    assert "WidgetFactory" in result.output


def test_schema(built):
    assert "| `id` | int | NO |" in run("schema", "--table", "#__content").output
    assert "### content (2 tables)" in run("schema", "--list").output
    assert "not found" in run("schema", "--table", "nothing").output


def test_schema_requires_selector(built):
    result = run("schema")
    assert result.exit_code == 1


def test_components_empty(built):
    result = run("components")
    assert "Found 0 components" in result.output


def test_status(built):
    result = run("status")
    assert result.exit_code == 0
    assert "Declarations:  4" in result.output
    assert "Tables:        2" in result.output
