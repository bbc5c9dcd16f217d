"""phpscope CLI.

Usage:
    phpscope build                  Parse sources and save the indexes
    phpscope lookup NAME            Show a class, interface or trait
    phpscope search QUERY           Search declarations and members
    phpscope events                 List event classes
    phpscope services               List DI service providers and factories
    phpscope schema                 Show database table schemas
    phpscope components [NAME]      List or show web components
    phpscope status                 Show index status
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import IndexConfig
from .format import (
    format_component_list,
    format_component_result,
    format_events,
    format_events_compact,
    format_lookup_result,
    format_schema_result,
    format_search_results,
    format_services,
    truncate_response,
)
from .git import LocalSourceProvider
from .query import (
    SEARCH_TYPES,
    SERVICE_KINDS,
    get_services,
    list_events,
    lookup_class,
    lookup_component,
    lookup_schema,
    search as search_index,
)
from .store import IndexStore, Snapshot


def _config(data_dir: str | None = None, source: str | None = None) -> IndexConfig:
    config = IndexConfig.from_env()
    if data_dir:
        config.data_dir = Path(data_dir)
    if source:
        config.libraries_dir = Path(source)
    return config


def _load(config: IndexConfig) -> Snapshot:
    """Load persisted indexes or exit with a hint to build first."""
    snapshot = IndexStore(config).load()
    if snapshot.index is None:
        click.echo(
            f"No index found at {config.index_path}. Run 'phpscope build' first.", err=True,
        )
        sys.exit(1)
    return snapshot


def _emit(text: str) -> None:
    click.echo(truncate_response(text))


data_dir_option = click.option(
    "--data-dir", type=click.Path(file_okay=False),
    help="Directory holding the built indexes (default: ./data or $PHPSCOPE_DATA_DIR)",
)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
def main(verbose: bool):
    """phpscope: structural index of a PHP codebase and its SQL schema."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command()
@click.option("--source", type=click.Path(file_okay=False), help="PHP source root to index")
@click.option("--sql-dir", type=click.Path(file_okay=False), help="Directory of SQL DDL files")
@click.option("--media-dir", type=click.Path(file_okay=False), help="Web component sources")
@data_dir_option
def build(source: str | None, sql_dir: str | None, media_dir: str | None, data_dir: str | None):
    """Parse the source tree and save the indexes."""
    config = _config(data_dir, source)
    if sql_dir:
        config.sql_dir = Path(sql_dir)
    if media_dir:
        config.media_dir = Path(media_dir)

    provider = LocalSourceProvider(config)
    if not provider.has_sources():
        click.echo(
            f"Error: source tree not found at {provider.libraries_path}. "
            "Run sync first, or point --source / PHPSCOPE_LIBRARIES_PATH at a checkout.",
            err=True,
        )
        sys.exit(1)

    click.echo(f"Indexing {provider.libraries_path}")
    click.echo(f"Data dir: {config.data_dir}")

    def on_progress(file: str, current: int, total: int):
        pct = (current / total * 100) if total > 0 else 0
        click.echo(f"\r  [{current}/{total}] {pct:5.1f}% {file[-60:]:<60}", nl=False)

    store = IndexStore(config)
    snapshot = store.build(provider, on_progress=on_progress)
    click.echo()  # newline after progress

    stats = store.last_stats
    click.echo()
    if stats is not None:
        click.echo(f"  Files scanned:   {stats.files_scanned}")
        click.echo(f"  Files parsed:    {stats.files_parsed}")
        click.echo(f"  Declarations:    {stats.declarations}")
        click.echo(f"  Errors:          {stats.errors}")
        click.echo(f"  Time:            {stats.elapsed_seconds:.2f}s")
    click.echo(f"  Namespaces:      {len(snapshot.index.namespace_map)}")
    click.echo(f"  Events:          {len(snapshot.index.event_map)}")
    click.echo(f"  Tables:          {len(snapshot.schema.tables)}")
    click.echo(f"  Web components:  {len(snapshot.components)}")
    if snapshot.index.commit:
        click.echo(f"  Commit:          {snapshot.index.commit[:12]} ({snapshot.index.version})")


@main.command()
@click.argument("name")
@click.option("--member", "-m", help="Method to show instead of the whole class")
@click.option("--summary", "-s", is_flag=True, help="Member names only, no signatures")
@data_dir_option
def lookup(name: str, member: str | None, summary: bool, data_dir: str | None):
    """Look up a class, interface or trait by name or FQN."""
    config = _config(data_dir)
    snapshot = _load(config)
    result = lookup_class(snapshot.index, name, member)
    _emit(format_lookup_result(result, summary=summary, source_root=config.source_root))


@main.command()
@click.argument("query")
@click.option("--type", "-t", "type_filter", type=click.Choice(SEARCH_TYPES), default="all",
              help="Restrict results to one kind")
@click.option("--limit", "-n", default=10, help="Max results")
@data_dir_option
def search(query: str, type_filter: str, limit: int, data_dir: str | None):
    """Search class, method, constant and property names."""
    snapshot = _load(_config(data_dir))
    output = search_index(snapshot.index, query, type_filter=type_filter, limit=limit)
    _emit(format_search_results(output))


@main.command()
@click.option("--filter", "-f", "text_filter", help="Match event name, class or description")
@click.option("--namespace", help="Match the event class namespace")
@click.option("--limit", "-n", default=30, help="Max events (1-100)")
@click.option("--compact", "-c", is_flag=True, help="One line per event")
@data_dir_option
def events(text_filter: str | None, namespace: str | None, limit: int, compact: bool,
           data_dir: str | None):
    """List event classes and their constructor parameters."""
    snapshot = _load(_config(data_dir))
    result = list_events(snapshot.index, filter=text_filter, namespace=namespace, limit=limit)
    _emit(format_events_compact(result) if compact else format_events(result))


@main.command()
@click.option("--filter", "-f", "text_filter", help="Match service name or FQN")
@click.option("--kind", "-k", type=click.Choice(SERVICE_KINDS), help="Only this kind of service")
@click.option("--limit", "-n", default=30, help="Max services")
@data_dir_option
def services(text_filter: str | None, kind: str | None, limit: int, data_dir: str | None):
    """List DI service providers and factories."""
    snapshot = _load(_config(data_dir))
    result = get_services(snapshot.index, filter=text_filter, kind=kind, limit=limit)
    _emit(format_services(result))


@main.command()
@click.option("--table", "-t", "table_name", help="Table name, with or without the #__ prefix")
@click.option("--component", "-c", help="Component name, e.g. com_content")
@click.option("--list", "list_all", is_flag=True, help="List every table")
@data_dir_option
def schema(table_name: str | None, component: str | None, list_all: bool, data_dir: str | None):
    """Show database table schemas."""
    if not (table_name or component or list_all):
        click.echo("Provide --table, --component, or --list.", err=True)
        sys.exit(1)

    snapshot = _load(_config(data_dir))
    if snapshot.schema is None:
        click.echo("No schema index found. Run 'phpscope build' first.", err=True)
        sys.exit(1)

    result = lookup_schema(snapshot.schema, table_name=table_name, component=component,
                           list_all=list_all)
    _emit(format_schema_result(result, list_all=list_all))


@main.command()
@click.argument("name", required=False)
@data_dir_option
def components(name: str | None, data_dir: str | None):
    """List web components, or show one by tag or class name."""
    snapshot = _load(_config(data_dir))
    if name:
        _emit(format_component_result(lookup_component(snapshot.components, name)))
    else:
        _emit(format_component_list(snapshot.components))


@main.command()
@data_dir_option
def status(data_dir: str | None):
    """Show index status."""
    config = _config(data_dir)
    snapshot = _load(config)
    index = snapshot.index

    click.echo(f"Index: {config.index_path}")
    click.echo(f"  Version:       {index.version}")
    click.echo(f"  Built at:      {index.built_at or '-'}")
    click.echo(f"  Commit:        {index.commit or '-'}")
    click.echo(f"  Declarations:  {len(index.declarations)}")
    click.echo(f"  Namespaces:    {len(index.namespace_map)}")
    click.echo(f"  Events:        {len(index.event_map)}")
    tables = len(snapshot.schema.tables) if snapshot.schema is not None else 0
    click.echo(f"  Tables:        {tables}")
    click.echo(f"  Components:    {len(snapshot.components)}")

    kinds: dict[str, int] = {}
    for decl in index.declarations:
        kinds[decl.kind] = kinds.get(decl.kind, 0) + 1
    if kinds:
        click.echo("\nDeclarations by kind:")
        for kind, count in sorted(kinds.items(), key=lambda x: -x[1]):
            click.echo(f"  {kind:12s} {count}")


if __name__ == "__main__":
    main()
