"""folio stats: aggregate counts over documents."""

from __future__ import annotations

import json

import click

from folio.core.utils.async_helpers import run_async_safely

from .common import open_engine


@click.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the query-API dictionary as JSON.")
@click.pass_context
def stats(ctx: click.Context, files: tuple[str, ...], as_json: bool) -> None:
    """Show article, tag, category, word and reading-time totals for FILES."""

    async def _run():
        engine = await open_engine(ctx.obj.get("config_file"), files)
        try:
            return engine.stats(), engine.search_engine.stats()
        finally:
            await engine.dispose()

    store_stats, index_stats = run_async_safely(_run())

    if as_json:
        click.echo(json.dumps(store_stats.as_dict(), indent=2))
        return

    click.echo(f"Articles:      {store_stats.total_articles}")
    click.echo(f"Tags:          {store_stats.total_tags}")
    click.echo(f"Categories:    {store_stats.total_categories}")
    click.echo(f"Words:         {store_stats.total_words}")
    click.echo(f"Reading time:  {store_stats.average_reading_time} min (average)")
    click.echo(f"Indexed terms: {index_stats.indexed_terms}")
