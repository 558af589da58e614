"""folio search: full-text query over documents."""

from __future__ import annotations

import click

from folio.core.utils.async_helpers import run_async_safely

from .common import open_engine


@click.command()
@click.argument("query")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", "-n", type=int, default=None, help="Show at most this many results.")
@click.pass_context
def search(ctx: click.Context, query: str, files: tuple[str, ...], limit: int | None) -> None:
    """Search FILES for QUERY and print ranked matches."""

    async def _run():
        engine = await open_engine(ctx.obj.get("config_file"), files)
        try:
            return engine.search(query)
        finally:
            await engine.dispose()

    results = run_async_safely(_run())
    if limit is not None:
        results = results[: max(0, limit)]

    if not results:
        click.echo("No matches.")
        return

    for result in results:
        click.echo(f"{result.score:>6g}  {result.document.id}  {result.document.title}")
        for snippet in result.highlights[:3]:
            click.echo(f"        {snippet}")
