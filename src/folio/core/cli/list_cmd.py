"""folio list: filtered, date-sorted document listing."""

from __future__ import annotations

import click

from folio.content.models import DocumentFilter
from folio.core.utils.async_helpers import run_async_safely

from .common import open_engine


@click.command(name="list")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--tag", default=None, help="Only documents with this tag.")
@click.option("--category", default=None, help="Only documents in this category.")
@click.option("--year", type=int, default=None, help="Only documents published this year.")
@click.option("--search", "text", default=None, help="Substring match on title, description and body.")
@click.option("--asc", is_flag=True, help="Oldest first.")
@click.pass_context
def list_documents(
    ctx: click.Context,
    files: tuple[str, ...],
    tag: str | None,
    category: str | None,
    year: int | None,
    text: str | None,
    asc: bool,
) -> None:
    """List FILES as documents, newest first."""
    doc_filter = DocumentFilter(tag=tag, category=category, year=year, search=text)

    async def _run():
        engine = await open_engine(ctx.obj.get("config_file"), files)
        try:
            return engine.list(doc_filter, sort="asc" if asc else "desc")
        finally:
            await engine.dispose()

    listing = run_async_safely(_run())
    for document in listing.items:
        tags = ", ".join(document.tags)
        click.echo(f"{document.date:%Y-%m-%d}  {document.id}  {document.title}" + (f"  [{tags}]" if tags else ""))
    click.echo(f"{listing.total} document(s)")
