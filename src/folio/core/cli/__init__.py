"""Folio CLI: search, list and summarize markdown documents."""

import click

from folio import __version__


@click.group()
@click.version_option(version=__version__, package_name="folio")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML or JSON config file.",
)
@click.pass_context
def main(ctx: click.Context, config_file: str | None) -> None:
    """Folio: index and query frontmatter + markdown documents."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


# Register subcommands
from .list_cmd import list_documents
from .search_cmd import search
from .stats_cmd import stats

main.add_command(search)
main.add_command(stats)
main.add_command(list_documents)
