"""Shared setup logic for CLI commands."""

from __future__ import annotations

from pathlib import Path

import click

from folio.core.config import Config
from folio.core.exceptions import ConfigurationError
from folio.core.utils.logging import setup_logging
from folio.engine import Engine


def load_config(config_file: str | None) -> Config:
    try:
        config = Config(config_file=config_file)
        settings = config.validated()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    setup_logging(level=settings.logging.level, log_file=settings.logging.file)
    return config


def read_sources(files: tuple[str, ...]) -> list[tuple[str, str]]:
    """Read each file as one document; the id is the file name without extension."""
    sources = []
    for name in files:
        path = Path(name)
        sources.append((path.stem, path.read_text(encoding="utf-8")))
    return sources


async def open_engine(config_file: str | None, files: tuple[str, ...]) -> Engine:
    """Build an engine from config and load *files* into it."""
    engine = Engine.from_config(load_config(config_file))
    report = await engine.initialize(read_sources(files))
    if report.errors:
        click.echo(f"Skipped {report.errors} file(s) with errors.", err=True)
    return engine
