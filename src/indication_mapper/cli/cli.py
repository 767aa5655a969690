"""Command-line interface for IndicationMapper."""

import asyncio
import json
import logging
from pathlib import Path

import click

from indication_mapper.config import get_settings
from indication_mapper.data_sources.base_client import DataSourceError
from indication_mapper.db.base import create_db_engine, init_db
from indication_mapper.factory import open_orchestrator
from indication_mapper.models.model_indication import PersistedIndication


async def _search(drug: str) -> list[PersistedIndication]:
    async with open_orchestrator() as orchestrator:
        return await orchestrator.search(drug)


@click.group()
@click.version_option(package_name="indication-mapper")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """IndicationMapper: map drug label indications to ICD-10 codes."""
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")


@main.command()
@click.option("-d", "--drug", required=True, help="Drug name to search for")
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def search(drug: str, output: str | None):
    """Find and ICD-10-map the labelled indications of a drug."""
    click.echo(f"Searching indications for: {drug}")
    try:
        results = asyncio.run(_search(drug))
    except DataSourceError as e:
        raise click.ClickException(str(e)) from e

    if not results:
        click.echo("No indications found.")
    for i, result in enumerate(results, 1):
        code = f"{result.code} ({result.description})" if result.code else "unmapped"
        click.echo(f"  {i}. {result.title or '(untitled)'}: {code}")

    if output:
        payload = [r.model_dump(mode="json") for r in results]
        Path(output).write_text(json.dumps({"drug": drug, "indications": payload}, indent=2))
        click.echo(f"\nResults saved to: {output}")


@main.command("init-db")
def init_db_command():
    """Create database tables."""
    settings = get_settings()
    init_db(create_db_engine(settings.database_url))
    click.echo(f"Initialized database at {settings.database_url}")


if __name__ == "__main__":
    main()
