"""Configuration commands."""

import json

import click
from sqlalchemy.engine import make_url

from shopgraph.cli.utils import header, warning
from shopgraph.core.settings import (
    get_app_settings,
    get_auth_settings,
    get_client_settings,
    get_db_settings,
    get_graphql_settings,
    get_logging_settings,
    get_pagination_settings,
)

SECTIONS = {
    "app": get_app_settings,
    "logging": get_logging_settings,
    "database": get_db_settings,
    "pagination": get_pagination_settings,
    "auth": get_auth_settings,
    "graphql": get_graphql_settings,
    "client": get_client_settings,
}


@click.group(name="config")
def config() -> None:
    """Configuration commands."""


@config.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)
def show(output_format: str) -> None:
    """Display the effective settings. Secrets are always masked."""
    data = {name: getter().model_dump(mode="json") for name, getter in SECTIONS.items()}
    data["database"]["url"] = make_url(data["database"]["url"]).render_as_string(hide_password=True)

    if output_format == "json":
        click.echo(json.dumps(data, indent=2, sort_keys=True))
        return

    warning("Secrets are masked.")
    for name, values in data.items():
        header(name)
        for key, value in values.items():
            click.echo(f"  {key:<28} {value}")
