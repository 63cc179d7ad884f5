"""Catalog commands that talk to a running API through the optimistic client."""

from __future__ import annotations

from decimal import Decimal
import json
from typing import Any

import click

from shopgraph.cli.utils import coro, error, info, success, table
from shopgraph.client import Failed, ShopGraphClient
from shopgraph.core.exceptions import AppException
from shopgraph.core.schemas.entity import Entity, EntityType
from shopgraph.core.settings import get_client_settings

COLUMNS: dict[EntityType, list[str]] = {
    EntityType.PRODUCT: ["id", "sku", "name", "price", "stock", "version"],
    EntityType.CUSTOMER: ["id", "name", "email", "version"],
    EntityType.ORDER: ["id", "customer_id", "status", "total", "version"],
}

ENTITY_TYPE = click.Choice([t.name.lower() for t in EntityType], case_sensitive=False)

token_option = click.option(
    "--token",
    envvar="SHOPGRAPH_TOKEN",
    default=None,
    help="Bearer token (default: $SHOPGRAPH_TOKEN)",
)
endpoint_option = click.option(
    "--endpoint",
    default=None,
    help="GraphQL endpoint (default: CLIENT_ENDPOINT)",
)
format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Output format",
)


def parse_value(raw: str) -> Any:
    """Parse a JSON literal, keeping decimals exact; fall back to the raw string."""
    try:
        return json.loads(raw, parse_float=Decimal)
    except ValueError:
        return raw


def parse_sort(values: tuple[str, ...]) -> list[tuple[str, str]] | None:
    """``price:desc`` -> ``("price", "desc")``; the direction defaults to asc."""
    sort = []
    for value in values:
        field, _, direction = value.partition(":")
        direction = (direction or "asc").lower()
        if direction not in ("asc", "desc"):
            raise click.BadParameter(f"invalid direction in {value!r}", param_hint="--sort")
        sort.append((field, direction))
    return sort or None


def parse_filter(values: tuple[str, ...]) -> list[dict[str, Any]]:
    """``stock:gt:0`` -> ``{"field": "stock", "op": "gt", "value": 0}``."""
    conditions = []
    for value in values:
        parts = value.split(":", 2)
        if len(parts) != 3 or not parts[0]:
            raise click.BadParameter(f"expected field:op:value, got {value!r}", param_hint="--filter")
        field, op, raw = parts
        conditions.append({"field": field, "op": op.lower(), "value": parse_value(raw)})
    return conditions


def parse_fields(values: tuple[str, ...]) -> dict[str, Any]:
    """``name=Pen`` pairs -> field mapping."""
    fields = {}
    for value in values:
        key, sep, raw = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {value!r}", param_hint="--set")
        fields[key] = parse_value(raw)
    return fields


def build_client(endpoint: str | None, token: str | None) -> ShopGraphClient:
    settings = get_client_settings()
    if endpoint:
        settings = settings.model_copy(update={"endpoint": endpoint})
    return ShopGraphClient.from_settings(token=token, settings=settings)


def _entity_type(name: str) -> EntityType:
    return EntityType[name.upper()]


def _jsonable(entity: Entity) -> dict[str, Any]:
    return json.loads(json.dumps({"id": entity.id, **entity.fields}, default=str))


def _print(entities: list[Entity], entity_type: EntityType, output_format: str) -> None:
    if output_format == "json":
        click.echo(json.dumps([_jsonable(e) for e in entities], indent=2))
        return
    columns = COLUMNS[entity_type]
    table(columns, [[e.get(c) for c in columns] for e in entities])


@click.group(name="catalog")
def catalog() -> None:
    """Browse and edit products, customers and orders."""


@catalog.command(name="list")
@click.argument("entity_type", type=ENTITY_TYPE)
@click.option("--first", type=int, default=None, help="Page size")
@click.option("--after", default=None, help="Cursor to continue from")
@click.option("--sort", multiple=True, help="field[:asc|desc], repeatable")
@click.option("--filter", "filters", multiple=True, help="field:op:value, repeatable")
@click.option("--total/--no-total", default=False, help="Also count all matching items")
@endpoint_option
@token_option
@format_option
@coro
async def list_(
    entity_type: str,
    first: int | None,
    after: str | None,
    sort: tuple[str, ...],
    filters: tuple[str, ...],
    total: bool,
    endpoint: str | None,
    token: str | None,
    output_format: str,
) -> None:
    """List one page of a connection."""
    kind = _entity_type(entity_type)
    try:
        async with build_client(endpoint, token) as client:
            entities, page_info = await client.fetch_page(
                kind,
                conditions=parse_filter(filters),
                sort=parse_sort(sort),
                first=first,
                after=after,
                include_total=total,
            )
    except AppException as e:
        error(f"{e.code}: {e.detail}")
        raise click.exceptions.Exit(1) from e

    _print(entities, kind, output_format)
    if output_format == "table":
        if page_info.total_count is not None:
            info(f"Total: {page_info.total_count}")
        if page_info.has_next_page:
            info(f"Next page: --after {page_info.end_cursor}")


@catalog.command()
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@endpoint_option
@token_option
@format_option
@coro
async def get(
    entity_type: str,
    entity_id: str,
    endpoint: str | None,
    token: str | None,
    output_format: str,
) -> None:
    """Show one entity."""
    kind = _entity_type(entity_type)
    try:
        async with build_client(endpoint, token) as client:
            entity = await client.fetch(kind, entity_id)
    except AppException as e:
        error(f"{e.code}: {e.detail}")
        raise click.exceptions.Exit(1) from e

    if entity is None:
        error(f"{kind} {entity_id} not found")
        raise click.exceptions.Exit(1)
    _print([entity], kind, output_format)


async def _run_mutation(pending, output_format: str) -> None:
    outcome = await pending
    if isinstance(outcome, Failed):
        error(f"{outcome.error.code}: {outcome.error.detail}")
        raise click.exceptions.Exit(1)
    if output_format == "table":
        success(f"{outcome.entity.type} {outcome.entity.id} (version {outcome.entity.get('version')})")
    _print([outcome.entity], outcome.entity.type, output_format)


@catalog.command()
@click.argument("entity_type", type=ENTITY_TYPE)
@click.option("--set", "fields", multiple=True, required=True, help="key=value, repeatable")
@click.option("--idempotency-key", default=None, help="Repeat-safe key for retries")
@endpoint_option
@token_option
@format_option
@coro
async def create(
    entity_type: str,
    fields: tuple[str, ...],
    idempotency_key: str | None,
    endpoint: str | None,
    token: str | None,
    output_format: str,
) -> None:
    """Create an entity."""
    async with build_client(endpoint, token) as client:
        pending = client.create(
            _entity_type(entity_type),
            parse_fields(fields),
            idempotency_key=idempotency_key,
        )
        await _run_mutation(pending, output_format)


@catalog.command()
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.option("--set", "fields", multiple=True, required=True, help="key=value, repeatable")
@click.option("--expected-version", type=int, default=None, help="Fail unless the stored version matches")
@click.option("--idempotency-key", default=None, help="Repeat-safe key for retries")
@endpoint_option
@token_option
@format_option
@coro
async def update(
    entity_type: str,
    entity_id: str,
    fields: tuple[str, ...],
    expected_version: int | None,
    idempotency_key: str | None,
    endpoint: str | None,
    token: str | None,
    output_format: str,
) -> None:
    """Update fields of an entity."""
    async with build_client(endpoint, token) as client:
        pending = client.update(
            _entity_type(entity_type),
            entity_id,
            parse_fields(fields),
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )
        await _run_mutation(pending, output_format)


@catalog.command()
@click.argument("entity_type", type=ENTITY_TYPE)
@click.argument("entity_id")
@click.option("--expected-version", type=int, default=None, help="Fail unless the stored version matches")
@endpoint_option
@token_option
@format_option
@coro
async def delete(
    entity_type: str,
    entity_id: str,
    expected_version: int | None,
    endpoint: str | None,
    token: str | None,
    output_format: str,
) -> None:
    """Delete an entity."""
    async with build_client(endpoint, token) as client:
        pending = client.delete(_entity_type(entity_type), entity_id, expected_version=expected_version)
        await _run_mutation(pending, output_format)
