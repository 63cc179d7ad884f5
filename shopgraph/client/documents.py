"""GraphQL documents and payload conversion for the catalog client.

Documents alias the root field as ``result`` so one response parser
serves every operation. Entities travel in camelCase on the wire and are
normalized to snake_case fields with ``Decimal`` and ``datetime`` values.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from strawberry.utils.str_converters import to_camel_case, to_snake_case

from shopgraph.core.pagination import PageInfo
from shopgraph.core.schemas.entity import Entity, EntityType

SELECTIONS: dict[EntityType, str] = {
    EntityType.PRODUCT: "id name description sku price stock version createdAt updatedAt",
    EntityType.CUSTOMER: "id name email phone version createdAt updatedAt",
    EntityType.ORDER: (
        "id customerId status items { productId quantity unitPrice } "
        "total version createdAt updatedAt"
    ),
}

CONNECTION_FIELDS: dict[EntityType, str] = {
    EntityType.PRODUCT: "products",
    EntityType.CUSTOMER: "customers",
    EntityType.ORDER: "orders",
}

PAGE_INFO = "pageInfo { hasPreviousPage hasNextPage startCursor endCursor totalCount }"

DECIMAL_FIELDS = frozenset({"price", "total", "unit_price"})
DATETIME_FIELDS = frozenset({"created_at", "updated_at"})


def input_type_name(operation: str) -> str:
    """GraphQL input type of a mutation: ``createProduct`` -> ``CreateProductInput``."""
    if operation.startswith("delete"):
        return "DeleteInput"
    return f"{operation[0].upper()}{operation[1:]}Input"


def mutation_document(operation: str, entity_type: EntityType) -> str:
    return (
        f"mutation Run($input: {input_type_name(operation)}!, $idempotencyKey: String) {{ "
        f"result: {operation}(input: $input, idempotencyKey: $idempotencyKey) "
        f"{{ {SELECTIONS[entity_type]} }} }}"
    )


def node_document(entity_type: EntityType) -> str:
    field = str(entity_type).lower()
    return f"query Node($id: ID!) {{ result: {field}(id: $id) {{ {SELECTIONS[entity_type]} }} }}"


def connection_document(entity_type: EntityType) -> str:
    return (
        "query Page($filter: [FilterInput!], $sort: [SortInput!], $first: Int, $after: String, "
        "$last: Int, $before: String, $includeTotal: Boolean! = false) { "
        f"result: {CONNECTION_FIELDS[entity_type]}(filter: $filter, sort: $sort, first: $first, "
        "after: $after, last: $last, before: $before, includeTotal: $includeTotal) { "
        f"edges {{ cursor node {{ {SELECTIONS[entity_type]} }} }} {PAGE_INFO} }} }}"
    )


def to_variables(value: Any) -> Any:
    """Snake-case input data to GraphQL variables."""
    if isinstance(value, dict):
        return {to_camel_case(str(k)): to_variables(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_variables(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _from_wire(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in DECIMAL_FIELDS:
        return Decimal(str(value))
    if key in DATETIME_FIELDS and isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(value, dict):
        return {to_snake_case(k): _from_wire(to_snake_case(k), v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_wire(key, v) for v in value]
    return value


def entity_from_payload(entity_type: EntityType, payload: dict[str, Any]) -> Entity:
    """Build a normalized entity from a GraphQL object payload."""
    fields = {}
    for key, value in payload.items():
        name = to_snake_case(key)
        if name != "id":
            fields[name] = _from_wire(name, value)
    return Entity(type=entity_type, id=str(payload["id"]), fields=fields)


def page_from_payload(
    entity_type: EntityType, payload: dict[str, Any]
) -> tuple[list[Entity], PageInfo]:
    """Split a connection payload into its entities and page info."""
    entities = [entity_from_payload(entity_type, edge["node"]) for edge in payload["edges"]]
    info = payload["pageInfo"]
    page_info = PageInfo(
        has_previous_page=info["hasPreviousPage"],
        has_next_page=info["hasNextPage"],
        start_cursor=info.get("startCursor"),
        end_cursor=info.get("endCursor"),
        total_count=info.get("totalCount"),
    )
    return entities, page_info


__all__ = [
    "connection_document",
    "entity_from_payload",
    "input_type_name",
    "mutation_document",
    "node_document",
    "page_from_payload",
    "to_variables",
]
