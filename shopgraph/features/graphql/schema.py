"""The catalog schema: connections and nodes, versioned mutations, entity events."""

from __future__ import annotations

import strawberry

from shopgraph.features.graphql.extensions import get_extensions
from shopgraph.features.graphql.resolvers import Mutation, Query, Subscription

schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
    extensions=get_extensions(),
)

__all__ = ["schema"]
