"""GraphQL API: catalog queries, mutations and entity event subscriptions."""

from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.schema import schema

__all__ = ["GraphQLContext", "schema"]
