"""Root GraphQL resolvers."""

from shopgraph.features.graphql.resolvers.mutations import Mutation
from shopgraph.features.graphql.resolvers.queries import Query
from shopgraph.features.graphql.resolvers.subscriptions import Subscription

__all__ = ["Mutation", "Query", "Subscription"]
