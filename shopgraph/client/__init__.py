"""Optimistic GraphQL client: normalized cache, mutation reconciler and transports."""

from shopgraph.client.cache import CacheSubscription, NormalizedCache, OptimisticLayer
from shopgraph.client.client import ShopGraphClient, connection_key
from shopgraph.client.reconciler import (
    Confirmed,
    Failed,
    MutationKind,
    MutationOutcome,
    MutationReconciler,
    MutationRequest,
    MutationState,
    MutationTransport,
    PendingMutation,
)
from shopgraph.client.transport import GraphQLHttpTransport, GraphQLTransport, SchemaTransport

__all__ = [
    "CacheSubscription",
    "Confirmed",
    "Failed",
    "GraphQLHttpTransport",
    "GraphQLTransport",
    "MutationKind",
    "MutationOutcome",
    "MutationReconciler",
    "MutationRequest",
    "MutationState",
    "MutationTransport",
    "NormalizedCache",
    "OptimisticLayer",
    "PendingMutation",
    "SchemaTransport",
    "ShopGraphClient",
    "connection_key",
]
