"""Catalog feature: products, customers and orders."""

from shopgraph.features.catalog.service import MUTATIONS, CatalogService, MutationSpec

__all__ = ["MUTATIONS", "CatalogService", "MutationSpec"]
