"""Service base classes."""

from shopgraph.core.services.base import BaseService

__all__ = ["BaseService"]
