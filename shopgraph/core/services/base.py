"""Common base for services that sit between GraphQL resolvers and the database."""

from __future__ import annotations

import logging

from shopgraph.infra.logging import get_lazy_logger


class BaseService:
    """Gives each service a logger named after its module and class.

    ``self.logger`` is for lifecycle events, ``self._lazy`` for DEBUG output
    whose message is expensive to build (pass a lambda).
    """

    def __init__(self) -> None:
        name = f"{type(self).__module__}.{type(self).__qualname__}"
        self.logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)
