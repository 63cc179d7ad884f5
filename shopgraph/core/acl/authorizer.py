"""Operation-level authorization.

The predicate is deliberately opaque to callers: ``authorized(operation,
identity)`` answers for a whole mutation. There is no per-field redaction.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from shopgraph.core.exceptions import AuthorizationError
from shopgraph.core.schemas.auth import Identity

logger = logging.getLogger(__name__)


class Authorizer(Protocol):
    def authorized(self, operation: str, identity: Identity) -> bool: ...


class RoleAuthorizer:
    """Grant an operation when the identity holds any of its configured roles.

    Operations absent from the policy are denied.

    Example:
        authorizer = RoleAuthorizer({"createProduct": ["admin", "editor"]})
        authorizer.authorized("createProduct", identity)
    """

    def __init__(self, operation_roles: Mapping[str, list[str] | set[str] | frozenset[str]]) -> None:
        self._policy = {op: frozenset(roles) for op, roles in operation_roles.items()}

    def authorized(self, operation: str, identity: Identity) -> bool:
        allowed = self._policy.get(operation)
        if not allowed:
            return False
        return identity.has_any_role(allowed)

    def require(self, operation: str, identity: Identity) -> None:
        require_authorized(self, operation, identity)


def require_authorized(authorizer: Authorizer, operation: str, identity: Identity) -> None:
    """Raise :class:`AuthorizationError` unless ``authorizer`` lets ``identity`` run ``operation``.

    Works with any :class:`Authorizer`; only ``authorized()`` is part of the protocol.
    """
    if not authorizer.authorized(operation, identity):
        logger.info(
            "Operation denied",
            extra={"operation": operation, "subject": identity.subject},
        )
        raise AuthorizationError(operation=operation, roles=sorted(identity.roles))


class AllowAll:
    """Authorizer that permits everything (local tooling and tests)."""

    def authorized(self, operation: str, identity: Identity) -> bool:
        return True


def get_authorizer() -> RoleAuthorizer:
    """Build the role authorizer from auth settings."""
    from shopgraph.core.settings import get_auth_settings

    return RoleAuthorizer(get_auth_settings().operation_roles)


__all__ = ["AllowAll", "Authorizer", "RoleAuthorizer", "get_authorizer", "require_authorized"]
