"""Authorization predicates for catalog mutations."""

from shopgraph.core.acl.authorizer import (
    AllowAll,
    Authorizer,
    RoleAuthorizer,
    get_authorizer,
    require_authorized,
)

__all__ = ["AllowAll", "Authorizer", "RoleAuthorizer", "get_authorizer", "require_authorized"]
