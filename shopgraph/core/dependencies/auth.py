"""Authentication dependencies.

Resolve the caller from an ``Authorization: Bearer <jwt>`` header:

    @router.get("/me")
    async def me(identity: Annotated[Identity, Depends(get_identity)]):
        return {"subject": identity.subject}

Requests without a token get the anonymous identity, which holds no roles and
therefore passes no mutation policy.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header

from shopgraph.core.schemas.auth import Identity
from shopgraph.infra.auth.jwt import JWTVerifier, get_jwt_verifier
from shopgraph.infra.logging import set_log_context

logger = logging.getLogger(__name__)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_identity(
    verifier: Annotated[JWTVerifier, Depends(get_jwt_verifier)],
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Get the calling identity, or the anonymous identity without a token.

    Raises:
        UnauthorizedException: If a token is present but fails verification.
    """
    token = _bearer_token(authorization)
    if token is None:
        return Identity.anonymous()

    identity = verifier.verify(token)
    set_log_context(subject=identity.subject)
    logger.debug("Caller authenticated", extra={"roles": sorted(identity.roles)})
    return identity


IdentityDep = Annotated[Identity, Depends(get_identity)]

__all__ = ["IdentityDep", "get_identity"]
