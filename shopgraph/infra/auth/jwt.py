"""Verification of bearer JWTs into caller identities."""

from __future__ import annotations

import logging
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from shopgraph.core.exceptions import UnauthorizedException
from shopgraph.core.schemas.auth import Identity

logger = logging.getLogger(__name__)


class JWTVerifier:
    """Decode and validate self-issued JWTs.

    Token signing happens outside this service; only verification lives here.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        *,
        audience: str | None = None,
        issuer: str | None = None,
        roles_claim: str = "roles",
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer
        self.roles_claim = roles_claim

    def verify(self, token: str) -> Identity:
        """Verify a token and return the identity it carries.

        Raises:
            UnauthorizedException: If the token is invalid, expired, or has no subject.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                },
            )
        except InvalidTokenError as e:
            logger.warning("JWT token validation failed", extra={"error": str(e)})
            raise UnauthorizedException("Invalid or expired token", type="token-invalid") from e

        subject = payload.get("sub")
        if not subject:
            raise UnauthorizedException("Missing 'sub' claim in token", type="token-invalid")

        roles = payload.get(self.roles_claim) or []
        if isinstance(roles, str):
            roles = roles.split()
        return Identity(subject=str(subject), roles=frozenset(map(str, roles)), claims=payload)


def get_jwt_verifier() -> JWTVerifier:
    """Build a verifier from auth settings."""
    from shopgraph.core.settings import get_auth_settings

    settings = get_auth_settings()
    return JWTVerifier(
        settings.jwt_secret.get_secret_value(),
        settings.jwt_algorithm,
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        roles_claim=settings.roles_claim,
    )


__all__ = ["JWTVerifier", "get_jwt_verifier"]
