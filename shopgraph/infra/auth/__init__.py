"""Token verification."""

from shopgraph.infra.auth.jwt import JWTVerifier, get_jwt_verifier

__all__ = ["JWTVerifier", "get_jwt_verifier"]
