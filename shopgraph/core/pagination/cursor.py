"""Cursor encoding and decoding for pagination.

Cursors are opaque strings that encode the position of an entity in one
specific ordered result set. They contain the entity's sort-key tuple plus
enough metadata to reject replay against any other configuration.

The cursor format is:
1. JSON object {"v": version, "f": scope fingerprint, "k": [tagged sort key values]}
2. "c": keyed BLAKE2b checksum of that object
3. Base64 URL-safe encoded, padding stripped

Clients must treat cursors as opaque; nothing about ordering can be read from them.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from functools import lru_cache
from typing import Any

from shopgraph.core.exceptions import InvalidCursorError
from shopgraph.core.pagination.ordering import ConnectionScope
from shopgraph.core.pagination.values import dump_value, load_value
from shopgraph.core.schemas.entity import Entity

logger = logging.getLogger(__name__)

CURSOR_VERSION = 1


class CursorCodec:
    """Encode and decode pagination cursors.

    Usage:
        codec = CursorCodec(secret="...")
        cursor = codec.encode((Decimal("9.99"), "p-1"), scope)
        codec.decode(cursor, scope)  # (Decimal("9.99"), "p-1")
        codec.decode(cursor, other_scope)  # raises InvalidCursorError
    """

    def __init__(self, secret: str | bytes) -> None:
        raw = secret.encode() if isinstance(secret, str) else secret
        if not raw:
            msg = "Cursor secret must not be empty"
            raise ValueError(msg)
        # BLAKE2b keys are limited to 64 bytes
        self._key = hashlib.sha256(raw).digest()

    def encode(self, key: tuple[Any, ...], scope: ConnectionScope) -> str:
        """Encode a sort-key tuple to an opaque cursor.

        Args:
            key: Values of the scope's sort fields for one entity.
            scope: Configuration the cursor is valid for.

        Returns:
            URL-safe cursor string.
        """
        if len(key) != len(scope.sort.fields):
            msg = f"Sort key has {len(key)} values, scope sorts by {len(scope.sort.fields)} fields"
            raise ValueError(msg)
        payload: dict[str, Any] = {
            "v": CURSOR_VERSION,
            "f": scope.fingerprint,
            "k": [dump_value(v) for v in key],
        }
        payload["c"] = self._checksum(payload)
        body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return base64.urlsafe_b64encode(body.encode()).decode().rstrip("=")

    def decode(self, cursor: str, scope: ConnectionScope) -> tuple[Any, ...]:
        """Decode a cursor issued for ``scope``.

        Raises:
            InvalidCursorError: If the cursor is malformed, tampered with, or was
                issued for a different entity type, filter or sort.
        """
        try:
            padded = cursor + "=" * (-len(cursor) % 4)
            body = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
            payload = json.loads(body)
        except (UnicodeEncodeError, UnicodeDecodeError, binascii.Error, ValueError) as e:
            raise self._invalid("malformed", "Cursor is not a valid token") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("c"), str):
            raise self._invalid("malformed", "Cursor is not a valid token")

        checksum = payload.pop("c")
        if not hmac.compare_digest(checksum, self._checksum(payload)):
            raise self._invalid("checksum_mismatch", "Cursor checksum does not match")

        if payload.get("v") != CURSOR_VERSION:
            raise self._invalid("unsupported_version", "Cursor version is not supported")

        if payload.get("f") != scope.fingerprint:
            raise self._invalid(
                "scope_mismatch",
                "Cursor was issued for a different entity type, filter or sort",
            )

        raw_key = payload.get("k")
        if not isinstance(raw_key, list) or len(raw_key) != len(scope.sort.fields):
            raise self._invalid("arity_mismatch", "Cursor does not match the sort fields")

        try:
            return tuple(load_value(v) for v in raw_key)
        except ValueError as e:
            raise self._invalid("malformed", "Cursor contains an invalid value") from e

    def create_cursor(self, entity: Entity, scope: ConnectionScope) -> str:
        """Create the cursor of ``entity`` within ``scope``."""
        return self.encode(scope.sort.key(entity), scope)

    def _checksum(self, payload: dict[str, Any]) -> str:
        body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.blake2b(body.encode(), key=self._key, digest_size=16).hexdigest()

    @staticmethod
    def _invalid(reason: str, detail: str) -> InvalidCursorError:
        logger.debug("Rejected cursor", extra={"reason": reason})
        return InvalidCursorError(detail=detail, extra={"reason": reason})


@lru_cache(maxsize=1)
def get_cursor_codec() -> CursorCodec:
    """Get the cursor codec keyed with the configured secret."""
    from shopgraph.core.settings import get_pagination_settings

    return CursorCodec(get_pagination_settings().cursor_secret.get_secret_value())


__all__ = ["CURSOR_VERSION", "CursorCodec", "get_cursor_codec"]
