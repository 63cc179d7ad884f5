"""Application exceptions.

Every exception carries a stable ``code``. GraphQL responses expose it as
``errors[].extensions.code`` and the client maps it back to the same class
with exception_for_code(). Plain HTTP failures (a rejected bearer token)
render as RFC 7807 problem documents through to_problem().
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class AppException(Exception):
    """Base class: HTTP status, human ``detail`` and machine ``code`` plus ``extra`` context.

    ``extra`` is merged into both the GraphQL extensions and the problem
    document, so keep its values JSON-serializable.
    """

    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @property
    def extensions(self) -> dict[str, Any]:
        """GraphQL error extensions (graphql-core copies these onto located errors)."""
        return {"code": self.code, **self.extra}

    def to_problem(self) -> dict[str, Any]:
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "code": self.code,
        }
        if self.instance:
            problem["instance"] = self.instance
        return {**problem, **self.extra}

    @staticmethod
    def _default_title(status_code: int) -> str:
        if status_code in _TITLED_STATUSES:
            return HTTPStatus(status_code).phrase
        return "Error"


_TITLED_STATUSES = frozenset({400, 401, 403, 404, 409, 422, 500, 502, 504})


class NotFoundException(AppException):
    """No entity with the requested type and id exists (or it was deleted)."""

    code = "NOT_FOUND"

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(404, detail, type=type, title="Not Found", instance=instance, extra=extra)


class ValidationException(AppException):
    """Mutation input failed field validation; ``extra["errors"]`` lists each failure."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(422, detail, type=type, title="Validation Error", instance=instance, extra=extra)


class UnauthorizedException(AppException):
    """A bearer token was sent but could not be verified."""

    code = "UNAUTHENTICATED"

    def __init__(
        self,
        detail: str = "Authentication credentials required",
        type: str = "unauthorized",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(401, detail, type=type, title="Unauthorized", instance=instance, extra=extra)


class InvalidCursorError(AppException):
    """Raised when a cursor cannot be decoded for the requested connection.

    Covers malformed tokens, checksum mismatches, and cursors produced under a
    different entity type, filter, or sort order. A bad cursor is never treated
    as "start from the beginning".

    Example:
            raise InvalidCursorError(
            detail="Cursor was issued for a different filter or sort",
            extra={"reason": "fingerprint_mismatch"}
        )
    """

    code = "INVALID_CURSOR"

    def __init__(
        self,
        detail: str = "Invalid cursor",
        type: str = "invalid-cursor",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Invalid Cursor",
            instance=instance,
            extra=extra,
        )


class InvalidArgumentError(AppException):
    """Raised for invalid pagination or query arguments.

    Example:
            raise InvalidArgumentError(
            detail="first and last cannot be combined",
            extra={"arguments": ["first", "last"]}
        )
    """

    code = "INVALID_ARGUMENT"

    def __init__(
        self,
        detail: str,
        type: str = "invalid-argument",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Bad Request",
            instance=instance,
            extra=extra,
        )


class DuplicateMutationError(AppException):
    """Raised when an idempotency key is reused while its mutation is still pending."""

    code = "DUPLICATE_MUTATION"

    def __init__(
        self,
        idempotency_key: str,
        detail: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        final_extra = {"idempotency_key": idempotency_key}
        if extra:
            final_extra.update(extra)
        super().__init__(
            status_code=409,
            detail=detail or f"Mutation with idempotency key {idempotency_key!r} is already pending",
            type="duplicate-mutation",
            title="Conflict",
            instance=instance,
            extra=final_extra,
        )


class AuthorizationError(AppException):
    """Raised when the caller's identity may not perform an operation.

    Example:
            raise AuthorizationError(
            operation="deleteProduct",
            roles=["viewer"],
        )
    """

    code = "FORBIDDEN"

    def __init__(
        self,
        operation: str | None = None,
        roles: list[str] | None = None,
        detail: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        if detail is None:
            detail = "Insufficient permissions"
            if operation:
                detail = f"Not authorized to perform {operation}"
        final_extra: dict[str, Any] = {}
        if operation:
            final_extra["operation"] = operation
        if roles is not None:
            final_extra["roles"] = roles
        if extra:
            final_extra.update(extra)
        super().__init__(
            status_code=403,
            detail=detail,
            type="forbidden",
            title="Forbidden",
            instance=instance,
            extra=final_extra or None,
        )


class ConflictError(AppException):
    """Raised when a write targets a stale version of an entity.

    Example:
            raise ConflictError(
            detail="Product abc123 was modified concurrently",
            extra={"expected_version": 2, "actual_version": 3}
        )
    """

    code = "CONFLICT"

    def __init__(
        self,
        detail: str,
        type: str = "conflict",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=409,
            detail=detail,
            type=type,
            title="Conflict",
            instance=instance,
            extra=extra,
        )


class TransportError(AppException):
    """Raised when the API could not be reached or answered unintelligibly."""

    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        detail: str,
        type: str = "transport-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
        *,
        status_code: int = 502,
    ) -> None:
        super().__init__(
            status_code=status_code,
            detail=detail,
            type=type,
            instance=instance,
            extra=extra,
        )


class MutationTimeoutError(TransportError):
    """Raised when a mutation did not resolve within the configured timeout."""

    code = "TIMEOUT"

    def __init__(
        self,
        timeout: float,
        detail: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        final_extra: dict[str, Any] = {"timeout": timeout}
        if extra:
            final_extra.update(extra)
        super().__init__(
            detail=detail or f"Mutation timed out after {timeout:g}s",
            type="mutation-timeout",
            instance=instance,
            extra=final_extra,
            status_code=504,
        )


_CODE_REGISTRY: dict[str, type[AppException]] = {
    cls.code: cls
    for cls in (
        NotFoundException,
        ValidationException,
        UnauthorizedException,
        InvalidCursorError,
        InvalidArgumentError,
        ConflictError,
        TransportError,
    )
}


def exception_for_code(
    code: str | None,
    detail: str,
    extra: dict[str, Any] | None = None,
) -> AppException:
    """Rebuild an application exception from a GraphQL error code.

    Args:
        code: Value of ``extensions.code`` reported by the server.
        detail: Error message reported by the server.
        extra: Remaining extension fields.

    Returns:
        An instance of the matching exception class, or a ``TransportError``
        when the code is unknown.
    """
    extra = dict(extra or {})
    if code == AuthorizationError.code:
        return AuthorizationError(
            operation=extra.pop("operation", None),
            roles=extra.pop("roles", None),
            detail=detail,
            extra=extra or None,
        )
    if code == DuplicateMutationError.code:
        return DuplicateMutationError(
            extra.pop("idempotency_key", ""), detail=detail, extra=extra or None
        )
    if code == MutationTimeoutError.code:
        return MutationTimeoutError(float(extra.pop("timeout", 0.0)), detail=detail, extra=extra or None)
    exc_cls = _CODE_REGISTRY.get(code or "")
    if exc_cls is None:
        return TransportError(detail, extra={"code": code, **extra} if code else extra or None)
    return exc_cls(detail, extra=extra or None)


def jsonable_errors(errors: list[Any]) -> list[dict[str, Any]]:
    """Reduce pydantic error dicts to JSON-safe ``loc``/``msg``/``type`` entries."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]


__all__ = [
    "AppException",
    "AuthorizationError",
    "ConflictError",
    "DuplicateMutationError",
    "InvalidArgumentError",
    "InvalidCursorError",
    "MutationTimeoutError",
    "NotFoundException",
    "TransportError",
    "UnauthorizedException",
    "ValidationException",
    "exception_for_code",
    "jsonable_errors",
]
