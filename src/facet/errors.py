"""Facet exception hierarchy.

Shared across Router, RequestContext, Connection, and the ASGI adapter so
every module raises and catches the same types.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from http import HTTPStatus
from typing import Any

ERROR_NO_HANDLER = "No handler found for this resource"
ERROR_SCHEMA = "Request did not validate with schema"
ERROR_PROPS_NOT_FOUND = "Unable to resolve requested properties"
ERROR_RESULT_INVALID = "Return value did not validate with schema"
ERROR_ALIAS_DID_NOT_RESOLVE = "Alias did not resolve to a request"
ERROR_ALIAS_ITSELF = "Alias resolved to itself"
ERROR_UNKNOWN = "Unknown error"


class FacetError(Exception):
    """Base for all facet-specific errors."""


class ConfigurationError(FacetError):
    """Raised when a route registration or configuration is invalid.

    Typically raised from ``Router.route()`` at startup.
    """


class PaginationError(FacetError):
    """A collection accessor was used that does not match its pagination mode."""


def status_phrase(status: int) -> str:
    """Upper-case reason phrase for *status* (``422`` -> ``UNPROCESSABLE ENTITY``)."""
    try:
        return HTTPStatus(status).phrase.upper()
    except ValueError:
        return "UNKNOWN ERROR"


@dataclass(frozen=True, slots=True)
class HTTPError(FacetError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the request context, or handlers. The ASGI adapter
    catches these and turns them into JSON error documents.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    def document(self) -> dict[str, Any]:
        """The JSON error document sent to clients."""
        return {
            "code": self.status,
            "error": status_phrase(self.status),
            "message": self.detail or ERROR_UNKNOWN,
            "properties": [],
        }


@dataclass(frozen=True, slots=True)
class ApiError(HTTPError):
    """An HTTP error carrying per-property validation errors.

    ``properties`` holds ``{property, code, error, message}`` entries, the
    same shape ``RequestContext.add_property_error`` accumulates.
    """

    properties: tuple[dict[str, Any], ...] = ()

    def document(self) -> dict[str, Any]:
        return {
            "code": self.status,
            "error": status_phrase(self.status),
            "message": self.detail or ERROR_UNKNOWN,
            "properties": [dict(entry) for entry in self.properties],
        }


class NotFound(ApiError):  # noqa: N818
    """404: no route matched, or the route has no handler for the method."""

    def __init__(self, detail: str = ERROR_NO_HANDLER) -> None:
        super().__init__(status=404, detail=detail)


class ValidationFailed(ApiError):  # noqa: N818
    """422: params, query, or body did not validate with the route schema."""

    def __init__(
        self,
        properties: tuple[dict[str, Any], ...] = (),
        detail: str = ERROR_SCHEMA,
    ) -> None:
        super().__init__(status=422, detail=detail, properties=properties)


class PropertiesNotFound(ApiError):  # noqa: N818
    """404: requested properties could not be produced by any handler.

    ``missing`` names the unresolved property paths.
    """

    missing: tuple[str, ...]

    def __init__(
        self,
        missing: tuple[str, ...],
        properties: tuple[dict[str, Any], ...] = (),
    ) -> None:
        super().__init__(status=404, detail=ERROR_PROPS_NOT_FOUND, properties=properties)
        object.__setattr__(self, "missing", missing)


@dataclass(frozen=True, slots=True)
class InvalidResult(ApiError):
    """500: the merged handler result failed the route's schema.

    ``errors`` holds the validator's messages for server-side logs; they are
    not part of the client error document.
    """

    errors: tuple[str, ...] = field(default=(), compare=False)


class AliasError(ApiError):
    """500/508: an alias route could not be resolved."""


class UploadReason(StrEnum):
    TOO_LARGE = "ERROR_UPLOAD_TOO_LARGE"
    TOO_SMALL = "ERROR_UPLOAD_TOO_SMALL"
    MIME_TYPE = "ERROR_UPLOAD_MIME_TYPE"
    NOT_FOUND = "ERROR_UPLOAD_NOT_FOUND"
    NOT_MULTIPART = "ERROR_UPLOAD_NOT_MULTIPART"


class UploadError(FacetError):
    """An uploaded part violated its schema constraints or was not found."""

    def __init__(self, message: str, reason: UploadReason) -> None:
        super().__init__(message)
        self.reason = reason
