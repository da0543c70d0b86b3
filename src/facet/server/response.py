"""Result-to-response translation.

A router result is a JSON value whose ``$`` metadata drives the HTTP layer:
``$httpStatus`` becomes the status, ``$etag`` the ``ETag`` header, and
``$expires`` a private ``Cache-Control`` max-age. The metadata itself stays
in the body.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from facet.config import ApiConfig
from facet.errors import HTTPError
from facet.resources.representable import Representable

logger = logging.getLogger("facet.server")

ERROR_STRINGIFY = "Unable to stringify to JSON"
CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """A fully encoded response, ready for ``send_response``."""

    status: int
    headers: tuple[tuple[str, str], ...]
    body: bytes


def result_status(result: Any) -> int:
    if isinstance(result, Mapping):
        status = result.get("$httpStatus")
        if isinstance(status, int):
            return status
    return 200


def result_headers(result: Any) -> dict[str, str]:
    """``etag`` and ``cache-control`` headers derived from result metadata."""
    headers: dict[str, str] = {}
    if not isinstance(result, Mapping):
        return headers
    etag = result.get("$etag")
    if etag:
        headers["etag"] = str(etag)
    expires = result.get("$expires")
    if expires:
        headers["cache-control"] = f"private, max-age={expires}"
    return headers


def _default(value: Any) -> Any:
    if isinstance(value, Representable):
        return value.to_representation()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode(value: Any, config: ApiConfig) -> bytes:
    """Encode *value* as JSON with a trailing newline."""
    text = json.dumps(value, indent=config.json_indent, default=_default)
    return (text + "\n").encode("utf-8")


def _encoded(status: int, headers: dict[str, str], body: bytes) -> ApiResponse:
    return ApiResponse(
        status=status,
        headers=(("content-type", CONTENT_TYPE), *headers.items()),
        body=body,
    )


def render(result: Any, config: ApiConfig) -> ApiResponse:
    """Encode a successful router result."""
    status = result_status(result)
    headers = result_headers(result)
    try:
        body = encode(result, config)
    except (TypeError, ValueError) as exc:
        logger.exception("Unable to encode result")
        body = encode({"error": ERROR_STRINGIFY, "exception": str(exc)}, config)
        return _encoded(500, {}, body)
    return _encoded(status, headers, body)


def render_error(exc: HTTPError, config: ApiConfig) -> ApiResponse:
    """Encode an ``HTTPError`` as its error document."""
    headers = dict(exc.headers)
    return _encoded(exc.status, headers, encode(exc.document(), config))


def render_internal_error(exc: Exception, config: ApiConfig) -> ApiResponse:
    """Encode an unexpected failure as a 500. Exception text only in debug mode."""
    document: dict[str, Any] = {
        "code": 500,
        "error": "INTERNAL SERVER ERROR",
        "message": "Internal server error",
        "properties": [],
    }
    if config.debug:
        document["exception"] = f"{type(exc).__name__}: {exc}"
    return _encoded(500, {}, encode(document, config))
