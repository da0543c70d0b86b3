"""Immutable inbound request.

Built by the ASGI adapter from an HTTP request, by ``Connection`` for
in-process calls, and by alias resolvers. The router never mutates it; the
request context holds the cast and validated copies of its data.
"""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from facet.http.headers import Headers
from facet.http.query import build_query_string, parse_query

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable API request.

    ``props`` are the requested property paths; ``query`` excludes them.
    ``query_string`` is the raw (or canonically rebuilt) query string the
    collection fingerprint is computed over. ``stream`` carries the raw body
    of multipart requests.
    """

    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    props: tuple[str, ...] = ()
    body: Any = None
    etag: str | None = None
    headers: Headers = field(default_factory=Headers)
    query_string: str = ""
    stream: AsyncIterator[bytes] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        method = self.method.upper() if isinstance(self.method, str) else self.method
        if method not in METHODS:
            msg = f"Unsupported method {self.method!r}; expected one of {', '.join(METHODS)}"
            raise ValueError(msg)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "props", tuple(self.props))
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

    # -- Construction --

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        *,
        body: Any = None,
        etag: str | None = None,
        headers: Mapping[str, str] | Headers | None = None,
        stream: AsyncIterator[bytes] | None = None,
    ) -> Request:
        """Build a request from ``path?query``; ``props`` is split out of the query."""
        path, _, query_string = url.partition("?")
        query, props = parse_query(query_string)
        return cls(
            method=method,
            path=path or "/",
            query=query,
            props=props,
            body=body,
            etag=etag,
            headers=headers if isinstance(headers, Headers) else Headers(headers or {}),
            query_string=query_string,
            stream=stream,
        )

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        etag: str | None = None,
        headers: Mapping[str, str] | Headers | None = None,
    ) -> Request:
        """Build a request from parts, rebuilding a canonical query string."""
        props = tuple(props or ())
        query = dict(query or {})
        return cls(
            method=method,
            path=path,
            query=query,
            props=props,
            body=body,
            etag=etag,
            headers=headers if isinstance(headers, Headers) else Headers(headers or {}),
            query_string=build_query_string(query, props),
        )

    def with_path(self, path: str) -> Request:
        """Copy of this request addressed to *path*."""
        return dataclasses.replace(self, path=path)

    # -- Computed properties --

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def content_type(self) -> str | None:
        return self.headers.content_type

    @property
    def is_multipart(self) -> bool:
        content_type = self.content_type or ""
        return content_type.lower().startswith("multipart/form-data")
