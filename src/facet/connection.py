"""In-process API client.

Handlers receive a ``Connection`` as their second argument and use it to
call other resources through the same router, with the same validation,
projection, and link resolution as an HTTP caller gets::

    async def get_post(ctx, connection):
        author = await connection.get("/users/1", props=["name"])
        return {"title": "Hello", "author": author}

Identical GETs that are in flight at the same time share one dispatch;
each waiter gets its own deep copy of the result.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import anyio

from facet.http.query import parse_query
from facet.http.request import Request

if TYPE_CHECKING:
    from facet.routing.router import Router

logger = logging.getLogger("facet.connection")

type _MemoKey = tuple[str, tuple[str, ...], str, str | None]


class _InFlight:
    __slots__ = ("done", "error", "result")

    def __init__(self) -> None:
        self.done = anyio.Event()
        self.result: Any = None
        self.error: Exception | None = None


class Connection:
    """A client bound to a router.

    One connection is created per inbound request (or batch) by the ASGI
    adapter; in-flight GET sharing is scoped to it.
    """

    __slots__ = ("_in_flight", "headers", "router")

    def __init__(self, router: Router, *, headers: Mapping[str, str] | None = None) -> None:
        self.router = router
        self.headers: dict[str, str] = dict(headers or {})
        self._in_flight: dict[_MemoKey, _InFlight] = {}

    def __repr__(self) -> str:
        return f"Connection(in_flight={len(self._in_flight)})"

    # -- Verbs --

    async def get(
        self,
        path: str,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
        etag: str | None = None,
    ) -> Any:
        return await self.request("GET", path, props=props, query=query, etag=etag)

    async def post(
        self,
        path: str,
        body: Any = None,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("POST", path, props=props, query=query, body=body)

    async def put(
        self,
        path: str,
        body: Any = None,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("PUT", path, props=props, query=query, body=body)

    async def patch(
        self,
        path: str,
        body: Any = None,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("PATCH", path, props=props, query=query, body=body)

    async def delete(
        self,
        path: str,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("DELETE", path, query=query, body=body)

    async def options(self, path: str) -> Any:
        return await self.request("OPTIONS", path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        props: Iterable[str] | None = None,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        etag: str | None = None,
    ) -> Any:
        """Build a request and dispatch it. A ``?query`` on *path* is merged in."""
        path, _, query_string = path.partition("?")
        merged_query: dict[str, Any] = {}
        merged_props: list[str] = []
        if query_string:
            parsed_query, parsed_props = parse_query(query_string)
            merged_query.update(parsed_query)
            merged_props.extend(parsed_props)
        merged_query.update(query or {})
        merged_props.extend(props or ())
        request = Request.build(
            method,
            path or "/",
            props=merged_props,
            query=merged_query,
            body=body,
            etag=etag,
            headers=self.headers,
        )
        return await self.send(request)

    async def send(self, request: Request) -> Any:
        """Dispatch a prepared request through the router."""
        if request.method != "GET":
            return await self.router.handle(request, self)

        key = self._memo_key(request)
        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("sharing in-flight GET %s", request.url)
            await pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return copy.deepcopy(pending.result)

        entry = _InFlight()
        self._in_flight[key] = entry
        try:
            result = await self.router.handle(request, self)
        except Exception as exc:
            entry.error = exc
            raise
        else:
            entry.result = copy.deepcopy(result)
            return result
        finally:
            entry.done.set()
            del self._in_flight[key]

    @staticmethod
    def _memo_key(request: Request) -> _MemoKey:
        query = json.dumps(sorted(request.query.items()), default=str)
        return (request.path, tuple(sorted(request.props)), query, request.etag)
