"""The resource router.

Routes are registered during setup and tried in registration order; the
first whose pattern matches the request path handles it. The table freezes
when the router handles its first request.

One call runs through::

    match -> cast/validate -> dispatch -> merge -> reconcile props
          -> resolve links -> validate result -> post-route hooks

Usage::

    router = Router()
    router.route("/users/:id", user_schema, {
        "GET": [
            PropertyHandler(("name", "email"), get_profile),
            PropertyHandler(("friends",), get_friends),
        ],
        "PATCH": update_user,
    })
    result = await router.handle(Request.from_url("GET", "/users/1?props=name"))
"""

import logging
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any

from jsonschema.exceptions import SchemaError

from facet._internal.concurrency import gather
from facet._internal.invoke import invoke
from facet._internal.types import Handler, PostRoute, Schema
from facet.connection import Connection
from facet.context import RequestContext, strip_metadata
from facet.errors import (
    ERROR_ALIAS_DID_NOT_RESOLVE,
    ERROR_ALIAS_ITSELF,
    ERROR_RESULT_INVALID,
    AliasError,
    ConfigurationError,
    InvalidResult,
    NotFound,
    PropertiesNotFound,
    ValidationFailed,
)
from facet.events import ApiEvent, EventEmitter, EventKind, Listener, now
from facet.http.request import Request
from facet.merge import merge
from facet.props.path import PropertyPath, Segment, format_path, parse_path, unpluck
from facet.props.projector import is_missing, pluck
from facet.resources.fingerprint import fingerprint, is_valid
from facet.resources.link import Link
from facet.resources.representable import materialize
from facet.routing.route import AliasTarget, Route, make_route
from facet.schema import codes
from facet.schema.validator import check_schema, validate

logger = logging.getLogger("facet.router")


def _explicit_status(result: Any) -> int | None:
    if isinstance(result, Mapping):
        status = result.get("$httpStatus")
        if isinstance(status, int):
            return status
    return None


def _child_props(props: Sequence[str], position: PropertyPath, in_array: bool) -> list[str]:
    """Props addressed below a link found at *position*, relative to the link.

    ``position`` is where the link sits; ``in_array`` means it is an item of
    the array at that position, so props continue with ``@``.
    """
    child: list[str] = []
    for prop in props:
        segments = parse_path(prop)
        if len(segments) <= len(position) or segments[: len(position)] != position:
            continue
        rest = segments[len(position) :]
        if rest[0].pluck != in_array:
            continue
        rendered = format_path(unpluck(rest))
        if rendered and not rendered.startswith("$"):
            child.append(rendered)
    return child


def _scoped_query(query: Mapping[str, Any], position: PropertyPath) -> dict[str, Any]:
    """Query keys addressed below *position* (``author.limit=5``), prefix removed."""
    prefix = f"{format_path(position)}."
    return {
        key[len(prefix) :]: value
        for key, value in query.items()
        if key.startswith(prefix) and len(key) > len(prefix)
    }


class Router:
    """Route table and dispatcher.

    Listeners passed in (or added with ``add_listener``) receive an
    ``ApiEvent`` per invoked handler and one per finished call.
    """

    __slots__ = ("_frozen", "_post_routes", "_routes", "events")

    def __init__(self, *, listeners: list[Listener] | None = None) -> None:
        self._routes: list[Route] = []
        self._post_routes: list[PostRoute] = []
        self._frozen = False
        self.events = EventEmitter(listeners)

    # -- Registration --

    def _check_open(self) -> None:
        if self._frozen:
            msg = "Cannot register routes after the router has started handling requests."
            raise RuntimeError(msg)

    def route(
        self,
        pattern: str | tuple[str, str],
        schema: Schema | None,
        handlers: Mapping[str, Any],
        *,
        query: Mapping[str, Any] | str | None = None,
    ) -> Route:
        """Register a route.

        *pattern* may be ``(pattern, "key=default&other=")`` to declare query
        parameters and their defaults. *handlers* maps methods to a callback
        or to a list of property handlers.
        """
        self._check_open()
        if isinstance(pattern, tuple):
            pattern, query = pattern
        if schema is not None:
            try:
                check_schema(schema)
            except SchemaError as exc:
                msg = f"Invalid schema for route {pattern!r}: {exc.message}"
                raise ConfigurationError(msg) from exc
        route = make_route(pattern, schema=schema, handlers=handlers, query=query)
        self._routes.append(route)
        return route

    def alias(
        self,
        pattern: str | tuple[str, str],
        target: AliasTarget,
        *,
        query: Mapping[str, Any] | str | None = None,
    ) -> Route:
        """Register an alias: requests matching *pattern* are re-dispatched to *target*.

        *target* is a replacement path, or ``(ctx, connection) -> Request | str``.
        """
        self._check_open()
        if isinstance(pattern, tuple):
            pattern, query = pattern
        if not isinstance(target, str) and not callable(target):
            msg = f"Alias target for {pattern!r} must be a path or a callable"
            raise ConfigurationError(msg)
        route = make_route(pattern, query=query, alias=target)
        self._routes.append(route)
        return route

    def post_route(self, hook: PostRoute) -> PostRoute:
        """Register ``hook(result) -> result``, applied to every successful result."""
        self._check_open()
        self._post_routes.append(hook)
        return hook

    def add_listener(self, listener: Listener) -> None:
        self.events.add(listener)

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def match(self, path: str) -> Route | None:
        """The first route whose pattern matches *path*."""
        for route in self._routes:
            if route.matcher.match(path) is not None:
                return route
        return None

    # -- Dispatch --

    async def handle(self, request: Request, connection: Connection | None = None) -> Any:
        """Handle *request* and return the final result.

        Raises an ``HTTPError`` subclass for routing, validation, and result
        failures; handler exceptions propagate unchanged.
        """
        self._frozen = True
        if connection is None:
            connection = Connection(self)
        started = now()

        if request.method == "OPTIONS" and request.path in ("", "/"):
            documents = [route.document() for route in self._routes if not route.is_alias]
            await self._emit(EventKind.SUCCESS, request, None, started)
            return documents

        route = self.match(request.path)
        if route is not None and route.is_alias:
            try:
                resolved = await self._resolve_alias(request, route, connection)
            except Exception as exc:
                await self._emit(EventKind.ERROR, request, route, started, error=exc)
                raise
            logger.debug("alias %s -> %s", request.path, resolved.path)
            return await self.handle(resolved, connection)

        try:
            if route is None:
                raise NotFound()
            result = await self._handle_route(request, route, connection, started)
        except Exception as exc:
            await self._emit(EventKind.ERROR, request, route, started, error=exc)
            raise
        await self._emit(EventKind.SUCCESS, request, route, started)
        return result

    async def _resolve_alias(
        self,
        request: Request,
        route: Route,
        connection: Connection,
    ) -> Request:
        target = route.alias
        resolved: Any
        if isinstance(target, str):
            resolved = request.with_path(target)
        else:
            ctx = RequestContext(request, route)
            ctx.prepare()
            resolved = await invoke(target, ctx, connection)
            if isinstance(resolved, str) and "?" not in resolved:
                resolved = request.with_path(resolved)
            elif isinstance(resolved, str):
                resolved = Request.from_url(
                    request.method,
                    resolved,
                    body=request.body,
                    etag=request.etag,
                    headers=request.headers,
                    stream=request.stream,
                )

        if not isinstance(resolved, Request):
            logger.debug("alias %s did not resolve: %r", request.path, resolved)
            raise AliasError(status=500, detail=ERROR_ALIAS_DID_NOT_RESOLVE)
        if resolved.path == request.path:
            raise AliasError(status=508, detail=ERROR_ALIAS_ITSELF)
        return resolved

    async def _handle_route(
        self,
        request: Request,
        route: Route,
        connection: Connection,
        started: float,
    ) -> Any:
        method = request.method
        if method == "OPTIONS":
            return route.document()

        ctx = RequestContext(request, route)
        ctx.prepare()
        if ctx.has_property_errors:
            raise ValidationFailed(tuple(ctx.property_errors))
        if not route.can_handle(method):
            raise NotFound()

        handlers = route.select_handlers(method, ctx.props, ctx.body)
        if handlers is None:
            return {}
        if handlers:
            results = await self._run_handlers(handlers, ctx, connection, route, started)
            result = merge(*(materialize(item) for item in results))
            logger.debug("merged %d handler results for %s", len(results), request.path)
        elif ctx.props:
            # No handler declares these props; only path params can still supply them
            result = {}
        else:
            raise NotFound()

        status = _explicit_status(result)
        if status is not None and not 200 <= status < 300:
            return result

        if isinstance(result, Link):
            result = await result.resolve(connection, props=ctx.props or None)
        elif method in ("PUT", "PATCH") and ctx.props and isinstance(result, dict):
            # Fetch whatever requested props the mutation did not return
            result = await Link(request.path, result).resolve(connection, props=ctx.props)

        result = self._reconcile(ctx, result)

        etag = None
        if method == "GET":
            if request.etag and is_valid(request.etag, result, request):
                return {"$httpStatus": 304}
            etag = fingerprint(result, request)

        await self._resolve_links(result, connection, ctx.props, request.query)
        result = self._reconcile(ctx, result)
        if etag is not None and isinstance(result, dict):
            result["$etag"] = etag

        self._validate_result(route, result, required=not ctx.props)

        for hook in self._post_routes:
            result = await invoke(hook, result)
        return result

    async def _run_handlers(
        self,
        handlers: list[Handler],
        ctx: RequestContext,
        connection: Connection,
        route: Route,
        started: float,
    ) -> list[Any]:
        async def call(handler: Handler) -> Any:
            try:
                return await invoke(handler, ctx, connection)
            finally:
                await self._emit(EventKind.HANDLER, ctx.request, route, started)

        return await gather([partial(call, handler) for handler in handlers])

    def _reconcile(self, ctx: RequestContext, result: Any) -> Any:
        """Project *result* to the requested props, reflecting path params it lacks."""
        if not ctx.props:
            return result
        projected = pluck(result, ctx.props)
        if not is_missing(projected):
            return projected

        missing: list[str] = projected["$missing"]
        if isinstance(result, Mapping):
            reflected = {
                prop: ctx.params[prop]
                for prop in missing
                if prop in ctx.params and ctx.params[prop] is not None
            }
            if reflected:
                result = merge(result, reflected)
                projected = pluck(result, ctx.props)
                if not is_missing(projected):
                    return projected
                missing = projected["$missing"]

        for prop in missing:
            ctx.add_property_error(prop, codes.NOT_IN_SCHEMA.code)
        raise PropertiesNotFound(tuple(missing), properties=tuple(ctx.property_errors))

    async def _resolve_links(
        self,
        result: Any,
        connection: Connection,
        props: Sequence[str],
        query: Mapping[str, Any],
    ) -> None:
        """Resolve every Link in *result* in place, concurrently.

        Each link is fetched with the props and query keys addressed below
        its position. Links left inside a resolved value (a link satisfied
        from attached data that itself holds links) are resolved in turn.
        """
        found: list[tuple[Any, Any, Link, list[str], dict[str, Any]]] = []

        def walk(node: Any, position: PropertyPath, in_array: bool) -> None:
            if isinstance(node, dict):
                for key, value in node.items():
                    here = (*position, Segment(key, pluck=in_array))
                    visit(node, key, value, here, False)
            elif isinstance(node, list):
                for index, value in enumerate(node):
                    visit(node, index, value, position, True)

        def visit(
            container: Any,
            slot: Any,
            value: Any,
            position: PropertyPath,
            in_array: bool,
        ) -> None:
            if isinstance(value, Link):
                child_props = _child_props(props, position, in_array)
                found.append((container, slot, value, child_props, _scoped_query(query, position)))
            elif isinstance(value, (dict, list)):
                walk(value, position, in_array)

        walk(result, (), False)
        if not found:
            return

        async def resolve(link: Link, child_props: list[str], scoped: dict[str, Any]) -> Any:
            value = await link.resolve(connection, props=child_props or None, query=scoped or None)
            if child_props:
                projected = pluck(value, child_props)
                if not is_missing(projected):
                    value = projected
            await self._resolve_links(value, connection, child_props, scoped)
            return value

        logger.debug("resolving %d links", len(found))
        resolved = await gather(
            [partial(resolve, link, child, scoped) for _, _, link, child, scoped in found]
        )
        for (container, slot, *_), value in zip(found, resolved, strict=True):
            container[slot] = value

    def _validate_result(self, route: Route, result: Any, *, required: bool) -> None:
        if not route.schema:
            return
        outcome = validate(route.schema, strip_metadata(result), required=required)
        if not outcome.valid:
            logger.debug("result for %s failed validation: %s", route.pattern, outcome.messages)
            raise InvalidResult(status=500, detail=ERROR_RESULT_INVALID, errors=outcome.messages)

    async def _emit(
        self,
        kind: EventKind,
        request: Request,
        route: Route | None,
        started: float,
        *,
        error: BaseException | None = None,
    ) -> None:
        event = ApiEvent(
            kind=kind,
            path=request.path,
            pattern=route.pattern if route is not None else None,
            schema=route.schema if route is not None else None,
            request=request,
            started=started,
            ended=now(),
            error=error,
        )
        await self.events.emit(event)

