"""Route and PropertyHandler frozen dataclasses."""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

from facet._internal.types import Handler, Schema
from facet.errors import ConfigurationError
from facet.props.path import top_level_key
from facet.routing.pattern import PathPattern, PatternKey, compile_pattern

HANDLER_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
DOCUMENTED_METHODS = (*HANDLER_METHODS, "OPTIONS")


@dataclass(frozen=True, slots=True)
class PropertyHandler:
    """A handler invoked only when one of its ``props`` is requested."""

    props: tuple[str, ...]
    callback: Handler


type HandlerSet = Handler | tuple[PropertyHandler, ...]

# Alias target: a replacement path, or ``(ctx, connection) -> Request | str``
type AliasTarget = str | Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route registration.

    Either ``handlers`` (a regular route) or ``alias`` (an alias route) is
    populated. Created by ``Router.route()`` / ``Router.alias()``.
    """

    matcher: PathPattern
    schema: Schema | None = None
    query: Mapping[str, str] = field(default_factory=dict)
    handlers: Mapping[str, HandlerSet] = field(default_factory=dict)
    alias: AliasTarget | None = None

    @property
    def pattern(self) -> str:
        return self.matcher.pattern

    @property
    def keys(self) -> tuple[PatternKey, ...]:
        return self.matcher.keys

    @property
    def is_alias(self) -> bool:
        return self.alias is not None

    @property
    def is_collection(self) -> bool:
        """True if the schema describes a collection: ``properties.items`` is an array of items."""
        schema = self.schema or {}
        if schema.get("type") != "object":
            return False
        items = (schema.get("properties") or {}).get("items")
        return (
            isinstance(items, dict)
            and items.get("type") == "array"
            and isinstance(items.get("items"), dict)
        )

    @property
    def item_schema(self) -> Schema | None:
        if not self.is_collection:
            return None
        return self.schema["properties"]["items"]["items"]  # type: ignore[index]

    @property
    def methods(self) -> tuple[str, ...]:
        """Supported methods in documentation order, OPTIONS always last."""
        return tuple(m for m in DOCUMENTED_METHODS if m in self.handlers or m == "OPTIONS")

    def can_handle(self, method: str) -> bool:
        return method in self.handlers

    def document(self) -> dict[str, Any]:
        """The OPTIONS document for this route."""
        return {"pattern": self.pattern, "methods": list(self.methods), "schema": self.schema}

    def select_handlers(
        self,
        method: str,
        props: Iterable[str],
        body: Any = None,
    ) -> list[Handler] | None:
        """Pick the callbacks to run for *method*.

        A single callback always runs. Property handlers run when their
        declared props intersect the top-level keys of the requested props
        (for PUT/PATCH with a body: the body's keys), or all of them when
        nothing was requested. Returns None for a PUT/PATCH with an empty
        body, whose result is ``{}`` without calling any handler.
        """
        handler_set = self.handlers.get(method)
        if handler_set is None:
            return []
        if callable(handler_set):
            return [handler_set]

        if method in ("PUT", "PATCH") and isinstance(body, Mapping):
            if not body:
                return None
            wanted = set(body)
        else:
            wanted = {top_level_key(prop) for prop in props}
            if not wanted:
                return [entry.callback for entry in handler_set]
        return [entry.callback for entry in handler_set if wanted.intersection(entry.props)]


def parse_query_defaults(query: Mapping[str, Any] | str | None) -> dict[str, str]:
    """Declared query parameters and their defaults; ``""`` declares without a default."""
    if query is None:
        return {}
    if isinstance(query, str):
        return dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))
    return {str(key): "" if value is None else value for key, value in query.items()}


def _property_handler(entry: Any) -> PropertyHandler:
    if isinstance(entry, PropertyHandler):
        return entry
    if isinstance(entry, Mapping):
        props, callback = entry.get("props"), entry.get("callback")
    elif isinstance(entry, tuple) and len(entry) == 2:
        props, callback = entry
    else:
        msg = f"Expecting a PropertyHandler, mapping, or (props, callback) pair, got {entry!r}"
        raise ConfigurationError(msg)
    if not callable(callback):
        msg = f"Property handler callback for {props!r} is not callable"
        raise ConfigurationError(msg)
    if isinstance(props, str):
        props = (props,)
    return PropertyHandler(tuple(props or ()), callback)


def normalize_handlers(handlers: Mapping[str, Any]) -> dict[str, HandlerSet]:
    """Upper-case methods and coerce handler lists into PropertyHandler tuples.

    Raises ``ConfigurationError`` for unsupported methods or malformed handlers.
    """
    normalized: dict[str, HandlerSet] = {}
    for method, handler in handlers.items():
        name = method.upper()
        if name not in HANDLER_METHODS:
            msg = f"Unsupported method {method!r}; expected one of {', '.join(HANDLER_METHODS)}"
            raise ConfigurationError(msg)
        if callable(handler):
            normalized[name] = handler
        elif isinstance(handler, (list, tuple)):
            normalized[name] = tuple(_property_handler(entry) for entry in handler)
        else:
            msg = f"Handler for {name} must be callable or a list of property handlers"
            raise ConfigurationError(msg)
    return normalized


def make_route(
    pattern: str,
    *,
    schema: Schema | None = None,
    handlers: Mapping[str, Any] | None = None,
    query: Mapping[str, Any] | str | None = None,
    alias: AliasTarget | None = None,
) -> Route:
    return Route(
        matcher=compile_pattern(pattern),
        schema=schema,
        query=parse_query_defaults(query),
        handlers=normalize_handlers(handlers or {}),
        alias=alias,
    )
