"""Per-call request context.

A ``RequestContext`` is what a handler receives as its first argument. It
holds the cast and validated path params, query, and body of one call, the
property errors found while casting them, and the upload stream of a
multipart request::

    async def update_user(ctx, connection):
        if ctx.body.get("name") == "root":
            ctx.add_property_error("name", 1001)
            raise ctx.error(422, "Reserved name")
        return ctx.status(202, {"name": ctx.body["name"]})

Casting follows the route schema: strings from the URL become booleans,
integers, and floats where the schema says so; ``[]``/``{}`` query keys and
JSON strings become arrays and objects. Anything that does not fit is
recorded as a property error instead of raising, so one response can report
every bad property at once.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from facet._internal.types import Schema
from facet.errors import ERROR_UNKNOWN, ApiError, UploadError, UploadReason
from facet.http.request import Request
from facet.props.locator import locate
from facet.schema import codes
from facet.schema.codes import ErrorCode
from facet.schema.validator import validate
from facet.uploads import Upload, UploadStream

if TYPE_CHECKING:
    from facet.routing.route import Route

_INTEGER_RE = re.compile(r"^-?[0-9]+$")
_FLOAT_RE = re.compile(r"^-?[0-9.]+$")

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class CastError(ValueError):
    """A value could not be cast to its schema type; ``code`` is the error code."""

    def __init__(self, code: int) -> None:
        super().__init__(code)
        self.code = code


def _types(schema: Mapping[str, Any]) -> list[str]:
    declared = schema.get("type")
    if isinstance(declared, str):
        return [declared]
    if isinstance(declared, list):
        return [str(item) for item in declared]
    return []


def _is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _cast_type(value: Any, types: list[str]) -> Any:
    if "boolean" in types and not _is_int(value):
        if value in ("true", True):
            return True
        if value in ("false", False):
            return False
    text = str(value)
    numeric = not isinstance(value, bool)
    if "integer" in types and numeric and _INTEGER_RE.match(text):
        return int(text)
    if ("number" in types or "float" in types) and numeric and _FLOAT_RE.match(text):
        try:
            return float(text)
        except ValueError:
            pass
    if "string" in types:
        if value is None or _is_container(value):
            return value
        return text
    raise CastError(codes.TYPE.code)


def cast_value(value: Any, schema: Mapping[str, Any]) -> Any:
    """Cast a scalar *value* to the type *schema* declares.

    Tried in order: null, boolean, integer, number/float, string. Raises
    ``CastError`` with the ``type`` or ``enum`` code on failure.
    """
    types = _types(schema)
    if value is None and "null" in types:
        return None
    cast = value
    if types and "file" not in types:
        cast = _cast_type(value, types)

    enum = schema.get("enum")
    if isinstance(enum, list) and cast not in enum:
        raise CastError(codes.ENUM.code)
    return cast


def _is_int(value: Any) -> bool:
    # ints compare equal to booleans
    return isinstance(value, int) and not isinstance(value, bool)


def clean_key(key: str) -> str:
    """Strip a ``[]``/``{}`` suffix from a query key."""
    if key.endswith(("[]", "{}")):
        return key[:-2]
    return key


def strip_metadata(value: Any) -> Any:
    """Copy of *value* with every ``$``-prefixed key removed, recursively."""
    if isinstance(value, Mapping):
        return {
            key: strip_metadata(item) for key, item in value.items() if not str(key).startswith("$")
        }
    if isinstance(value, list):
        return [strip_metadata(item) for item in value]
    return value


class RequestContext:
    """Mutable per-call state: the cast request data and its property errors."""

    __slots__ = (
        "_seen_errors",
        "_uploads",
        "body",
        "params",
        "property_errors",
        "props",
        "query",
        "request",
        "route",
        "schema",
        "target_schema",
    )

    def __init__(self, request: Request, route: Route) -> None:
        self.request = request
        self.route = route
        self.schema: Schema = route.schema or {}
        self.target_schema: Schema = self.schema
        if request.method == "POST" and route.is_collection:
            self.target_schema = route.item_schema or {}
        self.props: list[str] = list(request.props)
        self.params: dict[str, Any] = {}
        self.query: dict[str, Any] = dict(request.query)
        self.body: Any = request.body
        self.property_errors: list[dict[str, Any]] = []
        self._seen_errors: set[tuple[str, int]] = set()
        self._uploads: UploadStream | None = None

    def __repr__(self) -> str:
        return f"RequestContext({self.method} {self.path!r}, props={self.props!r})"

    # -- Request shortcuts --

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def etag(self) -> str | None:
        return self.request.etag

    @property
    def is_collection_post(self) -> bool:
        return self.target_schema is not self.schema

    # -- Casting and validation --

    def prepare(self) -> None:
        """Apply query defaults, capture path params, and cast everything.

        Property errors accumulate in ``property_errors``; nothing raises.
        """
        captures = self._capture_params()

        if self.request.is_get:
            self._apply_query_defaults()
            self.query = self._cast_and_validate(self.query, self.schema, from_query=True)

        self.params = self._cast_params(captures)
        self.query.update(self.params)

        if self.method in BODY_METHODS and self.body is not None:
            self.body = strip_metadata(self.body)
            if isinstance(self.body, Mapping):
                self.body = self._cast_and_validate(
                    self.body,
                    self.target_schema,
                    from_query=False,
                    required=self.method in ("POST", "PUT"),
                )
            else:
                self._validate(self.body, self.target_schema, required=True)

    def _capture_params(self) -> dict[str, str | None]:
        return self.route.matcher.params(self.request.path) or {}

    def _apply_query_defaults(self) -> None:
        declared = self.route.query
        for key, default in declared.items():
            if key not in self.query and default != "":
                self.query[key] = default
        allowed = {clean_key(key) for key in declared}
        self.query = {key: value for key, value in self.query.items() if clean_key(key) in allowed}

    def _cast_params(self, captures: dict[str, str | None]) -> dict[str, Any]:
        properties = self.schema.get("properties") or {}
        params: dict[str, Any] = {}
        for name, value in captures.items():
            sub = properties.get(name)
            if value is None or not isinstance(sub, dict):
                params[name] = value
                continue
            try:
                params[name] = cast_value(value, sub)
            except CastError as exc:
                self._add_error(name, exc.code, self.schema)
                params[name] = value

        in_schema = {
            name: value
            for name, value in params.items()
            if value is not None and name in properties
        }
        if in_schema:
            self._validate(in_schema, self.schema, required=False)
        return params

    def _cast_and_validate(
        self,
        data: Mapping[str, Any],
        schema: Schema,
        *,
        from_query: bool,
        required: bool = False,
    ) -> dict[str, Any]:
        if not schema:
            return dict(data)
        if not data and not required:
            return {}
        cast = self._cast_object(data, schema, "", from_query=from_query, schema_root=schema)
        self._validate(cast, schema, required=required)
        return cast

    def _cast_object(
        self,
        data: Mapping[str, Any],
        schema: Mapping[str, Any],
        prefix: str,
        *,
        from_query: bool,
        schema_root: Schema,
    ) -> dict[str, Any]:
        properties = schema.get("properties") or {}
        cast: dict[str, Any] = {}
        for raw_key, value in data.items():
            if str(raw_key).startswith("$"):
                continue
            if from_query:
                is_array, is_object = raw_key.endswith("[]"), raw_key.endswith("{}")
                key = clean_key(raw_key)
            else:
                is_array, is_object = isinstance(value, list), isinstance(value, dict)
                key = raw_key
            name = prefix + key

            sub = properties.get(key)
            if not isinstance(sub, dict):
                self._add_error(name, codes.NOT_IN_SCHEMA.code, schema_root)
                continue

            declared = _types(sub)
            if not from_query and isinstance(value, str) and "string" not in declared:
                # JSON-encoded container in a body
                is_array = "array" in declared
                is_object = not is_array and "object" in declared

            if is_array or is_object:
                expected = "array" if is_array else "object"
                decoded = self._decode_container(value, sub, expected)
                if decoded is None:
                    self._add_error(name, codes.TYPE.code, schema_root)
                    continue
                if is_array:
                    cast[key] = self._cast_items(decoded, sub, name, schema_root)
                elif "properties" not in sub:
                    cast[key] = decoded
                else:
                    cast[key] = self._cast_object(
                        decoded, sub, name + ".", from_query=False, schema_root=schema_root
                    )
                continue

            try:
                cast[key] = cast_value(value, sub)
            except CastError as exc:
                self._add_error(name, exc.code, schema_root)
                cast[key] = value
        return cast

    def _decode_container(self, value: Any, schema: Mapping[str, Any], expected: str) -> Any:
        container = list if expected == "array" else dict
        if expected not in _types(schema):
            return None
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        return value if isinstance(value, container) else None

    def _cast_items(
        self,
        items: list[Any],
        schema: Mapping[str, Any],
        name: str,
        schema_root: Schema,
    ) -> list[Any]:
        item_schema = schema.get("items")
        if not isinstance(item_schema, dict):
            return list(items)
        cast: list[Any] = []
        for item in items:
            if _is_container(item):
                cast.append(item)
                continue
            try:
                cast.append(cast_value(item, item_schema))
            except CastError as exc:
                self._add_error(name, exc.code, schema_root)
                cast.append(item)
        return cast

    def _validate(self, value: Any, schema: Schema, *, required: bool) -> None:
        if not schema:
            return
        outcome = validate(schema, value, required=required)
        for violation in outcome.errors:
            self._add_error(violation.path, codes.code_for(violation.keyword), schema)

    # -- Property errors --

    def _add_error(self, prop: str, code: int, schema: Schema | None) -> None:
        if self.is_collection_post and prop.startswith("items@"):
            prop = prop[len("items@") :]

        sub = locate(schema, prop) if prop else schema
        described: ErrorCode | None
        if sub is None:
            described = codes.NOT_IN_SCHEMA
        else:
            described = codes.describe(code, sub)
            if described is None:
                described = ErrorCode(code, codes.DEFAULT.error, codes.DEFAULT.message)

        key = (prop, described.code)
        if key in self._seen_errors:
            return
        self._seen_errors.add(key)
        self.property_errors.append(described.entry(prop))

    def add_property_error(self, prop: str, code: int) -> None:
        """Record an error for *prop*; duplicates of ``(prop, code)`` are ignored.

        Codes of 1000 and above are looked up in the property's
        ``errorCodes``; a property missing from the schema is reported as
        not-in-schema.
        """
        self._add_error(prop, code, self.target_schema)

    @property
    def has_property_errors(self) -> bool:
        return bool(self.property_errors)

    def error(self, status: int, message: str | None = None) -> ApiError:
        """An ``ApiError`` carrying the accumulated property errors. Raise it."""
        return ApiError(
            status=status,
            detail=message or ERROR_UNKNOWN,
            properties=tuple(dict(entry) for entry in self.property_errors),
        )

    def property_error(
        self,
        prop: str,
        code: int,
        status: int = 422,
        message: str | None = None,
    ) -> ApiError:
        """Shortcut for ``add_property_error`` followed by ``error``."""
        self.add_property_error(prop, code)
        return self.error(status, message)

    @staticmethod
    def status(code: int, body: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """A result with an explicit HTTP status: ``{"$httpStatus": code, **body}``."""
        return {"$httpStatus": code, **(body or {})}

    # -- Uploads --

    def uploads(self) -> UploadStream:
        """The upload stream of a multipart request; raises ``NOT_MULTIPART`` otherwise."""
        if self._uploads is None:
            if not self.request.is_multipart or self.request.stream is None:
                msg = "Request does not carry a multipart/form-data body."
                raise UploadError(msg, UploadReason.NOT_MULTIPART)
            self._uploads = UploadStream(
                self.request.stream, self.request.content_type, self.schema
            )
        return self._uploads

    async def get_upload(self, field_name: str) -> Upload:
        return await self.uploads().get_upload(field_name)

    async def get_all_uploads(self, field_name: str | None = None) -> list[Upload]:
        return await self.uploads().get_all_uploads(field_name)
