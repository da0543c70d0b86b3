"""Tests for facet.routing.pattern and facet.routing.route."""

import pytest

from facet.errors import ConfigurationError
from facet.routing.pattern import PatternKey, compile_pattern
from facet.routing.route import PropertyHandler, make_route, normalize_handlers, parse_query_defaults


def _name(ctx, connection):
    return {"name": "Ann"}


def _friends(ctx, connection):
    return {"friends": []}


def _update(ctx, connection):
    return {}


class TestCompilePattern:
    def test_static(self) -> None:
        pattern = compile_pattern("/users")
        assert pattern.match("/users") == ()
        assert pattern.match("/users/") == ()
        assert pattern.match("/people") is None

    def test_named_capture(self) -> None:
        pattern = compile_pattern("/users/:id")
        assert pattern.keys == (PatternKey("id"),)
        assert pattern.match("/users/42") == ("42",)
        assert pattern.match("/users/42/posts") is None
        assert pattern.match("/users") is None

    def test_optional_capture(self) -> None:
        pattern = compile_pattern("/users/:id?")
        assert pattern.keys == (PatternKey("id", optional=True),)
        assert pattern.match("/users") == (None,)
        assert pattern.match("/users/7") == ("7",)

    def test_multiple_captures(self) -> None:
        pattern = compile_pattern("/users/:user/posts/:post")
        assert pattern.params("/users/1/posts/2") == {"user": "1", "post": "2"}
        assert pattern.params("/users/1") is None

    def test_case_insensitive(self) -> None:
        assert compile_pattern("/Users").match("/users") == ()

    def test_special_characters_escaped(self) -> None:
        assert compile_pattern("/a.b").match("/axb") is None

    def test_root(self) -> None:
        assert compile_pattern("/").match("/") == ()


class TestRoute:
    def test_methods_in_documentation_order(self) -> None:
        route = make_route("/users/:id", handlers={"patch": _update, "GET": _name})
        assert route.methods == ("GET", "PATCH", "OPTIONS")

    def test_keys(self) -> None:
        route = make_route("/users/:id/posts/:post?")
        assert route.pattern == "/users/:id/posts/:post?"
        assert route.keys == (PatternKey("id"), PatternKey("post", optional=True))

    def test_document(self) -> None:
        schema = {"type": "object"}
        route = make_route("/users", schema=schema, handlers={"GET": _name})
        assert route.document() == {"pattern": "/users", "methods": ["GET", "OPTIONS"], "schema": schema}

    def test_collection_schema(self) -> None:
        item = {"type": "object", "properties": {"name": {"type": "string"}}}
        schema = {"type": "object", "properties": {"items": {"type": "array", "items": item}}}
        route = make_route("/users", schema=schema)
        assert route.is_collection
        assert route.item_schema is item

    def test_not_a_collection(self) -> None:
        route = make_route("/users/:id", schema={"type": "object", "properties": {}})
        assert not route.is_collection
        assert route.item_schema is None

    def test_alias(self) -> None:
        route = make_route("/me", alias="/users/1")
        assert route.is_alias
        assert not route.can_handle("GET")


class TestSelectHandlers:
    def _route(self):
        return make_route(
            "/users/:id",
            handlers={
                "GET": [PropertyHandler(("name", "email"), _name), PropertyHandler(("friends",), _friends)],
                "PATCH": [PropertyHandler(("name",), _update)],
                "DELETE": _update,
            },
        )

    def test_single_callback(self) -> None:
        assert self._route().select_handlers("DELETE", ["anything"]) == [_update]

    def test_by_props(self) -> None:
        assert self._route().select_handlers("GET", ["email"]) == [_name]

    def test_nested_props_use_top_level_key(self) -> None:
        assert self._route().select_handlers("GET", ["friends@name"]) == [_friends]

    def test_all_when_no_props(self) -> None:
        assert self._route().select_handlers("GET", []) == [_name, _friends]

    def test_none_matching(self) -> None:
        assert self._route().select_handlers("GET", ["age"]) == []

    def test_patch_uses_body_keys(self) -> None:
        assert self._route().select_handlers("PATCH", ["email"], {"name": "Bo"}) == [_update]

    def test_patch_empty_body(self) -> None:
        assert self._route().select_handlers("PATCH", [], {}) is None

    def test_missing_method(self) -> None:
        assert self._route().select_handlers("POST", []) == []


class TestNormalizeHandlers:
    def test_pairs_and_mappings(self) -> None:
        normalized = normalize_handlers(
            {"get": [("name", _name), {"props": ["friends"], "callback": _friends}]}
        )
        assert normalized["GET"] == (
            PropertyHandler(("name",), _name),
            PropertyHandler(("friends",), _friends),
        )

    def test_unsupported_method(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported method"):
            normalize_handlers({"TRACE": _name})

    def test_options_not_registrable(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_handlers({"OPTIONS": _name})

    def test_malformed_entry(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_handlers({"GET": ["name"]})

    def test_uncallable(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_handlers({"GET": 5})
        with pytest.raises(ConfigurationError):
            normalize_handlers({"GET": [("name", "not callable")]})


class TestQueryDefaults:
    def test_string(self) -> None:
        assert parse_query_defaults("limit=10&cursor=") == {"limit": "10", "cursor": ""}

    def test_leading_question_mark(self) -> None:
        assert parse_query_defaults("?a=1") == {"a": "1"}

    def test_mapping(self) -> None:
        assert parse_query_defaults({"limit": 10, "q": None}) == {"limit": 10, "q": ""}

    def test_none(self) -> None:
        assert parse_query_defaults(None) == {}
