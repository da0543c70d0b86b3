"""Tests for facet.http: Request, query parsing, and headers."""

import pytest

from facet.http.headers import Headers
from facet.http.query import build_query_string, parse_query, split_props
from facet.http.request import Request


class TestParseQuery:
    def test_props_split_out(self) -> None:
        assert parse_query("props=name,email&limit=10") == ({"limit": "10"}, ("name", "email"))

    def test_repeated_props(self) -> None:
        assert parse_query("props=a&props=b,c")[1] == ("a", "b", "c")

    def test_first_value_wins(self) -> None:
        assert parse_query("a=1&a=2")[0] == {"a": "1"}

    def test_array_keys_collect(self) -> None:
        assert parse_query("ids[]=1&ids[]=2&ids[]=3")[0] == {"ids[]": ["1", "2", "3"]}

    def test_single_array_key_is_a_list(self) -> None:
        assert parse_query("ids[]=1")[0] == {"ids[]": ["1"]}

    def test_blank_values_kept(self) -> None:
        assert parse_query("q=")[0] == {"q": ""}

    def test_empty(self) -> None:
        assert parse_query("") == ({}, ())

    def test_split_props_drops_blanks(self) -> None:
        assert split_props(["a, ,b", ""]) == ("a", "b")


class TestBuildQueryString:
    def test_sorted_with_props_last(self) -> None:
        assert build_query_string({"b": "2", "a": "1"}, ["name"]) == "a=1&b=2&props=name"

    def test_non_string_values_json_encoded(self) -> None:
        assert build_query_string({"n": 5, "f": True}, None) == "f=true&n=5"

    def test_none_skipped(self) -> None:
        assert build_query_string({"a": None, "b": "x"}, ()) == "b=x"

    def test_array_keys_repeat(self) -> None:
        assert build_query_string({"ids[]": ["1", "2"]}, None) == "ids%5B%5D=1&ids%5B%5D=2"

    def test_round_trip(self) -> None:
        query, props = parse_query(build_query_string({"limit": "5"}, ["items@name"]))
        assert query == {"limit": "5"}
        assert props == ("items@name",)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers({"Content-Type": "application/json"})
        assert headers["content-type"] == "application/json"
        assert "CONTENT-TYPE" in headers
        assert headers.content_type == "application/json"

    def test_first_value_wins(self) -> None:
        headers = Headers([("X-A", "1"), ("x-a", "2")])
        assert headers["x-a"] == "1"
        assert len(headers) == 1

    def test_from_raw(self) -> None:
        headers = Headers.from_raw([(b"If-None-Match", b'W/"abc"')])
        assert headers.get("if-none-match") == 'W/"abc"'

    def test_non_string_key(self) -> None:
        assert 1 not in Headers({"a": "b"})


class TestRequest:
    def test_method_normalized(self) -> None:
        assert Request("get", "/users").method == "GET"

    def test_unsupported_method(self) -> None:
        with pytest.raises(ValueError, match="Unsupported method"):
            Request("TRACE", "/users")

    def test_frozen(self) -> None:
        request = Request("GET", "/users")
        with pytest.raises(AttributeError):
            request.path = "/other"  # type: ignore[misc]

    def test_from_url(self) -> None:
        request = Request.from_url("GET", "/users/1?props=name,email&x=1")
        assert request.path == "/users/1"
        assert request.props == ("name", "email")
        assert request.query == {"x": "1"}
        assert request.query_string == "props=name,email&x=1"
        assert request.url == "/users/1?props=name,email&x=1"

    def test_from_url_root(self) -> None:
        assert Request.from_url("GET", "?props=a").path == "/"

    def test_build_rebuilds_query_string(self) -> None:
        request = Request.build("GET", "/users", props=["name"], query={"limit": 5})
        assert request.query_string == "limit=5&props=name"
        assert request.url == "/users?limit=5&props=name"

    def test_with_path(self) -> None:
        request = Request.from_url("GET", "/a?props=x", etag='W/"1"')
        moved = request.with_path("/b")
        assert moved.path == "/b"
        assert moved.props == ("x",)
        assert moved.etag == 'W/"1"'

    def test_headers_wrapped(self) -> None:
        request = Request("POST", "/upload", headers={"Content-Type": "multipart/form-data; boundary=x"})
        assert isinstance(request.headers, Headers)
        assert request.is_multipart
        assert not request.is_get

    def test_url_without_query(self) -> None:
        assert Request("GET", "/users").url == "/users"
