"""Tests for facet.schema: validation and property error codes."""

import pytest
from jsonschema.exceptions import SchemaError

from facet.schema import check_schema, code_for, describe, format_error_path, validate
from facet.schema.codes import DEFAULT, NOT_IN_SCHEMA

SCHEMA = {
    "type": "object",
    "required": ["name"],
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string", "minLength": 2},
        "age": {"type": "integer", "minimum": 0},
        "score": {"type": "float"},
        "avatar": {"type": "file"},
        "items": {
            "type": "array",
            "items": {"type": "object", "properties": {"foo": {"type": "integer"}}},
        },
    },
}


class TestFormatErrorPath:
    def test_plain(self) -> None:
        assert format_error_path(["owner", "name"]) == "owner.name"

    def test_array_index(self) -> None:
        assert format_error_path(["items", 0, "foo"]) == "items@foo"

    def test_root_array(self) -> None:
        assert format_error_path([2, "name"]) == "@name"

    def test_empty(self) -> None:
        assert format_error_path([]) == ""


class TestValidate:
    def test_valid(self) -> None:
        outcome = validate(SCHEMA, {"name": "Ann", "age": 3})
        assert outcome.valid
        assert outcome.errors == ()

    def test_keyword_and_path(self) -> None:
        outcome = validate(SCHEMA, {"name": "Ann", "age": -1})
        assert not outcome.valid
        assert [(e.path, e.keyword) for e in outcome.errors] == [("age", "minimum")]

    def test_required_per_property(self) -> None:
        outcome = validate({"type": "object", "required": ["a", "b"]}, {})
        assert [(e.path, e.keyword) for e in outcome.errors] == [
            ("a", "required"),
            ("b", "required"),
        ]

    def test_required_ignored_when_partial(self) -> None:
        assert validate(SCHEMA, {"age": 1}, required=False).valid

    def test_additional_properties_per_key(self) -> None:
        outcome = validate(SCHEMA, {"name": "Ann", "x": 1, "y": 2})
        assert {(e.path, e.keyword) for e in outcome.errors} == {
            ("x", "additionalProperties"),
            ("y", "additionalProperties"),
        }

    def test_nested_array_path(self) -> None:
        outcome = validate(SCHEMA, {"name": "Ann", "items": [{"foo": 1}, {"foo": "x"}]})
        assert [(e.path, e.keyword) for e in outcome.errors] == [("items@foo", "type")]

    def test_float_type(self) -> None:
        assert validate(SCHEMA, {"name": "Ann", "score": 1.5}).valid
        assert not validate(SCHEMA, {"name": "Ann", "score": "high"}).valid

    def test_file_type_accepts_anything(self) -> None:
        assert validate(SCHEMA, {"name": "Ann", "avatar": b"raw"}).valid

    def test_messages(self) -> None:
        outcome = validate(SCHEMA, {"name": "A"})
        assert outcome.messages[0].startswith("name: ")

    def test_duplicates_removed(self) -> None:
        schema = {"type": "object", "properties": {"a": {"allOf": [{"type": "string"}, {"type": "string"}]}}}
        outcome = validate(schema, {"a": 1})
        assert len(outcome.errors) == 1


class TestCheckSchema:
    def test_custom_types_accepted(self) -> None:
        check_schema(SCHEMA)

    def test_invalid_schema(self) -> None:
        with pytest.raises(SchemaError):
            check_schema({"type": "object", "properties": {"a": {"type": 5}}})


class TestCodes:
    def test_code_for_keywords(self) -> None:
        assert code_for("type") == 105
        assert code_for("enum") == 110
        assert code_for("minimum") == 120
        assert code_for("exclusiveMinimum") == 120
        assert code_for("exclusiveMaximum") == 125
        assert code_for("required") == 180
        assert code_for("additionalProperties") == 185
        assert code_for("notInSchema") == 200

    def test_code_for_failed_cast(self) -> None:
        assert code_for(None) == 105

    def test_unknown_keyword_is_default(self) -> None:
        assert code_for("dependencies") == DEFAULT.code

    def test_describe_builtin(self) -> None:
        assert describe(200, {}) == NOT_IN_SCHEMA

    def test_describe_custom(self) -> None:
        sub = {"type": "string", "errorCodes": [{"code": 1001, "error": "TAKEN", "message": "Taken"}]}
        described = describe(1001, sub)
        assert described is not None
        assert described.entry("name") == {
            "property": "name",
            "code": 1001,
            "error": "TAKEN",
            "message": "Taken",
        }

    def test_describe_unknown_custom(self) -> None:
        assert describe(1002, {"errorCodes": []}) is None
        assert describe(1002, None) is None
