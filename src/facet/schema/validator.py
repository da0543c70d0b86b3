"""JSON-Schema validation boundary.

Wraps ``jsonschema`` so the rest of facet sees violations as
``(path, keyword)`` pairs, where *path* uses the property path grammar
(``items@name``) instead of JSON pointers.

Two non-standard types are accepted: ``float`` (an alias of ``number``) and
``file`` (a multipart upload field, which never appears in JSON bodies).
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft7Validator, validators
from jsonschema.exceptions import ValidationError

_BASE_CHECKER = Draft7Validator.TYPE_CHECKER

FacetValidator = validators.extend(
    Draft7Validator,
    type_checker=_BASE_CHECKER.redefine_many(
        {
            "float": lambda checker, instance: _BASE_CHECKER.is_type(instance, "number"),
            "file": lambda checker, instance: True,
        }
    ),
)

_TYPE_ALIASES = {"float": "number", "file": "string"}


@dataclass(frozen=True, slots=True)
class Violation:
    """One failed constraint: where, which keyword, and jsonschema's message."""

    path: str
    keyword: str
    message: str = ""


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    valid: bool
    errors: tuple[Violation, ...] = ()

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(f"{error.path or '<root>'}: {error.message}" for error in self.errors)


def format_error_path(parts: Iterable[str | int]) -> str:
    """Render a jsonschema ``absolute_path`` in property path grammar.

    ``["items", 0, "name"]`` -> ``"items@name"``; ``[0, "name"]`` -> ``"@name"``.
    """
    rendered = ""
    pluck = False
    for part in parts:
        if isinstance(part, int):
            pluck = True
            continue
        if pluck:
            rendered += f"@{part}"
        elif rendered:
            rendered += f".{part}"
        else:
            rendered = str(part)
        pluck = False
    return rendered


def _join(base: str, key: str) -> str:
    return f"{base}.{key}" if base else key


def _normalize_types(schema: Any) -> Any:
    if isinstance(schema, Mapping):
        normalized = {}
        for key, value in schema.items():
            if key == "type" and isinstance(value, str):
                normalized[key] = _TYPE_ALIASES.get(value, value)
            elif key == "type" and isinstance(value, list):
                normalized[key] = [_TYPE_ALIASES.get(item, item) for item in value]
            else:
                normalized[key] = _normalize_types(value)
        return normalized
    if isinstance(schema, list):
        return [_normalize_types(item) for item in schema]
    return schema


def check_schema(schema: Mapping[str, Any]) -> None:
    """Raise ``jsonschema.SchemaError`` if *schema* is not a valid JSON Schema."""
    FacetValidator.check_schema(_normalize_types(schema))


def _violations(error: ValidationError) -> list[Violation]:
    path = format_error_path(error.absolute_path)
    keyword = str(error.validator)
    instance = error.instance

    if keyword == "required" and isinstance(instance, Mapping):
        names = [name for name in error.validator_value if name not in instance]
        return [Violation(_join(path, name), keyword, error.message) for name in names]

    if keyword == "additionalProperties" and isinstance(instance, Mapping):
        declared = error.schema.get("properties") or {}
        patterns = error.schema.get("patternProperties") or {}
        extras = [
            name
            for name in instance
            if name not in declared and not any(re.search(p, name) for p in patterns)
        ]
        return [Violation(_join(path, name), keyword, error.message) for name in extras]

    return [Violation(path, keyword, error.message)]


def validate(
    schema: Mapping[str, Any],
    value: Any,
    *,
    required: bool = True,
) -> ValidationOutcome:
    """Validate *value* against *schema*.

    With ``required=False`` the top-level ``required`` list is ignored, for
    partial documents such as query strings and PATCH bodies.
    """
    if not required and "required" in schema:
        schema = {key: item for key, item in schema.items() if key != "required"}

    errors: list[Violation] = []
    seen: set[tuple[str, str]] = set()
    for error in FacetValidator(schema).iter_errors(value):
        for violation in _violations(error):
            key = (violation.path, violation.keyword)
            if key not in seen:
                seen.add(key)
                errors.append(violation)
    return ValidationOutcome(valid=not errors, errors=tuple(errors))
