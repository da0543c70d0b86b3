"""Property error codes.

Each JSON-Schema keyword maps to a numeric code reported in property error
entries. Codes of 1000 and above are application-defined and looked up in
the ``errorCodes`` list of the sub-schema the property points at::

    {"type": "string", "errorCodes": [
        {"code": 1001, "error": "TAKEN", "message": "Username is taken"},
    ]}
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ErrorCode:
    code: int
    error: str
    message: str

    def entry(self, prop: str) -> dict[str, Any]:
        """A property error entry for *prop*."""
        return {"property": prop, "code": self.code, "error": self.error, "message": self.message}


DEFAULT = ErrorCode(100, "INVALID", "Provided resource did not validate with schema")
NOT_IN_SCHEMA = ErrorCode(200, "INVALID", "Property is not defined in the schema")

FIRST_CUSTOM_CODE = 1000

BY_KEYWORD: dict[str, ErrorCode] = {
    "default": DEFAULT,
    "type": ErrorCode(105, "INVALID", "Property is of incorrect type"),
    "enum": ErrorCode(110, "INVALID", "Property contains invalid enum value"),
    "minimum": ErrorCode(120, "INVALID", "Property is below minimum allowed value"),
    "maximum": ErrorCode(125, "INVALID", "Property is above maximum allowed value"),
    "multipleOf": ErrorCode(130, "INVALID", "Property is not a multiple of the specified value"),
    "minLength": ErrorCode(
        140, "INVALID", "Property is below the minimum allowed string length"
    ),
    "maxLength": ErrorCode(
        145, "INVALID", "Property is above the maximum allowed string length"
    ),
    "pattern": ErrorCode(
        150, "INVALID", "Property does not match the specified regular expression's pattern"
    ),
    "format": ErrorCode(
        155, "INVALID", "Property does not match form that the value must conform to"
    ),
    "minItems": ErrorCode(
        160,
        "INVALID",
        "Property does not contain the minimum number of items required in the array",
    ),
    "maxItems": ErrorCode(
        165,
        "INVALID",
        "Property does not contain the maximum number of items required in the array",
    ),
    "additionalItems": ErrorCode(
        170, "INVALID", "Resource contains additional items that are not defined in the schema"
    ),
    "uniqueItems": ErrorCode(175, "INVALID", "Property contains duplicate items in the array"),
    "required": ErrorCode(180, "INVALID", "Does not contain a required property"),
    "additionalProperties": ErrorCode(
        185, "INVALID", "Resource contains additional properties that are not defined in the schema"
    ),
    "notInSchema": NOT_IN_SCHEMA,
}

# Draft 6+ spell the exclusive bounds as their own keywords
BY_KEYWORD["exclusiveMinimum"] = BY_KEYWORD["minimum"]
BY_KEYWORD["exclusiveMaximum"] = BY_KEYWORD["maximum"]

BY_CODE: dict[int, ErrorCode] = {error.code: error for error in BY_KEYWORD.values()}

TYPE = BY_KEYWORD["type"]
ENUM = BY_KEYWORD["enum"]


def code_for(keyword: str | None) -> int:
    """The numeric code for a JSON-Schema *keyword*.

    No keyword means a failed cast (``type``); unknown keywords map to ``default``.
    """
    if keyword is None:
        return TYPE.code
    return BY_KEYWORD.get(keyword, DEFAULT).code


def describe(code: int, sub_schema: dict[str, Any] | None) -> ErrorCode | None:
    """Resolve *code* against the built-in table or *sub_schema*'s ``errorCodes``.

    Returns None for an application code the sub-schema does not declare.
    """
    if code >= FIRST_CUSTOM_CODE:
        if not sub_schema:
            return None
        for declared in sub_schema.get("errorCodes") or ():
            if declared.get("code") == code:
                error = declared.get("error", "INVALID")
                return ErrorCode(code, error, declared.get("message", ""))
        return None
    return BY_CODE.get(code)
