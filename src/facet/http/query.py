"""Query string parsing and building.

``props`` is not a query parameter: it is split off and returned separately
as the requested property paths (comma separated, may repeat)::

    parse_query("props=name,email&limit=10")
    # ({"limit": "10"}, ("name", "email"))

Keys ending in ``[]`` always collect into a list; for other keys the
first value wins.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode


def split_props(values: Iterable[str]) -> tuple[str, ...]:
    """Flatten comma separated ``props`` values, dropping blanks."""
    props: list[str] = []
    for value in values:
        props.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(props)


def parse_query(query_string: str) -> tuple[dict[str, Any], tuple[str, ...]]:
    """Parse *query_string* into ``(query, props)``."""
    query: dict[str, Any] = {}
    props: list[str] = []
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        if key == "props":
            props.append(value)
        elif key.endswith("[]"):
            query.setdefault(key, []).append(value)
        else:
            query.setdefault(key, value)
    return query, split_props(props)


def _encode_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def build_query_string(query: Mapping[str, Any] | None, props: Iterable[str] | None) -> str:
    """Inverse of ``parse_query``. Keys are sorted; non-string values are JSON encoded."""
    query = query or {}
    pairs: list[tuple[str, str]] = []
    for key in sorted(query):
        value = query[key]
        if value is None:
            continue
        if key.endswith("[]") and isinstance(value, list):
            pairs.extend((key, _encode_value(item)) for item in value)
        else:
            pairs.append((key, _encode_value(value)))
    props = tuple(props or ())
    if props:
        pairs.append(("props", ",".join(props)))
    return urlencode(pairs)
