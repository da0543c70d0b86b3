"""Locate the sub-schema addressed by a property path."""

from typing import Any

from facet.props.path import PropertyPath, parse_path


def _has_type(schema: Any, name: str) -> bool:
    if not isinstance(schema, dict):
        return False
    declared = schema.get("type")
    if isinstance(declared, list):
        return name in declared
    return declared == name


def _items_of(schema: Any) -> dict[str, Any] | None:
    if not isinstance(schema, dict):
        return None
    items = schema.get("items")
    return items if isinstance(items, dict) else None


def locate(schema: dict[str, Any] | None, path: str | PropertyPath) -> dict[str, Any] | None:
    """Return the sub-schema *path* points at, or None when it cannot be located.

    ``.`` descends into an object property; ``@`` descends into the items of
    an array property. A leading ``@`` on an array schema enters its items::

        locate(schema, "owner.name")   # schema.properties.owner.properties.name
        locate(schema, "items@name")   # schema.properties.items.items.properties.name
        locate(list_schema, "@name")   # list_schema.items.properties.name
    """
    segments = parse_path(path) if isinstance(path, str) else path
    if not segments or not isinstance(schema, dict):
        return None

    current: dict[str, Any] | None = schema
    if segments[0].pluck:
        current = _items_of(schema) if _has_type(schema, "array") else None

    for index, segment in enumerate(segments):
        if current is None:
            return None
        properties = current.get("properties")
        if not isinstance(properties, dict):
            return None
        child = properties.get(segment.key)
        if not isinstance(child, dict):
            return None
        if index == len(segments) - 1:
            return child

        following = segments[index + 1]
        if following.pluck:
            current = _items_of(child)
        elif _has_type(child, "object"):
            current = child
        else:
            return None
    return None
