"""Property projection ("pluck").

Projects a resource value down to the requested property paths. Keys that
start with ``$`` are metadata and always survive. Unsatisfiable paths turn
the whole result into an error value rather than raising::

    pluck({"name": "Ann", "age": 3}, ["name"])
    # {"name": "Ann"}

    pluck({"name": "Ann"}, ["email"])
    # {"$error": "property not found", "$missing": ["email"]}
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from facet.props.path import PropertyPath, parse_path, unpluck
from facet.resources.representable import Representable

ERROR_PROPERTY_NOT_FOUND = "property not found"

# (request index, original path string, remaining segments)
type _Entry = tuple[int, str, PropertyPath]


def is_missing(value: Any) -> bool:
    """True if *value* is the error value produced by ``pluck``."""
    return (
        isinstance(value, Mapping)
        and value.get("$error") == ERROR_PROPERTY_NOT_FOUND
        and "$missing" in value
    )


def is_link_like(value: Any) -> bool:
    """Links and ``{"$link": ...}`` documents are never projected."""
    if isinstance(value, Mapping):
        return "$link" in value
    return getattr(value, "is_link", False) is True


def pluck(value: Any, props: Iterable[str] | None) -> Any:
    """Project *value* down to *props*.

    Empty or absent *props* return *value* unchanged.
    """
    entries = _entries(props)
    if not entries:
        return value
    missing: set[int] = set()
    result = _project(value, entries, missing)
    if missing:
        return _missing_value(entries, missing)
    return result


def missing_properties(value: Any, props: Iterable[str] | None) -> list[str]:
    """The subset of *props* that *value* cannot satisfy, in request order.

    A ``None`` value satisfies nothing.
    """
    entries = _entries(props)
    if value is None:
        return [original for _, original, _ in entries]
    missing: set[int] = set()
    _project(value, entries, missing)
    return [original for index, original, _ in entries if index in missing]


def _entries(props: Iterable[str] | None) -> list[_Entry]:
    if not props:
        return []
    entries: list[_Entry] = []
    for index, original in enumerate(props):
        segments = parse_path(original)
        if segments:
            entries.append((index, original, segments))
    return entries


def _missing_value(entries: list[_Entry], missing: set[int]) -> dict[str, Any]:
    return {
        "$error": ERROR_PROPERTY_NOT_FOUND,
        "$missing": [original for index, original, _ in entries if index in missing],
    }


def _project(value: Any, entries: list[_Entry], missing: set[int]) -> Any:
    if value is None or is_link_like(value):
        return value
    if isinstance(value, Representable):
        value = value.to_representation()
        if is_link_like(value):
            return value

    if isinstance(value, Mapping):
        return _project_mapping(value, entries, missing)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        reduced = [(index, original, unpluck(segments)) for index, original, segments in entries]
        return [_project(item, reduced, missing) for item in value]

    # Scalars have nothing left to descend into
    missing.update(index for index, _, _ in entries)
    return value


def _project_mapping(
    value: Mapping[str, Any],
    entries: list[_Entry],
    missing: set[int],
) -> dict[str, Any]:
    projected: dict[str, Any] = {key: item for key, item in value.items() if key.startswith("$")}

    leaves: set[str] = set()
    nested: dict[str, list[_Entry]] = {}
    for index, original, segments in entries:
        head = segments[0]
        if head.pluck:
            # "@key" asks for array items; a mapping has none
            missing.add(index)
            continue
        if head.key not in value:
            missing.add(index)
            continue
        if len(segments) == 1:
            leaves.add(head.key)
            projected[head.key] = value[head.key]
        else:
            nested.setdefault(head.key, []).append((index, original, segments[1:]))

    for key, remainders in nested.items():
        sub = _project(value[key], remainders, missing)
        if key not in leaves:
            projected[key] = sub
    return projected
