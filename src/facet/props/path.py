"""Property path grammar.

A property path addresses a value inside a resource document::

    "name"             -> name
    "owner.name"       -> owner, then its "name"
    "items@name"       -> items, then "name" of every item
    "@name"            -> "name" of every item of a root array
    "a@b.c@d"          -> consumed left to right: a, @b, .c, @d

Each ``Segment`` records the separator that led to it: ``pluck=True`` means
it was reached through ``@`` (descend into array items first). The schema
locator and the projector both consume this structure, so they agree on
traversal by construction.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

_TOKEN_RE = re.compile(r"([.@])")


@dataclass(frozen=True, slots=True)
class Segment:
    """One step of a property path."""

    key: str
    pluck: bool = False

    def __str__(self) -> str:
        return f"@{self.key}" if self.pluck else self.key


type PropertyPath = tuple[Segment, ...]


@lru_cache(maxsize=1024)
def parse_path(path: str) -> PropertyPath:
    """Parse a property path string into segments.

    Empty keys produced by doubled separators (``a..b``) are dropped; a
    separator only affects the segment that follows it.
    """
    segments: list[Segment] = []
    pluck = False
    for token in _TOKEN_RE.split(path):
        if token == "@":
            pluck = True
        elif token == ".":
            pluck = False
        elif token:
            segments.append(Segment(token, pluck))
            pluck = False
    return tuple(segments)


def format_path(path: PropertyPath) -> str:
    """Inverse of ``parse_path``."""
    parts: list[str] = []
    for index, segment in enumerate(path):
        if segment.pluck:
            parts.append(f"@{segment.key}")
        elif index:
            parts.append(f".{segment.key}")
        else:
            parts.append(segment.key)
    return "".join(parts)


def unpluck(path: PropertyPath) -> PropertyPath:
    """Drop the leading ``@`` of *path*: the caller has entered an array item."""
    if path and path[0].pluck:
        return (Segment(path[0].key), *path[1:])
    return path


def top_level_key(path: str) -> str:
    """The first key of *path* (``"items@foo"`` -> ``"items"``)."""
    parsed = parse_path(path)
    return parsed[0].key if parsed else ""
