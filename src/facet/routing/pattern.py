"""Express-style path patterns.

Patterns are ``/``-separated segments; ``:name`` captures one segment and
``:name?`` captures an optional one. A trailing slash is optional and
matching is case-insensitive::

    compile_pattern("/users/:id").match("/users/42")       # ("42",)
    compile_pattern("/users/:id?").match("/users")         # (None,)
    compile_pattern("/users/:id").match("/users/42/posts") # None
"""

import re
from dataclasses import dataclass
from functools import lru_cache

_PARAM_RE = re.compile(r"^:(\w+)(\?)?$")


@dataclass(frozen=True, slots=True)
class PatternKey:
    """A named capture in a path pattern."""

    name: str
    optional: bool = False


@dataclass(frozen=True, slots=True)
class PathPattern:
    """A compiled pattern: the source string, its regex, and its named keys."""

    pattern: str
    regex: re.Pattern[str]
    keys: tuple[PatternKey, ...]

    def match(self, path: str) -> tuple[str | None, ...] | None:
        """Return the captured values in key order, or None if *path* does not match."""
        found = self.regex.match(path)
        if found is None:
            return None
        return found.groups()

    def params(self, path: str) -> dict[str, str | None] | None:
        """Return captures keyed by name, or None if *path* does not match."""
        values = self.match(path)
        if values is None:
            return None
        return {key.name: value for key, value in zip(self.keys, values, strict=True)}


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> PathPattern:
    """Compile an express-style *pattern* into a ``PathPattern``."""
    keys: list[PatternKey] = []
    parts: list[str] = []
    for segment in pattern.strip("/").split("/"):
        if not segment:
            continue
        param = _PARAM_RE.match(segment)
        if param is None:
            parts.append("/" + re.escape(segment))
            continue
        name, optional = param.group(1), bool(param.group(2))
        keys.append(PatternKey(name, optional))
        parts.append(r"(?:/([^/]+?))?" if optional else r"/([^/]+?)")
    source = "^" + "".join(parts) + "/?$"
    return PathPattern(pattern=pattern, regex=re.compile(source, re.IGNORECASE), keys=tuple(keys))
