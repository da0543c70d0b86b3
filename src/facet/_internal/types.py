"""Shared type aliases used across facet modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: receives (ctx, connection), returns a value or awaitable
Handler: TypeAlias = Callable[..., Any]

# Post-route hook: receives the final result, returns the replacement
PostRoute: TypeAlias = Callable[[Any], Any]

# JSON Schema document
Schema: TypeAlias = dict[str, Any]
