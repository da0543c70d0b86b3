"""Routing: express-style path patterns, routes, and the dispatching router.

Routes are registered during setup and tried in registration order; the
table freezes on the first handled request.
"""

from facet.routing.pattern import PathPattern, PatternKey, compile_pattern
from facet.routing.route import PropertyHandler, Route
from facet.routing.router import Router

__all__ = [
    "PathPattern",
    "PatternKey",
    "PropertyHandler",
    "Route",
    "Router",
    "compile_pattern",
]
