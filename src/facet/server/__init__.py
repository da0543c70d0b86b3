"""ASGI transport adapter for a facet router."""

from facet.server.app import ApiApp

__all__ = ["ApiApp"]
