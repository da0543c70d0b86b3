"""Facet: a declarative, schema-validated resource API engine.

Callers ask for a resource by path and the properties they want; facet runs
the handlers that can produce them, merges the partial results, resolves
links to other resources, validates the document against the route's JSON
Schema, and returns exactly what was asked for.

Basic usage::

    from facet import ApiApp, PropertyHandler, Router

    router = Router()
    router.route("/users/:id", user_schema, {
        "GET": [
            PropertyHandler(("name",), get_name),
            PropertyHandler(("friends",), get_friends),
        ],
    })

    app = ApiApp(router)

In-process calls go through a ``Connection``::

    user = await connection.get("/users/1", props=["name"])
"""

__version__ = "0.1.0"
__all__ = [
    "ApiApp",
    "ApiConfig",
    "ApiError",
    "Collection",
    "ConfigurationError",
    "Connection",
    "CursorPaginator",
    "FacetError",
    "HTTPError",
    "Link",
    "NotFound",
    "OffsetPaginator",
    "PropertyHandler",
    "Request",
    "RequestContext",
    "Resource",
    "Router",
    "TestClient",
    "Upload",
    "UploadError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import facet`` fast while providing a clean top-level API.
    """
    if name == "ApiApp":
        from facet.server.app import ApiApp

        return ApiApp

    if name == "ApiConfig":
        from facet.config import ApiConfig

        return ApiConfig

    if name in ("Router", "PropertyHandler"):
        from facet import routing

        return getattr(routing, name)

    if name == "Request":
        from facet.http.request import Request

        return Request

    if name == "RequestContext":
        from facet.context import RequestContext

        return RequestContext

    if name == "Connection":
        from facet.connection import Connection

        return Connection

    if name in ("Collection", "CursorPaginator", "Link", "OffsetPaginator", "Resource"):
        from facet import resources

        return getattr(resources, name)

    if name == "Upload":
        from facet.uploads import Upload

        return Upload

    if name == "TestClient":
        from facet.testing import TestClient

        return TestClient

    if name in (
        "ApiError",
        "ConfigurationError",
        "FacetError",
        "HTTPError",
        "NotFound",
        "UploadError",
    ):
        from facet import errors

        return getattr(errors, name)

    msg = f"module 'facet' has no attribute {name!r}"
    raise AttributeError(msg)
