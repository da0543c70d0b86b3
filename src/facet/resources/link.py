"""Links: deferred references to other resources.

A handler returns ``Link("/users/1")`` where a nested resource belongs. The
router resolves links after dispatch, fetching only the properties the
caller asked for that the link's pre-attached data does not already carry::

    Link("/users/1", {"name": "Ann"})
    # props=["owner.name"]  -> resolved from data, no fetch
    # props=["owner.email"] -> connection.get("/users/1", props=["email"])

Continuations registered with ``on_success``/``on_failure``/``on_settled``
run in registration order once the fetch settles. A failure continuation's
return value recovers the link; without one, ``resolve`` re-raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from facet._internal.invoke import invoke
from facet.merge import merge
from facet.resources.representable import Representable

if TYPE_CHECKING:
    from facet.connection import Connection

logger = logging.getLogger("facet.router")


class LinkState(StrEnum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class ContinuationKind(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    SETTLED = "settled"


class Link(Representable):
    """A reference to the resource at *target*, optionally with partial data."""

    __slots__ = ("continuations", "data", "error", "result", "state", "target")

    is_link = True

    def __init__(self, target: str, data: dict[str, Any] | None = None) -> None:
        if not isinstance(target, str) or not target:
            msg = f"Expecting link target to be a non-empty string, got {target!r}"
            raise TypeError(msg)
        self.target = target
        self.data: dict[str, Any] = dict(data) if data else {}
        self.state = LinkState.UNRESOLVED
        self.continuations: list[tuple[ContinuationKind, Callable[..., Any]]] = []
        self.result: Any = None
        self.error: Exception | None = None

    def __repr__(self) -> str:
        return f"Link({self.target!r}, state={self.state})"

    def to_representation(self) -> dict[str, Any]:
        return {"$link": self.target, **self.data}

    # -- Continuations --

    def on_success(self, handler: Callable[[Any], Any]) -> Link:
        """Transform the resolved value. ``handler(value) -> value``."""
        self.continuations.append((ContinuationKind.SUCCESS, handler))
        return self

    def on_failure(self, handler: Callable[[Exception], Any]) -> Link:
        """Recover from a failed fetch. ``handler(error) -> value``."""
        self.continuations.append((ContinuationKind.FAILURE, handler))
        return self

    def on_settled(self, handler: Callable[[], Any]) -> Link:
        """Run ``handler()`` whatever the outcome; the outcome is unchanged."""
        self.continuations.append((ContinuationKind.SETTLED, handler))
        return self

    # -- Resolution --

    async def resolve(
        self,
        connection: Connection,
        *,
        props: Sequence[str] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Any:
        """Hydrate the link and return the resolved value.

        Raises the fetch error when it fails and no failure continuation
        recovers it.
        """
        self.state = LinkState.RESOLVING
        value: Any = None
        error: Exception | None = None
        try:
            value = await self._fetch(connection, props, query)
        except Exception as exc:
            logger.debug("link %s failed: %r", self.target, exc)
            error = exc

        for kind, handler in self.continuations:
            try:
                if kind is ContinuationKind.SUCCESS and error is None:
                    value = await invoke(handler, value)
                elif kind is ContinuationKind.FAILURE and error is not None:
                    value = await invoke(handler, error)
                    error = None
                elif kind is ContinuationKind.SETTLED:
                    await invoke(handler)
            except Exception as exc:
                value, error = None, exc

        if error is not None:
            self.state = LinkState.FAILED
            self.error = error
            raise error
        self.state = LinkState.RESOLVED
        self.result = value
        return value

    async def _fetch(
        self,
        connection: Connection,
        props: Sequence[str] | None,
        query: dict[str, Any] | None,
    ) -> Any:
        from facet.props.projector import missing_properties

        if props:
            unmet = missing_properties(self.data, props)
            if not unmet:
                logger.debug("link %s satisfied by attached data", self.target)
                return merge(self.data)
            fetched = await connection.get(self.target, props=unmet, query=query)
        else:
            fetched = await connection.get(self.target, query=query)
        return merge(self.data, fetched)
