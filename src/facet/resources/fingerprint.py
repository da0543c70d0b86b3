"""Weak ETags for collections.

A collection's fingerprint covers the identities of its items, the requested
props, and the rest of the query string. It does not cover item content, so
it stays stable while items change in place and moves when membership or
order changes.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from facet.resources.representable import represent

if TYPE_CHECKING:
    from facet.http.request import Request

_ETAG_RE = re.compile(r'^W/"[0-9a-f]+"$')


def _identity(item: Any) -> str | None:
    target = getattr(item, "target", None) if getattr(item, "is_link", False) else None
    if target:
        return target
    if isinstance(item, Mapping):
        return item.get("$link") or item.get("$id") or None
    return None


def fingerprint(collection: Any, request: Request) -> str | None:
    """Return ``W/"<sha256 hex>"`` for *collection*, or None if it has no stable identity.

    Requires ``$type == "collection"``, a truthy ``$id`` and ``$expires``, and
    every item to carry a link target or ``$id``. Never raises.
    """
    document = represent(collection)
    if not isinstance(document, Mapping) or document.get("$type") != "collection":
        return None
    if not document.get("$id") or not document.get("$expires"):
        return None
    items = document.get("items")
    if not isinstance(items, list):
        return None

    identities: list[str] = []
    for item in items:
        identity = _identity(item)
        if not isinstance(identity, str):
            return None
        identities.append(identity)

    props = sorted(request.props)
    query = sorted(
        token
        for token in request.query_string.split("&")
        if token and not token.startswith("props=")
    )
    canonical = json.dumps(
        [identities, props, query], separators=(",", ":"), ensure_ascii=False
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f'W/"{digest}"'


def is_valid(etag: str | None, collection: Any, request: Request) -> bool:
    """True if *etag* is well formed and equals the collection's current fingerprint."""
    if not etag or not _ETAG_RE.match(etag):
        return False
    current = fingerprint(collection, request)
    return current is not None and etag == current
