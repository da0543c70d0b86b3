"""Resource value types: links, resources, collections, and their ETags."""

from facet.resources.collection import Collection, CursorPaginator, OffsetPaginator, Pagination
from facet.resources.fingerprint import fingerprint, is_valid
from facet.resources.link import ContinuationKind, Link, LinkState
from facet.resources.representable import Representable, materialize, represent
from facet.resources.resource import Resource

__all__ = [
    "Collection",
    "ContinuationKind",
    "CursorPaginator",
    "Link",
    "LinkState",
    "OffsetPaginator",
    "Pagination",
    "Representable",
    "Resource",
    "fingerprint",
    "is_valid",
    "materialize",
    "represent",
]
