"""A single resource document with identity and expiry."""

from dataclasses import dataclass, field
from typing import Any

from facet.resources.representable import Representable


def check_count(name: str, value: Any) -> None:
    """Validate an optional non-negative integer attribute."""
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Expecting {name} to be an int or None, got {type(value).__name__}"
        raise TypeError(msg)
    if value < 0:
        msg = f"Expecting {name} to be 0 or greater"
        raise ValueError(msg)


@dataclass(slots=True)
class Resource(Representable):
    """A resource: ``{"$id": id, "$expires": expires, **data}``.

    Usage::

        return Resource("/users/1", {"name": "Ann"}, expires=60000)
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    expires: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str):
            msg = f"Expecting id to be a string, got {type(self.id).__name__}"
            raise TypeError(msg)
        check_count("expires", self.expires)

    def to_representation(self) -> dict[str, Any]:
        document: dict[str, Any] = {"$id": self.id}
        if self.expires is not None:
            document["$expires"] = self.expires
        document.update(self.data)
        return document
