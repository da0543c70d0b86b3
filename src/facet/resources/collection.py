"""Collections of resources, with offset or cursor pagination.

A collection's pagination mode is fixed at construction. The accessors of
the other mode raise ``PaginationError``::

    page = OffsetPaginator("/users", items=[Link("/users/1")], limit=10, offset=0)
    page.cursor  # PaginationError
"""

from collections.abc import Iterable, Iterator
from enum import StrEnum
from typing import Any

from facet.errors import PaginationError
from facet.resources.representable import Representable
from facet.resources.resource import check_count


class Pagination(StrEnum):
    OFFSET = "offset"
    CURSOR = "cursor"


def _check_cursor(name: str, value: Any) -> None:
    if value is not None and not isinstance(value, str):
        msg = f"Expecting {name} to be a string or None, got {type(value).__name__}"
        raise TypeError(msg)


def _item_representation(item: Any) -> Any:
    # Links stay live so the router can resolve them
    if isinstance(item, Representable) and not getattr(item, "is_link", False):
        return item.to_representation()
    return item


class Collection(Representable):
    """An ordered list of items plus collection metadata.

    Items may be Links, Resources, mappings, or scalars. Metadata that is
    None is left out of the representation.
    """

    __slots__ = (
        "_cursor",
        "_expires",
        "_id",
        "_items",
        "_limit",
        "_next_cursor",
        "_offset",
        "_total",
        "pagination",
    )

    def __init__(
        self,
        id: str | None = None,
        items: Iterable[Any] = (),
        *,
        expires: int | None = None,
        total: int | None = None,
        limit: int | None = None,
        pagination: Pagination | str | None = None,
    ) -> None:
        self.pagination = Pagination(pagination) if pagination is not None else None
        self._id: str | None = None
        self._items: list[Any] = []
        self._expires: int | None = None
        self._total: int | None = None
        self._limit: int | None = None
        self._offset: int | None = None
        self._cursor: str | None = None
        self._next_cursor: str | None = None
        self.id = id
        self.items = items
        self.expires = expires
        self.total = total
        self.limit = limit

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, items={len(self._items)})"

    # -- Identity and items --

    @property
    def id(self) -> str | None:
        return self._id

    @id.setter
    def id(self, value: str | None) -> None:
        if value is not None and not isinstance(value, str):
            msg = f"Expecting id to be a string or None, got {type(value).__name__}"
            raise TypeError(msg)
        self._id = value

    @property
    def items(self) -> list[Any]:
        return self._items

    @items.setter
    def items(self, value: Iterable[Any]) -> None:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            msg = f"Expecting items to be iterable, got {type(value).__name__}"
            raise TypeError(msg)
        self._items = list(value)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, position: int) -> Any:
        return self._items[position]

    def __setitem__(self, position: int, item: Any) -> None:
        check_count("position", position)
        if position >= len(self._items):
            self._items.extend([None] * (position + 1 - len(self._items)))
        self._items[position] = item

    def append(self, item: Any) -> None:
        self._items.append(item)

    def pop(self) -> Any:
        return self._items.pop()

    # -- Counts --

    @property
    def expires(self) -> int | None:
        return self._expires

    @expires.setter
    def expires(self, value: int | None) -> None:
        check_count("expires", value)
        self._expires = value

    @property
    def total(self) -> int | None:
        return self._total

    @total.setter
    def total(self, value: int | None) -> None:
        check_count("total", value)
        self._total = value

    @property
    def limit(self) -> int | None:
        return self._limit

    @limit.setter
    def limit(self, value: int | None) -> None:
        check_count("limit", value)
        self._limit = value

    # -- Pagination --

    def _require(self, mode: Pagination) -> None:
        if self.pagination is not mode:
            msg = f"Pagination type should be {mode}."
            raise PaginationError(msg)

    @property
    def offset(self) -> int | None:
        self._require(Pagination.OFFSET)
        return self._offset

    @offset.setter
    def offset(self, value: int | None) -> None:
        self._require(Pagination.OFFSET)
        check_count("offset", value)
        self._offset = value

    @property
    def cursor(self) -> str | None:
        self._require(Pagination.CURSOR)
        return self._cursor

    @cursor.setter
    def cursor(self, value: str | None) -> None:
        self._require(Pagination.CURSOR)
        _check_cursor("cursor", value)
        self._cursor = value

    @property
    def next_cursor(self) -> str | None:
        self._require(Pagination.CURSOR)
        return self._next_cursor

    @next_cursor.setter
    def next_cursor(self, value: str | None) -> None:
        self._require(Pagination.CURSOR)
        _check_cursor("next_cursor", value)
        self._next_cursor = value

    def to_representation(self) -> dict[str, Any]:
        fields: list[tuple[str, Any]] = [
            ("$type", "collection"),
            ("$id", self._id),
            ("$expires", self._expires),
            ("total", self._total),
            ("limit", self._limit),
            ("offset", self._offset),
            ("cursor", self._cursor),
            ("nextCursor", self._next_cursor),
        ]
        document = {key: value for key, value in fields if value is not None}
        document["items"] = [_item_representation(item) for item in self._items]
        return document


class OffsetPaginator(Collection):
    """A collection paged by ``offset``/``limit``."""

    __slots__ = ()

    def __init__(
        self,
        id: str | None = None,
        items: Iterable[Any] = (),
        *,
        expires: int | None = None,
        total: int | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> None:
        super().__init__(
            id, items, expires=expires, total=total, limit=limit, pagination=Pagination.OFFSET
        )
        self.offset = offset


class CursorPaginator(Collection):
    """A collection paged by opaque ``cursor``/``nextCursor`` tokens."""

    __slots__ = ()

    def __init__(
        self,
        id: str | None = None,
        items: Iterable[Any] = (),
        *,
        expires: int | None = None,
        total: int | None = None,
        limit: int | None = None,
        cursor: str | None = None,
        next_cursor: str | None = None,
    ) -> None:
        super().__init__(
            id, items, expires=expires, total=total, limit=limit, pagination=Pagination.CURSOR
        )
        self.cursor = cursor
        self.next_cursor = next_cursor
