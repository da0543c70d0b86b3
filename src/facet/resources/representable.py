"""Values that know how to represent themselves as resource documents."""

from abc import ABC, abstractmethod
from typing import Any


class Representable(ABC):
    """Base for value types the router converts before merging.

    Subclasses return a plain ``dict`` whose ``$``-prefixed keys are
    metadata (``$id``, ``$expires``, ``$type``, ...). Keys whose value is
    None are omitted.
    """

    @abstractmethod
    def to_representation(self) -> dict[str, Any]: ...


def represent(value: Any) -> Any:
    """Convert *value* if it is Representable, else return it unchanged."""
    if isinstance(value, Representable):
        return value.to_representation()
    return value


def materialize(value: Any) -> Any:
    """Recursively convert Representables to plain documents, leaving Links live."""
    if isinstance(value, Representable) and not getattr(value, "is_link", False):
        value = value.to_representation()
    if isinstance(value, dict):
        return {key: materialize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [materialize(item) for item in value]
    return value
