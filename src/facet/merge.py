"""Deep merge for handler results and hydrated links.

Mappings merge key by key, lists merge by index, and anything else is
replaced by the later value. Inputs are never mutated::

    merge({"a": 1, "b": {"c": 1}}, {"b": {"d": 2}})
    # {"a": 1, "b": {"c": 1, "d": 2}}

    merge([1, 2, 3], ["x"])
    # ["x", 2, 3]
"""

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger("facet.router")


def _copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy(item) for item in value]
    return value


def _merge_two(target: Any, source: Any) -> Any:
    if isinstance(target, Mapping) and isinstance(source, Mapping):
        merged = {key: _copy(item) for key, item in target.items()}
        for key, item in source.items():
            if key in merged:
                merged[key] = _merge_two(merged[key], item)
            else:
                merged[key] = _copy(item)
        return merged
    if isinstance(target, list) and isinstance(source, list):
        merged_list = [_copy(item) for item in target]
        for index, item in enumerate(source):
            if index < len(merged_list):
                merged_list[index] = _merge_two(merged_list[index], item)
            else:
                merged_list.append(_copy(item))
        return merged_list
    return _copy(source)


def merge(*values: Any) -> Any:
    """Deep-merge *values* left to right; later values win on scalars.

    Returns None for no arguments. The result never shares containers with
    the inputs.
    """
    if not values:
        return None
    result = _copy(values[0])
    for value in values[1:]:
        result = _merge_two(result, value)
    logger.debug("merged %d values", len(values))
    return result
