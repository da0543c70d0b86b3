"""Property paths: parsing, schema lookup, and projection."""

from facet.props.locator import locate
from facet.props.path import PropertyPath, Segment, format_path, parse_path, top_level_key
from facet.props.projector import is_missing, missing_properties, pluck

__all__ = [
    "PropertyPath",
    "Segment",
    "format_path",
    "is_missing",
    "locate",
    "missing_properties",
    "parse_path",
    "pluck",
    "top_level_key",
]
