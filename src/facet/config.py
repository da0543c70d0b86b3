"""API configuration.

ApiConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Transport configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ApiConfig(base_path="/api", debug=True)
    """

    # Mount point; requests outside it are answered with 404
    base_path: str = "/"

    # Batch endpoint, relative to base_path
    batch_enabled: bool = True
    batch_path: str = "/_batch"

    # Include exception text in 500 bodies
    debug: bool = False

    # Response encoding
    json_indent: int | None = 2

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    def strip_base_path(self, path: str) -> str | None:
        """Return *path* relative to ``base_path``, or None if outside it."""
        base = self.base_path.rstrip("/")
        if not base:
            return path or "/"
        if path != base and not path.startswith(base + "/"):
            return None
        return path[len(base) :] or "/"
