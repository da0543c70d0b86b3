"""Multipart upload streaming with per-part validation.

The request body is parsed incrementally with ``python-multipart`` as
uploads are asked for, so a handler can start on the first file before
the rest of the body has arrived. Each file part is checked against the
route schema property named after its field::

    {"avatar": {"type": "file", "maxSize": 1048576, "mimeTypes": ["image/*"]}}

The MIME type is checked on the part's first chunk and the size on every
chunk. A part that breaks a constraint is marked invalid, stops being
checked and buffered, and the ``on_invalid`` callbacks fire. The body keeps
being read; nothing is aborted.
"""

import logging
import re
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass
from typing import Any

import anyio
from python_multipart import MultipartParser
from python_multipart.multipart import parse_options_header

from facet._internal.invoke import invoke
from facet._internal.types import Schema
from facet.errors import UploadError, UploadReason
from facet.props.locator import locate

logger = logging.getLogger("facet.uploads")


@dataclass(frozen=True, slots=True)
class Upload:
    """A fully received, valid uploaded file."""

    field_name: str
    content: bytes
    filename: str | None
    encoding: str
    mime_type: str
    size: int

    def __repr__(self) -> str:
        return (
            f"Upload({self.field_name!r}, {self.filename!r}, {self.mime_type!r}, "
            f"{self.size} bytes)"
        )


def mime_type_allowed(mime_type: str | None, allowed: Iterable[str] | None) -> bool:
    """Match *mime_type* against patterns such as ``image/*`` (case-insensitive).

    One ``*`` per pattern stands for a single non-empty segment. No patterns
    means anything goes.
    """
    patterns = list(allowed or ())
    if not patterns:
        return True
    mime_type = mime_type or ""
    for pattern in patterns:
        head, star, tail = pattern.partition("*")
        source = re.escape(head) + ("[^/]+" if star else "") + re.escape(tail)
        if re.fullmatch(source, mime_type, re.IGNORECASE):
            return True
    return False


class UploadPart:
    """Parse state of one file part."""

    __slots__ = (
        "chunks",
        "complete",
        "constraints",
        "encoding",
        "error",
        "field_name",
        "filename",
        "mime_checked",
        "mime_type",
        "size",
    )

    def __init__(
        self,
        field_name: str,
        filename: str | None,
        mime_type: str,
        encoding: str,
        constraints: Schema | None,
    ) -> None:
        self.field_name = field_name
        self.filename = filename
        self.mime_type = mime_type
        self.encoding = encoding
        self.constraints = constraints or {}
        self.chunks: list[bytes] = []
        self.size = 0
        self.mime_checked = False
        self.complete = False
        self.error: UploadError | None = None

    def upload(self) -> Upload:
        if self.error is not None:
            raise self.error
        return Upload(
            field_name=self.field_name,
            content=b"".join(self.chunks),
            filename=self.filename,
            encoding=self.encoding,
            mime_type=self.mime_type,
            size=self.size,
        )


class UploadStream:
    """Incremental multipart reader bound to a route schema.

    Usage from a handler::

        upload = await ctx.get_upload("avatar")
        store(upload.content)
    """

    __slots__ = (
        "_exhausted",
        "_invalid_callbacks",
        "_lock",
        "_parser",
        "_pending",
        "_schema",
        "_source",
        "fields",
        "parts",
    )

    def __init__(
        self,
        source: AsyncIterator[bytes],
        content_type: str | None,
        schema: Schema | None = None,
    ) -> None:
        content_type = content_type or ""
        mime, options = parse_options_header(content_type)
        boundary = options.get(b"boundary")
        if mime.lower() != b"multipart/form-data" or not boundary:
            msg = f"Expected a multipart/form-data body, got {content_type or 'no content type'!r}"
            raise UploadError(msg, UploadReason.NOT_MULTIPART)

        self._source = source
        self._schema = schema
        self._lock = anyio.Lock()
        self._exhausted = False
        self._invalid_callbacks: list[Callable[..., Any]] = []
        self._pending: list[UploadPart] = []
        self.parts: list[UploadPart] = []
        self.fields: dict[str, str] = {}
        self._parser = self._make_parser(boundary)

    def on_invalid(self, callback: Callable[[str, UploadError], Any]) -> None:
        """Register ``callback(field_name, error)`` for parts that fail validation."""
        self._invalid_callbacks.append(callback)

    # -- Parsing --

    def _make_parser(self, boundary: bytes) -> MultipartParser:
        header_field = bytearray()
        header_value = bytearray()
        headers: dict[str, str] = {}
        field_data = bytearray()
        part: UploadPart | None = None
        field_name: str | None = None

        def on_part_begin() -> None:
            nonlocal part, field_name
            headers.clear()
            field_data.clear()
            part = None
            field_name = None

        def on_header_field(data: bytes, start: int, end: int) -> None:
            header_field.extend(data[start:end])

        def on_header_value(data: bytes, start: int, end: int) -> None:
            header_value.extend(data[start:end])

        def on_header_end() -> None:
            headers[header_field.decode("latin-1").lower()] = header_value.decode("latin-1")
            header_field.clear()
            header_value.clear()

        def on_headers_finished() -> None:
            nonlocal part, field_name
            _, params = parse_options_header(headers.get("content-disposition", ""))
            name = params.get(b"name")
            field_name = name.decode("utf-8") if name is not None else None
            filename = params.get(b"filename")
            if field_name is None or filename is None:
                return
            part = UploadPart(
                field_name=field_name,
                filename=filename.decode("utf-8"),
                mime_type=headers.get("content-type", "application/octet-stream"),
                encoding=headers.get("content-transfer-encoding", "7bit"),
                constraints=locate(self._schema, field_name) if self._schema else None,
            )
            self.parts.append(part)

        def on_part_data(data: bytes, start: int, end: int) -> None:
            if part is None:
                field_data.extend(data[start:end])
            else:
                self._receive(part, data[start:end])

        def on_part_end() -> None:
            if part is None:
                if field_name is not None:
                    self.fields[field_name] = field_data.decode("utf-8", errors="replace")
                return
            self._finish(part)

        callbacks: dict[str, Any] = {
            "on_part_begin": on_part_begin,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_headers_finished": on_headers_finished,
        }
        return MultipartParser(boundary, callbacks)

    def _invalidate(self, part: UploadPart, message: str, reason: UploadReason) -> None:
        logger.debug("upload %r invalid: %s", part.field_name, reason)
        part.error = UploadError(message, reason)
        part.chunks.clear()
        self._pending.append(part)

    def _check_mime_type(self, part: UploadPart) -> bool:
        part.mime_checked = True
        if mime_type_allowed(part.mime_type, part.constraints.get("mimeTypes")):
            return True
        self._invalidate(
            part,
            f"Uploaded data for field name {part.field_name} has invalid mime type "
            f"{part.mime_type}.",
            UploadReason.MIME_TYPE,
        )
        return False

    def _receive(self, part: UploadPart, chunk: bytes) -> None:
        if part.error is not None or not chunk:
            return
        if not part.mime_checked and not self._check_mime_type(part):
            return
        part.size += len(chunk)
        max_size = part.constraints.get("maxSize")
        if max_size is not None and part.size > max_size:
            self._invalidate(
                part,
                f"Uploaded data for field name {part.field_name} is larger than allowed "
                f"maximum size of {max_size} bytes.",
                UploadReason.TOO_LARGE,
            )
            return
        part.chunks.append(chunk)

    def _finish(self, part: UploadPart) -> None:
        part.complete = True
        if part.error is not None:
            return
        if not part.mime_checked and not self._check_mime_type(part):
            return
        min_size = part.constraints.get("minSize")
        if min_size is not None and part.size < min_size:
            self._invalidate(
                part,
                f"Uploaded data for field name {part.field_name} is smaller than allowed "
                f"minimum size of {min_size} bytes.",
                UploadReason.TOO_SMALL,
            )

    async def _consume(self, done: Callable[[], bool] | None = None) -> None:
        """Feed body chunks to the parser until *done* holds or the body ends."""
        async with self._lock:
            while not self._exhausted and not (done is not None and done()):
                try:
                    chunk = await anext(self._source)
                except StopAsyncIteration:
                    self._parser.finalize()
                    self._exhausted = True
                else:
                    self._parser.write(chunk)
                await self._notify()

    async def _notify(self) -> None:
        pending, self._pending = self._pending, []
        for part in pending:
            for callback in self._invalid_callbacks:
                await invoke(callback, part.field_name, part.error)

    # -- Access --

    def _first(self, field_name: str) -> UploadPart | None:
        return next((part for part in self.parts if part.field_name == field_name), None)

    async def get_upload(self, field_name: str) -> Upload:
        """The first upload under *field_name*.

        Raises the part's ``UploadError`` if it is invalid, or ``NOT_FOUND``.
        """

        def received() -> bool:
            part = self._first(field_name)
            return part is not None and part.complete

        await self._consume(received)
        part = self._first(field_name)
        if part is None:
            msg = f"No upload found for field name {field_name}."
            raise UploadError(msg, UploadReason.NOT_FOUND)
        return part.upload()

    async def get_all_uploads(self, field_name: str | None = None) -> list[Upload]:
        """Every upload, or every upload under *field_name*.

        Raises the first invalid part's ``UploadError``, or ``NOT_FOUND``.
        """
        await self._consume()
        parts = [part for part in self.parts if field_name is None or part.field_name == field_name]
        if not parts:
            msg = (
                f"No upload found for field name {field_name}."
                if field_name is not None
                else "No uploads found."
            )
            raise UploadError(msg, UploadReason.NOT_FOUND)
        return [part.upload() for part in parts]
