"""ASGI handler: translates ASGI scope/messages to facet requests.

The only component that reads raw ASGI HTTP messages. Strips the configured
base path, decodes the body (JSON, or a raw stream for multipart uploads),
dispatches through the router or the batch endpoint, and sends the encoded
result back through ASGI send().
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from facet._internal.asgi import Receive, Scope, Send
from facet.config import ApiConfig
from facet.connection import Connection
from facet.errors import ApiError, HTTPError, NotFound
from facet.http.headers import Headers
from facet.http.request import METHODS, Request
from facet.routing.router import Router
from facet.server.batch import run_batch
from facet.server.response import ApiResponse, render, render_error, render_internal_error
from facet.server.sender import send_response

logger = logging.getLogger("facet.server")

ERROR_INVALID_JSON = "Request body is not valid JSON"
ERROR_TOO_LARGE = "Request body exceeds the maximum content length"
ERROR_METHOD = "Method not allowed"


async def _stream(receive: Receive) -> AsyncIterator[bytes]:
    while True:
        message = await receive()
        body = message.get("body", b"")
        if body:
            yield body
        if not message.get("more_body", False):
            break


async def _read_body(receive: Receive, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    async for chunk in _stream(receive):
        size += len(chunk)
        if size > limit:
            raise ApiError(status=413, detail=ERROR_TOO_LARGE)
        chunks.append(chunk)
    return b"".join(chunks)


def _decode_json(raw: bytes) -> Any:
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ApiError(status=400, detail=ERROR_INVALID_JSON) from exc


async def _dispatch(
    scope: Scope,
    receive: Receive,
    *,
    router: Router,
    config: ApiConfig,
) -> Any:
    path = config.strip_base_path(scope["path"])
    if path is None:
        raise NotFound()

    method = str(scope.get("method", "GET")).upper()
    if method not in METHODS:
        raise ApiError(status=405, detail=ERROR_METHOD)

    headers = Headers.from_raw(scope.get("headers", ()))
    query_string = scope.get("query_string", b"").decode("latin-1")

    body: Any = None
    stream: AsyncIterator[bytes] | None = None
    content_type = (headers.content_type or "").lower()
    if content_type.startswith("multipart/form-data"):
        stream = _stream(receive)
    elif method not in ("GET", "OPTIONS"):
        body = _decode_json(await _read_body(receive, config.max_content_length))

    if config.batch_enabled and method == "POST" and path == config.batch_path:
        return await run_batch(body, router, config, headers=headers)

    url = f"{path}?{query_string}" if query_string else path
    request = Request.from_url(
        method,
        url,
        body=body,
        etag=headers.get("if-none-match"),
        headers=headers,
        stream=stream,
    )
    logger.debug("%s %s", method, request.url)
    return await router.handle(request, Connection(router, headers=headers))


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    config: ApiConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    response: ApiResponse
    try:
        result = await _dispatch(scope, receive, router=router, config=config)
    except HTTPError as exc:
        logger.debug("%d %s %s: %s", exc.status, scope.get("method"), scope["path"], exc.detail)
        response = render_error(exc, config)
    except Exception as exc:
        logger.exception("500 %s %s", scope.get("method"), scope["path"])
        response = render_internal_error(exc, config)
    else:
        response = render(result, config)

    await send_response(response, send)
