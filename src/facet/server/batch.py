"""Batch endpoint.

``POST <base>/_batch`` carries several request envelopes in one body::

    [
        {"url": "/users/1?props=name", "method": "GET"},
        {"url": "/users/2", "method": "PATCH", "body": {"name": "Bo"}},
    ]

Every envelope is handled concurrently through one shared connection, so
identical GETs across envelopes are fetched once. Each answer is an envelope
of its own, ``{status, headers, body}``; a failing envelope never fails the
batch. A mapping of envelopes yields a mapping of answers under the same
keys, tagged ``$type: "batch"``.
"""

import logging
from collections.abc import Mapping
from functools import partial
from typing import Any

from facet._internal.concurrency import gather
from facet.config import ApiConfig
from facet.connection import Connection
from facet.errors import ApiError, HTTPError
from facet.http.headers import Headers
from facet.http.request import Request
from facet.routing.router import Router
from facet.server.response import result_headers, result_status

logger = logging.getLogger("facet.server")

ERROR_BATCH_BODY = "Batch body must be a list or an object of request envelopes"
ERROR_ENVELOPE = "Batch envelope must be an object with a url"


def _envelope_request(envelope: Any, config: ApiConfig) -> Request:
    if not isinstance(envelope, Mapping) or not isinstance(envelope.get("url"), str):
        raise ApiError(status=400, detail=ERROR_ENVELOPE)
    url: str = envelope["url"]
    path, sep, query_string = url.partition("?")
    path = config.strip_base_path(path) or path
    headers = Headers(envelope.get("headers") or {})
    try:
        return Request.from_url(
            str(envelope.get("method") or "GET"),
            path + sep + query_string,
            body=envelope.get("body"),
            etag=headers.get("if-none-match"),
            headers=headers,
        )
    except ValueError as exc:
        raise ApiError(status=400, detail=str(exc)) from exc


async def _answer(
    envelope: Any,
    router: Router,
    connection: Connection,
    config: ApiConfig,
) -> dict[str, Any]:
    try:
        request = _envelope_request(envelope, config)
        result = await router.handle(request, connection)
    except HTTPError as exc:
        return {"status": exc.status, "headers": dict(exc.headers), "body": exc.document()}
    except Exception as exc:
        logger.exception("500 in batch envelope %r", envelope)
        body: dict[str, Any] = {"code": 500, "error": "INTERNAL SERVER ERROR", "properties": []}
        body["message"] = str(exc) if config.debug else "Internal server error"
        return {"status": 500, "headers": {}, "body": body}
    return {"status": result_status(result), "headers": result_headers(result), "body": result}


async def run_batch(
    body: Any,
    router: Router,
    config: ApiConfig,
    *,
    headers: Mapping[str, str] | None = None,
) -> Any:
    """Handle every envelope in *body*; raises ``ApiError`` (400) for a malformed body."""
    if isinstance(body, list):
        keys = None
        envelopes = body
    elif isinstance(body, Mapping):
        keys = list(body)
        envelopes = [body[key] for key in keys]
    else:
        raise ApiError(status=400, detail=ERROR_BATCH_BODY)

    logger.debug("batch of %d envelopes", len(envelopes))
    connection = Connection(router, headers=headers)
    answers = await gather(
        [partial(_answer, envelope, router, connection, config) for envelope in envelopes]
    )
    if keys is None:
        return answers
    return {"$type": "batch", "$httpStatus": 200, **dict(zip(keys, answers, strict=True))}
