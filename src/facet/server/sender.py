"""Emit an encoded ``ApiResponse`` as ASGI ``http.response.*`` messages."""

from facet._internal.asgi import Send
from facet.server.response import ApiResponse

# Statuses whose responses never carry a body
_NO_BODY = frozenset({204, 304})


def _body_allowed(status: int) -> bool:
    return status >= 200 and status not in _NO_BODY


def _raw_headers(response: ApiResponse, length: int) -> list[tuple[bytes, bytes]]:
    raw = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
    ]
    raw.append((b"content-length", str(length).encode("latin-1")))
    return raw


async def send_response(response: ApiResponse, send: Send) -> None:
    """Send *response* in one start message and one body message.

    Bodies of 1xx, 204, and 304 responses are dropped and ``content-length``
    is always set to what is actually sent.
    """
    body = response.body if _body_allowed(response.status) else b""
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": _raw_headers(response, len(body)),
        }
    )
    await send({"type": "http.response.body", "body": body})
