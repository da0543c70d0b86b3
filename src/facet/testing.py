"""Async test client for facet applications.

Sends requests through the ASGI interface directly, no HTTP involved::

    async with TestClient(app) as client:
        response = await client.get("/users/1?props=name")
        assert response.status == 200
        assert response.json() == {"name": "Ann"}
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass
from typing import Any

from facet._internal.invoke import invoke
from facet.http.headers import Headers
from facet.server.app import ApiApp


@dataclass(frozen=True, slots=True)
class TestResponse:
    __test__ = False  # Tell pytest this is not a test class
    """A captured response: status, lower-cased headers, and raw body."""

    status: int
    headers: Headers
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json_module.loads(self.body)


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Async test client for facet applications.

    Entering the client runs the app's startup hooks; leaving it runs the
    shutdown hooks.
    """

    __slots__ = ("app", "chunk_size")

    def __init__(self, app: ApiApp, *, chunk_size: int | None = None) -> None:
        self.app = app
        # Split request bodies into ASGI messages of this size
        self.chunk_size = chunk_size

    async def __aenter__(self) -> TestClient:
        for hook in self.app._startup_hooks:
            await invoke(hook)
        return self

    async def __aexit__(self, *args: object) -> None:
        for hook in self.app._shutdown_hooks:
            await invoke(hook)

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        """Send a GET request."""
        return await self.request("GET", path, headers=headers)

    async def options(self, path: str, *, headers: dict[str, str] | None = None) -> TestResponse:
        """Send an OPTIONS request."""
        return await self.request("OPTIONS", path, headers=headers)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send a POST request."""
        return await self.request("POST", path, headers=headers, body=body, json=json)

    async def put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send a PUT request."""
        return await self.request("PUT", path, headers=headers, body=body, json=json)

    async def patch(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send a PATCH request."""
        return await self.request("PATCH", path, headers=headers, body=body, json=json)

    async def delete(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send a DELETE request."""
        return await self.request("DELETE", path, headers=headers, json=json)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> TestResponse:
        """Send an arbitrary request through the ASGI app.

        ``json`` is encoded as the body with an ``application/json`` content type.
        """
        path_part, _, query_string = path.partition("?")

        merged: dict[str, str] = {}
        request_body = body or b""
        if json is not None:
            request_body = json_module.dumps(json).encode("utf-8")
            merged["content-type"] = "application/json"
        merged.update(headers or {})

        raw_headers: list[tuple[bytes, bytes]] = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in merged.items()
        ]

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        size = self.chunk_size or max(len(request_body), 1)
        chunks = [request_body[i : i + size] for i in range(0, len(request_body), size)] or [b""]

        async def receive() -> dict[str, Any]:
            if chunks:
                chunk = chunks.pop(0)
                return {"type": "http.request", "body": chunk, "more_body": bool(chunks)}
            # After body is sent, wait for disconnect (simplified)
            return {"type": "http.disconnect"}

        status = 200
        response_headers: list[tuple[bytes, bytes]] = []
        body_parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, response_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                response_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                body_parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        return TestResponse(
            status=status,
            headers=Headers.from_raw(response_headers),
            body=b"".join(body_parts),
        )
