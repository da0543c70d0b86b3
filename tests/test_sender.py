"""Tests for facet.server.sender response emission rules."""

from typing import Any

import pytest

from facet.server.response import ApiResponse
from facet.server.sender import send_response


async def _send(response: ApiResponse) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    await send_response(response, send)
    return messages


class TestSendResponseNoBodyStatuses:
    @pytest.mark.anyio
    async def test_304_drops_body_and_sets_zero_content_length(self) -> None:
        messages = await _send(ApiResponse(304, (("etag", 'W/"abc"'),), b'{"$httpStatus": 304}'))

        assert messages[0]["type"] == "http.response.start"
        assert messages[0]["status"] == 304
        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"0"
        assert headers[b"etag"] == b'W/"abc"'

        assert messages[1]["type"] == "http.response.body"
        assert messages[1]["body"] == b""

    @pytest.mark.anyio
    async def test_204_drops_body(self) -> None:
        messages = await _send(ApiResponse(204, (), b"{}\n"))
        assert messages[1]["body"] == b""

    @pytest.mark.anyio
    async def test_200_preserves_body(self) -> None:
        messages = await _send(ApiResponse(200, (("Content-Type", "application/json"),), b"{}\n"))

        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"3"
        assert headers[b"content-type"] == b"application/json"
        assert messages[1]["body"] == b"{}\n"
