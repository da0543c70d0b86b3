"""Tests for facet.connection: in-process calls and in-flight GET sharing."""

from typing import Any

import anyio
import pytest

from facet.connection import Connection
from facet.errors import NotFound
from facet.routing import Router

SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "integer"},
        "name": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "limit": {"type": "integer"},
    },
}


class Counter:
    def __init__(self) -> None:
        self.calls = 0
        self.release = anyio.Event()

    async def slow(self, ctx, connection) -> dict[str, Any]:
        self.calls += 1
        await self.release.wait()
        return {"id": ctx.params["id"], "name": "Ann", "tags": ["a"]}


def _router(counter: Counter) -> Router:
    router = Router()
    router.route(("/things/:id", "limit="), SCHEMA, {"GET": counter.slow, "PATCH": counter.slow})
    return router


class TestInFlightSharing:
    @pytest.mark.anyio
    async def test_identical_gets_share_one_dispatch(self) -> None:
        counter = Counter()
        connection = Connection(_router(counter))
        results: list[Any] = []

        async def fetch() -> None:
            results.append(await connection.get("/things/1", props=["name", "tags"]))

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(fetch)
                tg.start_soon(fetch)
                await anyio.sleep(0.01)
                counter.release.set()

        assert counter.calls == 1
        assert results[0] == results[1] == {"name": "Ann", "tags": ["a"]}
        # Each caller gets its own copy
        assert results[0] is not results[1]
        assert results[0]["tags"] is not results[1]["tags"]

    @pytest.mark.anyio
    async def test_props_order_does_not_matter(self) -> None:
        counter = Counter()
        connection = Connection(_router(counter))

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(connection.get, "/things/1")
                tg.start_soon(connection.request, "GET", "/things/1?props=tags,name")
                tg.start_soon(connection.request, "GET", "/things/1?props=name,tags")
                await anyio.sleep(0.01)
                counter.release.set()

        assert counter.calls == 2

    @pytest.mark.anyio
    async def test_different_paths_dispatch_separately(self) -> None:
        counter = Counter()
        connection = Connection(_router(counter))

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(connection.get, "/things/1")
                tg.start_soon(connection.get, "/things/2")
                await anyio.sleep(0.01)
                counter.release.set()

        assert counter.calls == 2

    @pytest.mark.anyio
    async def test_non_get_is_never_shared(self) -> None:
        counter = Counter()
        connection = Connection(_router(counter))

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(connection.patch, "/things/1", {"name": "Bo"})
                tg.start_soon(connection.patch, "/things/1", {"name": "Bo"})
                await anyio.sleep(0.01)
                counter.release.set()

        assert counter.calls == 2

    @pytest.mark.anyio
    async def test_sequential_gets_dispatch_again(self) -> None:
        counter = Counter()
        counter.release.set()
        connection = Connection(_router(counter))
        await connection.get("/things/1")
        await connection.get("/things/1")
        assert counter.calls == 2

    @pytest.mark.anyio
    async def test_shared_failure_reaches_every_waiter(self) -> None:
        release = anyio.Event()
        calls = 0

        async def missing(ctx, connection):
            nonlocal calls
            calls += 1
            await release.wait()
            raise NotFound()

        router = Router()
        router.route("/gone", None, {"GET": missing})
        connection = Connection(router)
        errors: list[Exception] = []

        async def fetch() -> None:
            try:
                await connection.get("/gone")
            except NotFound as exc:
                errors.append(exc)

        with anyio.fail_after(1):
            async with anyio.create_task_group() as tg:
                tg.start_soon(fetch)
                tg.start_soon(fetch)
                await anyio.sleep(0.01)
                release.set()

        assert calls == 1
        assert len(errors) == 2


class TestRequestBuilding:
    @pytest.mark.anyio
    async def test_query_in_path_is_merged(self) -> None:
        seen: list[dict[str, Any]] = []

        def record(ctx, connection):
            seen.append(dict(ctx.query))
            return {"id": ctx.params["id"], "name": "Ann"}

        router = Router()
        router.route(("/things/:id", "limit="), SCHEMA, {"GET": record})
        connection = Connection(router)

        result = await connection.get("/things/1?limit=5&props=name", props=["id"])
        assert result == {"name": "Ann", "id": 1}
        assert seen == [{"limit": 5, "id": 1}]

    @pytest.mark.anyio
    async def test_explicit_query_wins(self) -> None:
        seen: list[Any] = []

        def record(ctx, connection):
            seen.append(ctx.query.get("limit"))
            return {}

        router = Router()
        router.route(("/things/:id", "limit="), SCHEMA, {"GET": record})
        await Connection(router).get("/things/1?limit=5", query={"limit": 7})
        assert seen == [7]

    @pytest.mark.anyio
    async def test_headers_travel_with_requests(self) -> None:
        seen: list[str | None] = []

        def record(ctx, connection):
            seen.append(ctx.request.headers.get("authorization"))
            return {}

        router = Router()
        router.route("/me", None, {"GET": record})
        await Connection(router, headers={"Authorization": "Bearer t"}).get("/me")
        assert seen == ["Bearer t"]

    @pytest.mark.anyio
    async def test_post_body(self) -> None:
        def create(ctx, connection):
            return ctx.status(201, ctx.body)

        router = Router()
        router.route("/things", SCHEMA, {"POST": create})
        result = await Connection(router).post("/things", {"name": "Ann", "id": "4"})
        assert result == {"$httpStatus": 201, "name": "Ann", "id": 4}
