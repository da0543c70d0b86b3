"""Invoke helpers: call sync or async callbacks uniformly.

Route handlers, alias resolvers, post-route hooks, and link continuations can
be ``def`` or ``async def``. Any code that calls a user-provided callback
goes through this helper so the sync/async check lives in exactly one place.

Usage::

    from facet._internal.invoke import invoke

    result = await invoke(handler, ctx, connection)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately, no await needed
        def get_user(ctx, connection):
            return {"name": "Ann"}

        # async: returns coroutine, awaited automatically
        async def get_user(ctx, connection):
            return await connection.get("/profiles/1")
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
