"""Structured fan-out over anyio task groups.

Handlers, sibling links, and batch envelopes all run the same way: start
everything at once, collect results by position, and surface the first
failure as itself rather than as an exception group.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import anyio


def first_error(group: BaseExceptionGroup) -> BaseException:
    """The first leaf exception of a (possibly nested) exception group."""
    error: BaseException = group
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error


async def gather(calls: Sequence[Callable[[], Awaitable[Any]]]) -> list[Any]:
    """Run *calls* concurrently and return their results in order.

    Any failure cancels the rest and is re-raised unwrapped.
    """
    if len(calls) == 1:
        return [await calls[0]()]

    results: list[Any] = [None] * len(calls)

    async def _run(index: int, call: Callable[[], Awaitable[Any]]) -> None:
        results[index] = await call()

    try:
        async with anyio.create_task_group() as tg:
            for index, call in enumerate(calls):
                tg.start_soon(_run, index, call)
    except BaseExceptionGroup as group:
        raise first_error(group) from None
    return results
