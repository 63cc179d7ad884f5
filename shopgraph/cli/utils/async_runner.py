"""Bridge between click's synchronous callbacks and async command bodies."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

T = TypeVar("T")


def coro(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Run the decorated coroutine function in a fresh event loop per invocation.

    Place it below the click decorators so click sees a plain function::

        @catalog.command()
        @coro
        async def get(entity_id: str) -> None: ...
    """

    @wraps(f)
    def run(*args, **kwargs) -> T:
        return asyncio.run(f(*args, **kwargs))

    return run
