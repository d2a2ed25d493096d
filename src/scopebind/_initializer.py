from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator, Sequence


class Initializer:
    """Produces a planned value, synchronously (`get`) or asynchronously (`aget`).

    An initializer built without a synchronous producer is asynchronous and
    can only be consumed with `aget`.
    """

    __slots__ = ("_aget", "_get")

    def __init__(
        self,
        get: Callable[[], Any] | None = None,
        *,
        aget: Callable[[], Awaitable[Any]] | None = None,
    ) -> None:
        if get is None and aget is None:
            msg = "An initializer needs a synchronous or an asynchronous producer."
            raise ValueError(msg)
        self._get = get
        self._aget = aget

    @classmethod
    def constant(cls, value: Any) -> Initializer:
        return cls(lambda: value)

    @property
    def is_async(self) -> bool:
        return self._get is None

    def get(self) -> Any:
        if self._get is None:
            msg = "Asynchronous initializer consumed synchronously"
            raise RuntimeError(msg)
        return self._get()

    async def aget(self) -> Any:
        if self._aget is not None:
            return await self._aget()
        return self.get()

    def to_async(self) -> Initializer:
        return Initializer(aget=self.aget)

    def map(self, fn: Callable[[Any], Any]) -> Initializer:
        if self._get is not None:
            get = self._get
            return Initializer(lambda: fn(get()))

        async def aget() -> Any:
            return fn(await self.aget())

        return Initializer(aget=aget)

    @classmethod
    def combine(cls, inits: Sequence[Initializer], assemble: Callable[[list[Any]], Any]) -> Initializer:
        """Join several initializers into one producing `assemble(values)`.

        Synchronous parts run in order. If any part is asynchronous the
        result is asynchronous and the parts are gathered concurrently.
        """
        if not any(init.is_async for init in inits):
            return cls(lambda: assemble([init.get() for init in inits]))

        async def aget() -> Any:
            values = await asyncio.gather(*(init.aget() for init in inits))
            return assemble(list(values))

        return cls(aget=aget)


class Deferred:
    """Handle to a value that is being resolved asynchronously.

    Creating the handle never blocks; the work is scheduled on the running
    event loop the first time it is awaited. A handle may be awaited any
    number of times and always yields the same outcome.
    """

    __slots__ = ("_factory", "_future")

    def __init__(self, factory: Callable[[], Awaitable[Any]]) -> None:
        self._factory = factory
        self._future: asyncio.Future[Any] | None = None

    def __await__(self) -> Generator[Any, None, Any]:
        if self._future is None:
            self._future = asyncio.ensure_future(self._factory())
        return self._future.__await__()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"<Deferred {state}>"
