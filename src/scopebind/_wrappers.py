from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from ._errors import MissingBindingError, ResolutionError, ScopeUnavailableError
from ._initializer import Initializer


if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractContextManager


class Resolver(Protocol):
    """What a wrapper sees of the resolution in progress."""

    @property
    def lock(self) -> AbstractContextManager[Any]:
        """The container tree's re-entrant lock."""
        ...

    def plan(self, tree: Any, *, asynchronous: bool | None = None) -> Initializer | ResolutionError: ...

    def evaluate(self, tree: Any) -> Any: ...


class AbstractKey:
    """Something that can be requested; offers the wrapper shortcuts."""

    @property
    def lazy(self) -> Lazy:
        """Requests a function returning a lazily-computed, memoized value."""
        return Lazy(self)

    @property
    def provider(self) -> Provider:
        """Requests a function that resolves the value on every call."""
        return Provider(self)

    @property
    def optional(self) -> Optional:
        """Requests the value if it can be provided, otherwise `None`."""
        return Optional(self)

    @property
    def async_(self) -> Async:
        """Requests the value with asynchronous bindings allowed."""
        return Async(self)

    def build(self, *args: Any) -> Build:
        """Requests the result of calling the resolved value with `args`."""
        return Build(self, *args)


class BaseKey(AbstractKey):
    """A key that transforms how the value of `inner` is delivered.

    `inner` may be any dependency tree. Subclasses implement `init`, which
    plans `inner` through the given resolver and returns an initializer for
    the transformed value, or a resolution error.
    """

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    def init(self, resolver: Resolver) -> Initializer | ResolutionError:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.inner!r})"


class Lazy(BaseKey):
    """Resolves `inner` on the first call of the returned function, then memoizes it.

    Both side effects and failures are deferred to that first call. The memo
    is filled under the container tree's lock, the same lock bindings run under.
    """

    def init(self, resolver: Resolver) -> Initializer:
        inner = self.inner

        def make() -> Callable[[], Any]:
            memo: list[Any] = []

            def get() -> Any:
                with resolver.lock:
                    if not memo:
                        memo.append(resolver.evaluate(inner))
                    return memo[0]

            return get

        return Initializer(make)


class Provider(BaseKey):
    """Resolves `inner` again on every call of the returned function."""

    def init(self, resolver: Resolver) -> Initializer:
        inner = self.inner

        def make() -> Callable[[], Any]:
            return lambda: resolver.evaluate(inner)

        return Initializer(make)


class Optional(BaseKey):
    """Delivers `None` when `inner` has no binding or its scope is not owned.

    Other failures, such as cycles, still propagate.
    """

    def init(self, resolver: Resolver) -> Initializer | ResolutionError:
        planned = resolver.plan(self.inner)
        if isinstance(planned, (MissingBindingError, ScopeUnavailableError)):
            return Initializer.constant(None)
        return planned


class Build(BaseKey):
    """Calls the callable `inner` resolves to with the bound `args`."""

    def __init__(self, inner: Any, *args: Any) -> None:
        super().__init__(inner)
        self.args = args

    def init(self, resolver: Resolver) -> Initializer | ResolutionError:
        planned = resolver.plan(self.inner)
        if isinstance(planned, ResolutionError):
            return planned

        args = self.args
        return planned.map(lambda factory: factory(*args))

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in (self.inner, *self.args))
        return f"Build({args})"


class Async(BaseKey):
    """Resolves `inner` with asynchronous bindings allowed.

    The enclosing request becomes asynchronous: it is delivered as a
    `Deferred` that settles once every leaf has settled.
    """

    def init(self, resolver: Resolver) -> Initializer | ResolutionError:
        planned = resolver.plan(self.inner, asynchronous=True)
        if isinstance(planned, ResolutionError):
            return planned
        return planned.to_async()
