from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ._bindings import bind_with
from ._container import Container
from ._keys import Key


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._keys import Scope


class SubcomponentKey(Key):
    """A key resolving to a factory of child containers.

    Calling the factory with `*args` creates a child of the container the
    key was resolved in, owning `scopes`, and runs `configure(child, *args)`
    on it. The factory returns what `configure` returns, or the child when
    that is `None`.

    Example:
      Request = Scope("Request")
      RequestComponent = SubcomponentKey(
          lambda ct, req: ct.provide_instance(RequestKey, req),
          scopes=[Request],
      )
      request_container = app.build(RequestComponent, incoming)

    """

    def __init__(
        self,
        configure: Callable[..., Container | None],
        *,
        scopes: Iterable[Scope] = (),
        name: str | None = None,
    ) -> None:
        child_scopes = tuple(scopes)

        def init(container: Container) -> Callable[..., Container]:
            def factory(*args: Any) -> Container:
                child = container.create_child(*child_scopes)
                result = configure(child, *args)
                return child if result is None else result

            return factory

        super().__init__(name or getattr(configure, "__name__", None), default=bind_with(Container, init))
        object.__setattr__(self, "scopes", child_scopes)
