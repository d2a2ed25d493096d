from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._container import Container

    Configure = Callable[[Container], "Container | None"]


class Module:
    """A named, reusable batch of container configuration.

    Parts are callables taking a container and returning the container to
    continue with (or `None` to keep the same one); other modules are parts
    too. Applying a module twice runs its parts twice.

    Example:
      database = Module(lambda c: c.provide(Db, Config, make_db, scope=Singleton), name="database")
      app = Module(database, settings)
      container.apply(app)

    """

    def __init__(self, *parts: Configure, name: str | None = None) -> None:
        for part in parts:
            if not callable(part):
                msg = f"Module parts must be callable, got {part!r}"
                raise TypeError(msg)
        self.parts = parts
        self.name = name

    def __call__(self, container: Container) -> Container:
        for part in self.parts:
            result = part(container)
            if result is not None:
                container = result
        return container

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Module({self.name!r})"
        return f"Module(<{len(self.parts)} parts>)"


def module(configure: Configure) -> Module:
    """Decorator turning a configuration function into a `Module` named after it."""
    return Module(configure, name=configure.__name__)
