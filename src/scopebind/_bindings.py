from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._keys import Scope


@dataclass(frozen=True, eq=False)
class Binding:
    """A dependency tree plus the function that turns its resolved value into the bound value."""

    dependencies: Any
    init: Callable[[Any], Any]
    is_async: bool = False
    scope: Scope | None = None


def bind_with(dependencies: Any, init: Callable[[Any], Any]) -> Binding:
    """Bind to `init(resolved_dependencies)`.

    Example:
      bind_with({"host": HostKey, "port": PortKey}, lambda d: Client(d["host"], d["port"]))

    """
    return Binding(dependencies, init)


def bind_async(dependencies: Any, init: Callable[[Any], Any]) -> Binding:
    """Bind to an asynchronously produced value.

    Dependencies are resolved with async bindings allowed, and `init` may
    return an awaitable, which is awaited before the value is delivered.
    """
    return Binding(dependencies, init, is_async=True)


def bind_instance(instance: object) -> Binding:
    return Binding(None, lambda _: instance)


def bind_factory(factory: Callable[[], Any]) -> Binding:
    return Binding(None, lambda _: factory())


def bind_from(source: Any) -> Binding:
    """Alias binding: deliver whatever `source` resolves to."""
    return Binding(source, _identity)


def bind_constructor(cls: Callable[..., Any], *dependencies: Any) -> Binding:
    """Bind to `cls(*resolved)`, resolving `dependencies` positionally."""
    return Binding(list(dependencies), lambda args: cls(*args))


def _identity(value: Any) -> Any:
    return value
