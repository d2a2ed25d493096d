"""Hierarchical, scope-aware dependency injection.

Values are requested by `Key` from a tree of containers. A container
resolves a key with the nearest binding in its ancestry and caches the value
in the nearest container owning the binding's scope, so children can model
nested lifetimes (application, session, request).

Exports:
- `Container` / `create_root`: the resolution engine. Roots own `Singleton`.
- `Key`, `Scope`, `Singleton`: identity-compared keys and caching tiers.
- `Binding` and the `bind_*` helpers: rules producing a key's value.
- `Lazy`, `Provider`, `Optional`, `Build`, `Async`: wrappers changing how a
  dependency is delivered without changing how it is produced.
- `Module` / `module`: reusable batches of container configuration.
- `SubcomponentKey`: resolves to a factory of scoped child containers.
- `injectable`: lets a class be requested by itself, without a key.
- `ResolutionError` and its subclasses.
"""

from ._bindings import (
    Binding,
    bind_async,
    bind_constructor,
    bind_factory,
    bind_from,
    bind_instance,
    bind_with,
)
from ._container import Container, create_root
from ._errors import (
    AsyncMisuseError,
    CyclicDependencyError,
    MissingBindingError,
    ResolutionError,
    ScopeUnavailableError,
)
from ._initializer import Deferred
from ._injectable import injectable
from ._keys import Key, Scope, Singleton
from ._module import Module, module
from ._subcomponent import SubcomponentKey
from ._wrappers import AbstractKey, Async, BaseKey, Build, Lazy, Optional, Provider


__all__ = [
    "AbstractKey",
    "Async",
    "AsyncMisuseError",
    "BaseKey",
    "Binding",
    "Build",
    "Container",
    "CyclicDependencyError",
    "Deferred",
    "Key",
    "Lazy",
    "MissingBindingError",
    "Module",
    "Optional",
    "Provider",
    "ResolutionError",
    "Scope",
    "ScopeUnavailableError",
    "Singleton",
    "SubcomponentKey",
    "bind_async",
    "bind_constructor",
    "bind_factory",
    "bind_from",
    "bind_instance",
    "bind_with",
    "create_root",
    "injectable",
    "module",
]
