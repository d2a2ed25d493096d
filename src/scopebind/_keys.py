from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._bindings import Binding, bind_factory
from ._wrappers import AbstractKey


if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True, eq=False)
class Scope:
    """A caching tier. Containers that own a scope cache the values bound in it.

    Scopes compare by identity: two scopes with the same name are distinct.
    """

    name: str | None = None


Singleton = Scope("Singleton")


@dataclass(frozen=True, eq=False, repr=False)
class Key(AbstractKey):
    """A key used to provide and request values.

    Keys compare by identity only, so two keys declared for the same type
    never alias. Optional settings:

    - `of`: the class (or factory) the value is expected to come from; also
      supplies the default `name`.
    - `scope`: scope used when a binding for this key does not name one.
    - `default`: a `Binding`, or a zero-argument callable, used when no
      container in the ancestry binds this key.
    """

    name: str | None = None
    of: Callable[..., Any] | None = field(default=None, kw_only=True)
    scope: Scope | None = field(default=None, kw_only=True)
    default: Binding | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        if self.name is None and self.of is not None:
            object.__setattr__(self, "name", getattr(self.of, "__name__", None))

        if self.scope is not None and not isinstance(self.scope, Scope):
            msg = f"Key scope must be a Scope, got {self.scope!r}"
            raise TypeError(msg)

        if self.default is not None and not isinstance(self.default, Binding):
            if not callable(self.default):
                msg = f"Key default must be a Binding or a callable, got {self.default!r}"
                raise TypeError(msg)
            object.__setattr__(self, "default", bind_factory(self.default))

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Key({self.name!r})"
        return f"Key(<anonymous at {id(self):#x}>)"
