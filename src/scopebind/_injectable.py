from __future__ import annotations

import threading
import weakref
from typing import TYPE_CHECKING, Any, TypeVar

from ._bindings import Binding, bind_constructor, bind_factory
from ._keys import Key


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._keys import Scope


T = TypeVar("T")

_keys: weakref.WeakKeyDictionary[type, Key] = weakref.WeakKeyDictionary()
_keys_lock = threading.Lock()


def injectable(*dependencies: Any, scope: Scope | None = None) -> Callable[[type[T]], type[T]]:
    """Class decorator making the class requestable by itself.

    The class is constructed from its resolved `dependencies`, passed
    positionally, and cached in `scope` when one is given.

    Example:
      @injectable(ConfigKey, scope=Singleton)
      class Database:
          def __init__(self, config): ...

      db = root.request(Database)

    """

    def decorate(cls: type[T]) -> type[T]:
        cls.__inject_binding__ = bind_constructor(cls, *dependencies)
        if scope is not None:
            cls.__inject_scope__ = scope
        return cls

    return decorate


def key_for(cls: type) -> Key:
    """The key a class stands for when it is used as a dependency.

    Its default binding is the class's own `__inject_binding__` (a `Binding`,
    or a zero-argument callable returning one), else its no-argument
    constructor. `__inject_scope__` sets the key's scope. Both attributes are
    read from the class itself, never inherited from its bases.

    The same class always maps to the same key.
    """
    with _keys_lock:
        key = _keys.get(cls)
        if key is None:
            key = _keys[cls] = Key(of=cls, scope=vars(cls).get("__inject_scope__"), default=_class_binding(cls))
        return key


def _class_binding(cls: type) -> Binding:
    binding = vars(cls).get("__inject_binding__")
    if binding is None:
        return bind_factory(cls)

    if not isinstance(binding, Binding) and callable(binding):
        binding = binding()
    if not isinstance(binding, Binding):
        msg = f"{cls.__name__}.__inject_binding__ must be a Binding or return one, got {binding!r}"
        raise TypeError(msg)
    return binding
