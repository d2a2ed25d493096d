from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, replace
from functools import partial
from typing import TYPE_CHECKING, Any

from ._bindings import Binding, bind_instance
from ._errors import (
    AsyncMisuseError,
    CyclicDependencyError,
    MissingBindingError,
    ResolutionError,
    ScopeUnavailableError,
)
from ._initializer import Deferred, Initializer
from ._injectable import key_for
from ._keys import Key, Scope, Singleton
from ._wrappers import BaseKey


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    # (resolution context, key) pairs from the outermost request inwards
    Path = tuple[tuple["Container", Key], ...]
    # cache slot on the owning container; one value per binding
    Slot = tuple[Scope, Key, Binding]
    # (cache owner or context, scope, key, binding) of an async production
    _Marker = tuple["Container", Scope | None, Key, Binding]

# async productions running in the current task and the tasks it spawned
_producing: ContextVar[frozenset[_Marker]] = ContextVar("scopebind_producing", default=frozenset())


@dataclass(frozen=True)
class _Entry:
    value: Any
    is_async: bool = False  # value is an asyncio task
    producer: _Marker | None = None

    def initializer(self) -> Initializer:
        if not self.is_async:
            return Initializer.constant(self.value)
        return Initializer(aget=self.wait)

    async def wait(self) -> Any:
        if not self.is_async:
            return self.value

        task = self.value
        if not task.done() and self.producer in _producing.get():
            key = self.producer[2]
            raise CyclicDependencyError(key, (key,), "the binding awaited its own pending value")
        return await task


class Container:
    """Hierarchical DI container.

    - bind keys to values produced from other keys
    - cache values per scope, in the nearest container owning that scope
    - children fall back to their ancestors' bindings
    - structured requests (lists, tuples, dicts) and wrapper keys
      (Lazy, Provider, Optional, Build, Async).

    A root container owns `Singleton`. A whole tree of containers shares one
    re-entrant lock, taken while registering and while resolving.
    """

    def __init__(self, parent: Container | None = None, scopes: Iterable[Scope] = ()) -> None:
        self._parent = parent
        self._bindings: dict[Key, Binding] = {}
        self._scopes: set[Scope] = set()
        self._cache: dict[Slot, _Entry] = {}
        self._in_progress: set[Key] = set()
        self._lock: threading.RLock = parent._lock if parent is not None else threading.RLock()

        if parent is None:
            self._scopes.add(Singleton)
        self.add_scope(*scopes)

    def __repr__(self) -> str:
        scopes = sorted(str(s.name) for s in self._scopes)
        return f"<Container scopes={scopes} bindings={len(self._bindings)} at {id(self):#x}>"

    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def scopes(self) -> frozenset[Scope]:
        """Scopes owned by this container (not its ancestors)."""
        return frozenset(self._scopes)

    def owns(self, scope: Scope) -> bool:
        return scope in self._scopes

    def is_bound(self, key: Key | type) -> bool:
        """Whether this container or one of its ancestors holds an explicit binding for `key`."""
        if isinstance(key, type):
            key = key_for(key)
        container: Container | None = self
        while container is not None:
            if key in container._bindings:
                return True
            container = container._parent
        return False

    # Registration

    def bind(self, key: Key | type, binding: Binding, *, scope: Scope | None = None) -> Container:
        """Register `binding` for `key`, replacing any previous binding on this container.

        `scope` overrides the binding's own scope. With neither, the key's
        default scope applies, and a key without one is never cached. A class
        stands for its own key, so injectable classes can be overridden.
        """
        if isinstance(key, type) and key is not Container:
            key = key_for(key)
        if not isinstance(key, Key):
            msg = f"Bindings are registered for keys, got {key!r}"
            raise TypeError(msg)
        if not isinstance(binding, Binding):
            msg = f"Expected a Binding, got {binding!r}"
            raise TypeError(msg)
        if scope is not None:
            _validate_scope(scope)
            binding = replace(binding, scope=scope)

        with self._lock:
            self._bindings[key] = binding

        logger.debug("Bound %r on %r (scope=%r, async=%s)", key, self, binding.scope, binding.is_async)
        return self

    def provide(
        self,
        key: Key | type,
        dependencies: Any,
        init: Callable[[Any], Any],
        *,
        scope: Scope | None = None,
    ) -> Container:
        """Bind `key` to `init(resolved dependencies)`.

        Example:
          container.provide(Greeting, {"name": Name}, lambda d: f"Hello {d['name']}")
          container.provide(Db, Config, make_db, scope=Singleton)

        """
        _validate_init(init)
        return self.bind(key, Binding(dependencies, init), scope=scope)

    def provide_async(
        self,
        key: Key | type,
        dependencies: Any,
        init: Callable[[Any], Any],
        *,
        scope: Scope | None = None,
    ) -> Container:
        """Bind `key` to an asynchronously produced value.

        `dependencies` are resolved with async bindings allowed and `init` may
        be a coroutine function. Requesting the key then requires `Async`.
        """
        _validate_init(init)
        return self.bind(key, Binding(dependencies, init, is_async=True), scope=scope)

    def provide_instance(self, key: Key | type, instance: object) -> Container:
        """Bind `key` to a pre-built instance."""
        return self.bind(key, bind_instance(instance))

    def add_scope(self, *scopes: Scope) -> Container:
        """Declare this container as the owner (and cache) of `scopes`."""
        for scope in scopes:
            _validate_scope(scope)

        with self._lock:
            self._scopes.update(scopes)

        if scopes:
            logger.debug("%r owns %r", self, scopes)
        return self

    def create_child(
        self,
        *scopes: Scope,
        configure: Callable[[Container], Container | None] | None = None,
    ) -> Container:
        """Create a container that resolves in itself first, then falls back to this one.

        `configure` is applied to the new child like a module, and its result
        (or the child, when it returns `None`) is returned.

        Example:
          request = app.create_child(Request, configure=lambda ct: ct.provide_instance(PathKey, "/"))

        """
        child = Container(self, scopes)
        logger.debug("Created child %r of %r", child, self)
        if configure is None:
            return child
        return child.apply(configure)

    def apply(self, *modules: Callable[[Container], Container | None]) -> Container:
        """Run each module against this container, in order."""
        container = self
        for module in modules:
            logger.debug("Applying %r to %r", module, container)
            result = module(container)
            if result is not None:
                container = result
        return container

    # Resolution

    def request(self, tree: Any) -> Any:
        """Resolve a key, wrapper or structure of them.

        The result has the shape of `tree`. When `tree` contains an `Async`
        wrapper, a `Deferred` of the whole result is returned instead.

        Raise a `ResolutionError` subclass when a dependency cannot be provided.
        """
        return self._evaluate(tree, (), asynchronous=False)

    async def arequest(self, tree: Any) -> Any:
        """Resolve `tree` with asynchronous bindings allowed and await the result."""
        with self._lock:
            init = self._plan(tree, (), asynchronous=True)

        if isinstance(init, ResolutionError):
            raise init
        return await init.aget()

    def build(self, key: Key, *args: Any) -> Container:
        """Request the factory behind a `SubcomponentKey` and call it with `args`."""
        return self.request(key)(*args)

    def _evaluate(self, tree: Any, path: Path, *, asynchronous: bool) -> Any:
        with self._lock:
            init = self._plan(tree, path, asynchronous=asynchronous)
            if isinstance(init, ResolutionError):
                raise init
            if init.is_async:
                return Deferred(init.aget)
            return init.get()

    def _plan(self, tree: Any, path: Path, *, asynchronous: bool) -> Initializer | ResolutionError:
        """Plan the resolution of `tree` from this container.

        Lookup failures are returned, not raised, so wrappers such as
        `Optional` can act on them. Nothing is produced until the returned
        initializer runs.
        """
        if tree is None:
            return Initializer.constant(None)

        if tree is Container:
            return Initializer.constant(self)

        if isinstance(tree, Key):
            return self._plan_key(tree, path, asynchronous=asynchronous)

        if isinstance(tree, type):
            return self._plan_key(key_for(tree), path, asynchronous=asynchronous)

        if isinstance(tree, BaseKey):
            return tree.init(_Resolution(self, path, asynchronous=asynchronous))

        if isinstance(tree, Mapping):
            names = list(tree)
            planned = self._plan_all([tree[name] for name in names], path, asynchronous=asynchronous)
            if isinstance(planned, ResolutionError):
                return planned
            return Initializer.combine(planned, lambda values: dict(zip(names, values)))

        if isinstance(tree, (list, tuple)):
            planned = self._plan_all(tree, path, asynchronous=asynchronous)
            if isinstance(planned, ResolutionError):
                return planned
            return Initializer.combine(planned, list if isinstance(tree, list) else tuple)

        msg = f"Unsupported dependency {tree!r}; expected a Key, a class, a wrapper, a list, tuple or dict of them, or None"
        raise TypeError(msg)

    def _plan_all(self, trees: Iterable[Any], path: Path, *, asynchronous: bool) -> list[Initializer] | ResolutionError:
        planned = []
        for tree in trees:
            init = self._plan(tree, path, asynchronous=asynchronous)
            if isinstance(init, ResolutionError):
                return init
            planned.append(init)
        return planned

    def _plan_key(self, key: Key, path: Path, *, asynchronous: bool) -> Initializer | ResolutionError:  # noqa: C901
        keys = (*(k for _, k in path), key)

        binding, binding_container = self._find_binding(key)
        if binding is None:
            return MissingBindingError(key, keys)

        if binding.is_async and not asynchronous:
            return AsyncMisuseError(key, keys, "request it through Async")

        scope = binding.scope if binding.scope is not None else key.scope
        owner = None
        context = self
        if scope is not None:
            owner = self._find_owner(scope)
            if owner is None:
                return ScopeUnavailableError(key, scope, keys)

            entry = owner._cache.get((scope, key, binding))
            if entry is not None:
                return entry.initializer()

            context = self._closest(owner, binding_container)

        marker = (context, key)
        if marker in path:
            return CyclicDependencyError(key, keys)

        deps = context._plan(binding.dependencies, (*path, marker), asynchronous=binding.is_async)
        if isinstance(deps, ResolutionError):
            return deps

        if binding.is_async:
            return Initializer(aget=partial(context._produce_async, key, binding, deps, owner, scope))

        if deps.is_async:
            return AsyncMisuseError(key, keys, "its dependencies need asynchronous resolution; bind it with provide_async")

        return Initializer(partial(context._produce, key, binding, deps, owner, scope))

    def _produce(
        self,
        key: Key,
        binding: Binding,
        deps: Initializer,
        owner: Container | None,
        scope: Scope | None,
    ) -> Any:
        slot = (scope, key, binding)
        with self._lock:
            if owner is not None:
                entry = owner._cache.get(slot)
                if entry is not None:
                    return entry.value

            if key in self._in_progress:
                raise CyclicDependencyError(key, (key,), "the binding was re-entered while producing its value")

            self._in_progress.add(key)
            try:
                value = binding.init(deps.get())
            finally:
                self._in_progress.discard(key)

            if owner is not None:
                owner._cache[slot] = _Entry(value)
                logger.debug("Cached %r in %r for %r", key, owner, scope)

            return value

    async def _produce_async(
        self,
        key: Key,
        binding: Binding,
        deps: Initializer,
        owner: Container | None,
        scope: Scope | None,
    ) -> Any:
        marker = (owner if owner is not None else self, scope, key, binding)
        if marker in _producing.get():
            raise CyclicDependencyError(key, (key,), "the binding was re-entered while producing its value")

        if owner is None:
            return await _run_async(binding, deps, marker)

        # the task is stored before the first suspension so concurrent first
        # requests share a single invocation
        slot = (scope, key, binding)
        with self._lock:
            entry = owner._cache.get(slot)
            if entry is None:
                task = asyncio.ensure_future(_run_async(binding, deps, marker))
                entry = _Entry(task, is_async=True, producer=marker)
                owner._cache[slot] = entry
                task.add_done_callback(partial(owner._discard_failed, slot, entry))
                logger.debug("Cached pending %r in %r for %r", key, owner, scope)

        return await entry.wait()

    def _discard_failed(self, slot: Slot, entry: _Entry, task: asyncio.Future[Any]) -> None:
        if not task.cancelled() and task.exception() is None:
            return

        with self._lock:
            if self._cache.get(slot) is entry:
                del self._cache[slot]
                logger.debug("Dropped failed %r from %r", slot[1], self)

    def _find_binding(self, key: Key) -> tuple[Binding, Container] | tuple[None, None]:
        """Nearest explicit binding in the ancestry, else the key's default evaluated here."""
        container: Container | None = self
        while container is not None:
            binding = container._bindings.get(key)
            if binding is not None:
                return binding, container
            container = container._parent

        if key.default is not None:
            return key.default, self

        return None, None

    def _find_owner(self, scope: Scope) -> Container | None:
        container: Container | None = self
        while container is not None:
            if scope in container._scopes:
                return container
            container = container._parent
        return None

    def _closest(self, *candidates: Container) -> Container:
        container: Container | None = self
        while container is not None:
            if any(container is c for c in candidates):
                return container
            container = container._parent

        msg = f"None of {candidates!r} is an ancestor of {self!r}"
        raise ValueError(msg)


class _Resolution:
    """The `Resolver` handed to wrapper keys: a container, a path and a mode."""

    __slots__ = ("asynchronous", "container", "path")

    def __init__(self, container: Container, path: Path, *, asynchronous: bool) -> None:
        self.container = container
        self.path = path
        self.asynchronous = asynchronous

    @property
    def lock(self) -> threading.RLock:
        return self.container._lock  # noqa: SLF001

    def plan(self, tree: Any, *, asynchronous: bool | None = None) -> Initializer | ResolutionError:
        if asynchronous is None:
            asynchronous = self.asynchronous
        return self.container._plan(tree, self.path, asynchronous=asynchronous)  # noqa: SLF001

    def evaluate(self, tree: Any) -> Any:
        # Deferred evaluation starts a fresh path; re-entrance is caught while producing.
        return self.container._evaluate(tree, (), asynchronous=self.asynchronous)  # noqa: SLF001


async def _run_async(binding: Binding, deps: Initializer, marker: _Marker) -> Any:
    token = _producing.set(_producing.get() | {marker})
    try:
        value = binding.init(await deps.aget())
        if inspect.isawaitable(value):
            value = await value
        return value
    finally:
        _producing.reset(token)


def _validate_init(init: object) -> None:
    if not callable(init):
        msg = f"Binding init must be callable, got {init!r}"
        raise TypeError(msg)


def _validate_scope(scope: object) -> None:
    if not isinstance(scope, Scope):
        msg = f"Expected a Scope, got {scope!r}"
        raise TypeError(msg)


def create_root(*scopes: Scope) -> Container:
    """Create a root container. It owns `Singleton` and any extra `scopes`."""
    return Container(scopes=scopes)
