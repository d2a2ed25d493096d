from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence


class ResolutionError(RuntimeError):
    """Base class for failures to resolve a dependency.

    `key` is the key that could not be resolved and `path` lists the keys
    from the outermost request down to it.
    """

    def __init__(self, key: Any, path: Sequence[Any] = (), detail: str | None = None) -> None:
        self.key = key
        self.path = tuple(path)
        self.detail = detail
        super().__init__(self._format())

    def _describe(self) -> str:
        return f"Unable to resolve {self.key!r}"

    def _format(self) -> str:
        msg = self._describe()
        if self.detail:
            msg = f"{msg}: {self.detail}"
        if len(self.path) > 1:
            msg = f"{msg} (path: {' -> '.join(repr(k) for k in self.path)})"
        return msg


class MissingBindingError(ResolutionError, LookupError):
    def _describe(self) -> str:
        return f"No binding found for {self.key!r}"


class ScopeUnavailableError(ResolutionError):
    def __init__(self, key: Any, scope: Any, path: Sequence[Any] = ()) -> None:
        self.scope = scope
        super().__init__(key, path)

    def _describe(self) -> str:
        return f"No container in the ancestry of the request owns {self.scope!r}, required by {self.key!r}"


class CyclicDependencyError(ResolutionError):
    def _describe(self) -> str:
        return f"Cyclic dependency detected while resolving {self.key!r}"


class AsyncMisuseError(ResolutionError):
    def _describe(self) -> str:
        return f"{self.key!r} can only be resolved asynchronously"
