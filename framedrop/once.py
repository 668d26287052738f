"""Write-once, read-many value cell."""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class OnceCell(Generic[T]):
    """Hold a lazily computed value that is initialised at most once.

    The first caller of :meth:`get_or_init` runs the factory under an
    exclusive lock; concurrent first callers block until it finishes and
    then observe the same value.  After initialisation reads take no
    lock.  ``None`` is a valid stored value.

    If the factory raises, the cell stays empty and the exception
    propagates, so a later call can try again.
    """

    def __init__(self) -> None:
        self._value: object = _UNSET
        self._lock = threading.Lock()

    def get_or_init(self, factory: Callable[[], T]) -> T:
        value = self._value
        if value is not _UNSET:
            return value  # type: ignore[return-value]
        with self._lock:
            if self._value is _UNSET:
                self._value = factory()
            return self._value  # type: ignore[return-value]

    @property
    def initialized(self) -> bool:
        return self._value is not _UNSET

    def reset(self) -> None:
        """Forget the stored value.  Intended for tests."""
        with self._lock:
            self._value = _UNSET
