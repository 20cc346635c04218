"""Reusable scratch containers for the encode hot path.

The merge engine and pipeline need short-lived lists on every call.  A
:class:`ScratchPool` keeps released containers around so steady-state
encoding does not allocate them afresh.

Pools are **not** thread-safe: share a pipeline across threads only if
each thread encodes through its own pipeline instance.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

T = TypeVar("T")


class ScratchPool(Generic[T]):
    """Free-list of reusable objects built by *factory*.

    Parameters
    ----------
    factory
        Creates a new object when the free-list is empty.
    reset
        Clears an object before it goes back on the free-list.  Defaults
        to calling ``obj.clear()``.
    """

    def __init__(
        self,
        factory: Callable[[], T],
        reset: Callable[[T], None] | None = None,
    ) -> None:
        self._factory = factory
        self._reset = reset if reset is not None else _clear
        self._free: list[T] = []

    def get(self) -> T:
        if self._free:
            return self._free.pop()
        return self._factory()

    def release(self, item: T) -> None:
        self._reset(item)
        self._free.append(item)

    @contextmanager
    def borrow(self) -> Iterator[T]:
        """Lend an object for the duration of a ``with`` block."""
        item = self.get()
        try:
            yield item
        finally:
            self.release(item)

    def __len__(self) -> int:
        """Number of idle objects on the free-list."""
        return len(self._free)


def _clear(item: object) -> None:
    item.clear()  # type: ignore[attr-defined]


def list_pool() -> ScratchPool[list]:
    return ScratchPool(list)
