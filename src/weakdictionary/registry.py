# -*- test-case-name: weakdictionary.test.test_registry -*-
from __future__ import annotations

from typing import Callable, Generic, TypeVar

from .equivalence import LivenessAwareEquivalence
from .hasher import FinalizableRef

K = TypeVar("K")


class FinalizationRegistry(Generic[K]):
    """
    A side table of L{FinalizableRef}s, keyed by the identity of the live
    objects they track.

    The registry never holds its keys strongly, and it does not remove slots
    by itself: whoever receives a L{FinalizableRef}'s callback is responsible
    for calling L{FinalizationRegistry.forget}.
    """

    def __init__(self, equivalence: LivenessAwareEquivalence[K]) -> None:
        self._equivalence = equivalence
        self._slots: dict[int, FinalizableRef[K]] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: object) -> bool:
        return self.lookup(key) is not None

    def __del__(self) -> None:
        self.clear()

    def register(
        self, key: K, onFinalizing: Callable[[FinalizableRef[K]], None]
    ) -> FinalizableRef[K]:
        """
        Start tracking C{key}; C{onFinalizing} will be called with the new
        L{FinalizableRef} once C{key} has been collected, unless the slot is
        detached first.
        """
        if self.lookup(key) is not None:
            raise ValueError(f"{key!r} is already registered")
        handle = FinalizableRef.tracking(key, self._equivalence, onFinalizing)
        self._slots[handle.identity] = handle
        return handle

    def lookup(self, key: object) -> FinalizableRef[K] | None:
        """
        Find the slot tracking exactly C{key}, if there is one.
        """
        handle = self._slots.get(id(key))
        # an id() may be recycled by a new object before a dead slot is
        # forgotten
        if handle is None or handle.target() is not key:
            return None
        return handle

    def detach(self, key: object) -> FinalizableRef[K] | None:
        """
        Remove the slot tracking C{key} and unhook its callback.

        @return: the detached handle, or L{None} if C{key} was not tracked.
        """
        handle = self.lookup(key)
        if handle is not None:
            handle.detach()
            del self._slots[handle.identity]
        return handle

    def forget(self, handle: FinalizableRef[K]) -> bool:
        """
        Drop the slot for a C{handle} whose key has been collected.
        """
        if self._slots.get(handle.identity) is handle:
            del self._slots[handle.identity]
            return True
        return False

    def clear(self) -> None:
        for handle in self._slots.values():
            handle.detach()
        self._slots.clear()
