# -*- test-case-name: weakdictionary.test.test_hasher -*-
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar
from weakref import finalize, ref

from .equivalence import LivenessAwareEquivalence

K = TypeVar("K")


@dataclass(eq=False)
class HashMemoRef(Generic[K]):
    """
    Hash and compare by a key which may no longer be alive.
    """

    value: ref[K]
    memoizedHash: int
    equivalence: LivenessAwareEquivalence[K] = field(repr=False)

    @classmethod
    def forKey(
        cls, key: K, equivalence: LivenessAwareEquivalence[K]
    ) -> HashMemoRef[K]:
        """
        Create a L{HashMemoRef} for a live C{key}, computing its hash now.
        """
        return cls(ref(key), equivalence.keys.hash(key), equivalence)

    def target(self) -> K | None:
        """
        The key, or L{None} if it has been collected.
        """
        return self.value()

    @property
    def alive(self) -> bool:
        return self.value() is not None

    def __hash__(self) -> int:
        """
        Return the hash of the key as it was when this reference was created,
        whether or not the key is still alive.
        """
        return self.equivalence.hash(self)

    def __eq__(self, other: object) -> bool:
        """
        Is this equal to another object?  Note that this compares equal only to
        another L{HashMemoRef}, not the underlying key object.
        """
        if not isinstance(other, HashMemoRef):
            return NotImplemented
        return self.equivalence.equal(self, other)


@dataclass(eq=False)
class FinalizableRef(HashMemoRef[K]):
    """
    A L{HashMemoRef} that calls C{finalizingCallback} with itself once its
    key has been collected.
    """

    identity: int = 0
    finalizingCallback: Callable[[FinalizableRef[K]], None] | None = None
    _finalizer: finalize | None = field(default=None, repr=False)

    @classmethod
    def tracking(
        cls,
        key: K,
        equivalence: LivenessAwareEquivalence[K],
        callback: Callable[[FinalizableRef[K]], None] | None = None,
    ) -> FinalizableRef[K]:
        self = cls(
            ref(key),
            equivalence.keys.hash(key),
            equivalence,
            id(key),
            callback,
        )
        self._finalizer = finalize(key, self._finalizing)
        # don't report keys that are still alive at interpreter exit
        self._finalizer.atexit = False
        return self

    def _finalizing(self) -> None:
        callback, self.finalizingCallback = self.finalizingCallback, None
        if callback is not None:
            callback(self)

    def detach(self) -> None:
        """
        Stop tracking the key; collecting it later will not call anything.
        """
        self.finalizingCallback = None
        if self._finalizer is not None:
            self._finalizer.detach()
