# -*- test-case-name: weakdictionary.test.test_equivalence -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

if TYPE_CHECKING:
    from .hasher import HashMemoRef

K = TypeVar("K")
Kcon = TypeVar("Kcon", contravariant=True)


class KeyEquivalence(Protocol[Kcon]):
    """
    A strategy for comparing and hashing keys.

    Implementations must be deterministic for a given live object, and
    C{hash} must agree with C{equal}: keys which are C{equal} must have the
    same C{hash}.
    """

    def equal(self, a: Kcon, b: Kcon) -> bool:
        """
        Are C{a} and C{b} the same key?
        """

    def hash(self, key: Kcon) -> int:
        """
        Compute a hash code for C{key}.
        """


@dataclass(frozen=True)
class NaturalEquivalence:
    """
    Compare keys with C{==} and hash them with L{hash}, just like L{dict}.
    """

    def equal(self, a: object, b: object) -> bool:
        return bool(a == b)

    def hash(self, key: object) -> int:
        return hash(key)


_NaturalEquivalenceImplements: KeyEquivalence[object] = NaturalEquivalence()


@dataclass(frozen=True)
class IdentityEquivalence:
    """
    Compare keys by identity, so that keys which are equal but distinct
    objects (or keys which aren't hashable at all) get separate entries.
    """

    def equal(self, a: object, b: object) -> bool:
        return a is b

    def hash(self, key: object) -> int:
        return id(key)


_IdentityEquivalenceImplements: KeyEquivalence[object] = IdentityEquivalence()


@dataclass(frozen=True)
class LivenessAwareEquivalence(Generic[K]):
    """
    Compare L{HashMemoRef}s by first checking whether their keys are still
    alive, and then by the wrapped L{KeyEquivalence}.

    Two dead references are equal to each other.  This lets a map bucket and
    remove an entry whose key has been collected, but it also means that two
    I{different} dead entries in the same bucket are indistinguishable, so
    dead entries need to be evicted promptly.
    """

    keys: KeyEquivalence[K]

    def equal(self, a: HashMemoRef[K], b: HashMemoRef[K]) -> bool:
        left = a.target()
        right = b.target()
        if left is None or right is None:
            return left is None and right is None
        return self.keys.equal(left, right)

    def hash(self, handle: HashMemoRef[K]) -> int:
        return handle.memoizedHash
