from __future__ import annotations

import gc
from dataclasses import dataclass

from twisted.trial.unittest import SynchronousTestCase as TC

from ..equivalence import LivenessAwareEquivalence, NaturalEquivalence
from ..hasher import FinalizableRef, HashMemoRef


@dataclass(frozen=True)
class Name:
    text: str


natural: LivenessAwareEquivalence[Name] = LivenessAwareEquivalence(
    NaturalEquivalence()
)


class HashMemoRefTests(TC):
    """
    Tests for L{HashMemoRef}.
    """

    def test_hashSurvivesKey(self) -> None:
        """
        The hash of a L{HashMemoRef} is computed when it's created and does
        not change after its key has been collected.
        """
        key = Name("x")
        expected = hash(key)
        handle = HashMemoRef.forKey(key, natural)
        self.assertEqual(hash(handle), expected)
        self.assertTrue(handle.alive)
        del key
        gc.collect()
        self.assertFalse(handle.alive)
        self.assertIs(handle.target(), None)
        self.assertEqual(hash(handle), expected)

    def test_liveEquality(self) -> None:
        """
        Two live L{HashMemoRef}s are equal when their keys are.
        """
        a, b, c = Name("a"), Name("a"), Name("c")
        self.assertEqual(
            HashMemoRef.forKey(a, natural), HashMemoRef.forKey(b, natural)
        )
        self.assertNotEqual(
            HashMemoRef.forKey(a, natural), HashMemoRef.forKey(c, natural)
        )

    def test_deadEquality(self) -> None:
        """
        Two dead L{HashMemoRef}s are equal to each other, even when their keys
        never were, but a dead one is never equal to a live one.
        """
        a, b, c = Name("a"), Name("b"), Name("a")
        deadA = HashMemoRef.forKey(a, natural)
        deadB = HashMemoRef.forKey(b, natural)
        live = HashMemoRef.forKey(c, natural)
        del a, b
        gc.collect()
        self.assertEqual(deadA, deadB)
        self.assertNotEqual(deadA, live)
        self.assertNotEqual(live, deadA)

    def test_notEqualToKey(self) -> None:
        """
        A L{HashMemoRef} is not equal to the key it refers to.
        """
        key = Name("a")
        self.assertNotEqual(HashMemoRef.forKey(key, natural), key)

    def test_unreferenceable(self) -> None:
        """
        Keys which can't be weakly referenced are rejected with L{TypeError}.
        """
        with self.assertRaises(TypeError):
            HashMemoRef.forKey("plain string", natural)  # type:ignore[arg-type]


class FinalizableRefTests(TC):
    """
    Tests for L{FinalizableRef}.
    """

    def test_callbackOnCollection(self) -> None:
        """
        Collecting the key calls the callback exactly once, with the
        L{FinalizableRef}, which is dead by then.
        """
        calls: list[tuple[FinalizableRef[Name], bool]] = []
        key = Name("k")
        handle = FinalizableRef.tracking(
            key, natural, lambda it: calls.append((it, it.alive))
        )
        self.assertEqual(handle.identity, id(key))
        self.assertEqual(calls, [])
        del key
        gc.collect()
        gc.collect()
        self.assertEqual(calls, [(handle, False)])
        self.assertIs(handle.finalizingCallback, None)

    def test_detach(self) -> None:
        """
        A detached L{FinalizableRef} never calls its callback.
        """
        calls: list[FinalizableRef[Name]] = []
        key = Name("k")
        handle = FinalizableRef.tracking(key, natural, calls.append)
        handle.detach()
        self.assertIs(handle.finalizingCallback, None)
        del key
        gc.collect()
        self.assertEqual(calls, [])

    def test_noCallback(self) -> None:
        """
        A L{FinalizableRef} without a callback is simply forgotten when its
        key is collected.
        """
        key = Name("k")
        handle = FinalizableRef.tracking(key, natural)
        del key
        gc.collect()
        self.assertFalse(handle.alive)

    def test_equalToHashMemoRef(self) -> None:
        """
        A L{FinalizableRef} and a L{HashMemoRef} for the same key are equal
        and hash the same, alive or dead.
        """
        key = Name("k")
        plain = HashMemoRef.forKey(key, natural)
        finalizable = FinalizableRef.tracking(key, natural)
        self.assertEqual(plain, finalizable)
        self.assertEqual(hash(plain), hash(finalizable))
        del key
        gc.collect()
        self.assertEqual(plain, finalizable)
        self.assertEqual(hash(plain), hash(finalizable))
