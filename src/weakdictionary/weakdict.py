# -*- test-case-name: weakdictionary.test.test_weakdict -*-
from __future__ import annotations

from contextlib import contextmanager
from threading import RLock
from typing import (
    Callable,
    Iterable,
    Iterator,
    Mapping,
    MutableMapping,
    TypeVar,
)
from weakref import ref

from twisted.logger import Logger

from .equivalence import (
    KeyEquivalence,
    LivenessAwareEquivalence,
    NaturalEquivalence,
)
from .extensions import addOrUpdate, getOrAdd, tryRemove
from .hasher import FinalizableRef, HashMemoRef
from .registry import FinalizationRegistry

K = TypeVar("K")
V = TypeVar("V")

log = Logger()

_missing = object()


class InvalidArgument(ValueError):
    """
    A required argument was L{None}, or not the kind of object it needs to be.
    """

    def __init__(
        self, argumentName: str, reason: str = "must not be None"
    ) -> None:
        super().__init__(f"{argumentName} {reason}")
        self.argumentName = argumentName


class DuplicateKey(ValueError):
    """
    An entry with an equal key already exists.
    """

    def __init__(self, key: object) -> None:
        super().__init__(f"an entry with the key {key!r} already exists")
        self.key = key


class WeakDictionary(MutableMapping[K, V]):
    """
    A thread-safe mapping whose keys are referenced weakly, compared with a
    caller-supplied L{KeyEquivalence}.

    Entries are removed some time after their keys are collected, so C{len()}
    and L{WeakDictionary.values} may briefly include entries whose keys are
    already gone; L{WeakDictionary.keys} never does.

    A value that refers strongly to its own key keeps that key, and so the
    entry, alive for as long as the dictionary itself is alive.
    """

    def __init__(
        self,
        items: Mapping[K, V] | Iterable[tuple[K, V]] = (),
        equivalence: KeyEquivalence[K] = NaturalEquivalence(),
    ) -> None:
        if items is None:
            raise InvalidArgument("items")
        if equivalence is None:
            raise InvalidArgument("equivalence")
        self._equivalence = LivenessAwareEquivalence(equivalence)
        self._storage: dict[HashMemoRef[K], V] = {}
        self._registry: FinalizationRegistry[K] = FinalizationRegistry(
            self._equivalence
        )
        self._lock = RLock()
        self._depth = 0
        self._pendingEvictions: list[FinalizableRef[K]] = []

        def finalized(
            handle: FinalizableRef[K],
            selfref: ref[WeakDictionary[K, V]] = ref(self),
        ) -> None:
            self = selfref()
            if self is not None:
                self._finalized(handle)

        self._keyFinalized = finalized
        pairs = items.items() if isinstance(items, Mapping) else items
        for key, value in pairs:
            self.add(key, value)

    def __repr__(self) -> str:
        return (
            "WeakDictionary({"
            + ", ".join(f"{key!r}: {value!r}" for key, value in self.items())
            + "})"
        )

    # locking

    @contextmanager
    def _critical(self) -> Iterator[None]:
        """
        Hold the lock; evictions that arrive from this same thread in the
        meantime are queued and performed on the way out.
        """
        with self._lock:
            self._depth += 1
            try:
                yield
            finally:
                try:
                    if self._depth == 1:
                        self._drainEvictions()
                finally:
                    self._depth -= 1

    def _finalized(self, handle: FinalizableRef[K]) -> None:
        with self._lock:
            if self._depth:
                # a collection ran while this thread was in the middle of
                # touching _storage
                self._pendingEvictions.append(handle)
                return
            with self._critical():
                self._evictQuietly(handle)

    def _drainEvictions(self) -> None:
        while self._pendingEvictions:
            self._evictQuietly(self._pendingEvictions.pop())

    def _evictQuietly(self, handle: FinalizableRef[K]) -> None:
        try:
            value, found = tryRemove(self._storage, handle)
            self._registry.forget(handle)
            if found:
                log.debug(
                    "evicted entry for collected key with hash {hash}",
                    hash=handle.memoizedHash,
                )
        except Exception:
            log.failure(
                "while evicting entry for collected key with hash {hash}",
                hash=handle.memoizedHash,
            )

    # helpers

    def _checkKey(self, key: object) -> None:
        if key is None:
            raise InvalidArgument("key")

    def _handleFor(self, key: K) -> HashMemoRef[K]:
        return HashMemoRef.forKey(key, self._equivalence)

    def _track(self, key: K) -> FinalizableRef[K]:
        return self._registry.register(key, self._keyFinalized)

    def _storedKey(self, key: K, probe: HashMemoRef[K]) -> K | None:
        """
        Find the live key object actually stored for C{key}.

        This is C{key} itself in the common case; when C{key} is merely equal
        to the stored key we have to scan for it, since the registry only
        knows about identity.
        """
        if key in self._registry:
            return key
        if probe not in self._storage:
            return None
        for handle in list(self._storage):
            if handle == probe:
                return handle.target()
        return None

    # reads

    @property
    def count(self) -> int:
        """
        The number of entries, including any whose keys have been collected
        but which have not been evicted yet.
        """
        return len(self._storage)

    def __len__(self) -> int:
        return len(self._storage)

    def tryGet(self, key: K) -> tuple[V | None, bool]:
        """
        Look up C{key}.

        @return: the value and C{True} if C{key} is present, C{(None, False)}
            otherwise.
        """
        self._checkKey(key)
        value = self._storage.get(self._handleFor(key), _missing)
        if value is _missing:
            return None, False
        return value, True  # type:ignore[return-value]

    def containsKey(self, key: K) -> bool:
        self._checkKey(key)
        return self._handleFor(key) in self._storage

    def containsItem(self, key: K, value: V) -> bool:
        """
        Is C{key} present with a value equal to C{value}?
        """
        stored, found = self.tryGet(key)
        return found and stored == value

    def __contains__(self, key: object) -> bool:
        if key is None:
            return False
        try:
            probe = self._handleFor(key)  # type:ignore[arg-type]
        except TypeError:
            return False
        return probe in self._storage

    def __getitem__(self, key: K) -> V:
        value, found = self.tryGet(key)
        if not found:
            raise KeyError(key)
        return value  # type:ignore[return-value]

    def get(  # type:ignore[override]
        self, key: K, default: V | None = None
    ) -> V | None:
        value, found = self.tryGet(key)
        return value if found else default

    def keys(self) -> list[K]:  # type:ignore[override]
        """
        Snapshot the keys which are still alive.

        This is a list in storage order, not a keys view; compare two of them
        with C{set()} if order should not matter.
        """
        with self._critical():
            handles = list(self._storage)
        return [
            key for handle in handles if (key := handle.target()) is not None
        ]

    def values(self) -> list[V]:  # type:ignore[override]
        """
        Snapshot all the values, including those of entries whose keys have
        been collected but not yet evicted.
        """
        with self._critical():
            return list(self._storage.values())

    def items(self) -> list[tuple[K, V]]:  # type:ignore[override]
        """
        Snapshot the C{(key, value)} pairs whose keys are still alive, as a
        list rather than an items view.
        """
        with self._critical():
            pairs = list(self._storage.items())
        return [
            (key, value)
            for handle, value in pairs
            if (key := handle.target()) is not None
        ]

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())

    # writes

    def add(self, key: K, value: V) -> None:
        """
        Add a new entry.

        @raise DuplicateKey: if an entry with an equal key already exists.
        """
        self._checkKey(key)
        with self._critical():
            probe = self._handleFor(key)
            if probe in self._storage:
                raise DuplicateKey(key)
            self._storage[probe] = value
            self._track(key)

    def getOrAdd(self, key: K, valueFactory: Callable[[K], V]) -> V:
        """
        Return the value for C{key}, adding C{valueFactory(key)} first if
        there isn't one.  C{valueFactory} is called at most once.
        """
        self._checkKey(key)
        if valueFactory is None:
            raise InvalidArgument("valueFactory")
        if not callable(valueFactory):
            raise InvalidArgument("valueFactory", "must be callable")
        created = False

        def create(handle: HashMemoRef[K]) -> V:
            nonlocal created
            created = True
            return valueFactory(key)

        with self._critical():
            value = getOrAdd(self._storage, self._handleFor(key), create)
            if created:
                self._track(key)
            return value

    def setdefault(self, key: K, default: V) -> V:  # type:ignore[override]
        return self.getOrAdd(key, lambda key: default)

    def __setitem__(self, key: K, value: V) -> None:
        self._checkKey(key)
        with self._critical():
            probe = self._handleFor(key)
            stored = self._storedKey(key, probe)
            if stored is not None and stored is not key:
                # re-key the entry so that it tracks the caller's object
                self._registry.detach(stored)
                del self._storage[probe]
                stored = None

            def update(handle: HashMemoRef[K], old: V) -> V:
                self._registry.detach(key)
                self._track(key)
                return value

            addOrUpdate(self._storage, probe, lambda handle: value, update)
            if stored is None:
                self._track(key)

    def remove(self, key: K) -> bool:
        """
        Remove the entry for C{key}.

        @return: whether there was an entry to remove.
        """
        self._checkKey(key)
        with self._critical():
            probe = self._handleFor(key)
            stored = self._storedKey(key, probe)
            if stored is None:
                return False
            self._registry.detach(stored)
            value, found = tryRemove(self._storage, probe)
            return found

    def removeItem(self, key: K, value: V) -> bool:
        """
        Remove the entry for C{key} only if its value is equal to C{value}.
        """
        with self._critical():
            return self.containsItem(key, value) and self.remove(key)

    def __delitem__(self, key: K) -> None:
        if not self.remove(key):
            raise KeyError(key)

    def pop(self, key: K, default: object = _missing) -> object:  # type:ignore[override]
        with self._critical():
            value, found = self.tryGet(key)
            if found:
                self.remove(key)
                return value
        if default is _missing:
            raise KeyError(key)
        return default

    def clear(self) -> None:
        with self._critical():
            self._storage.clear()
            self._registry.clear()
