# -*- test-case-name: weakdictionary.test.test_extensions -*-
"""
Get-or-create and update-or-insert helpers for any L{MutableMapping}.

None of these are atomic; callers that share a mapping between threads must
hold their own lock around them.
"""
from __future__ import annotations

from typing import Callable, MutableMapping, TypeVar

K = TypeVar("K")
V = TypeVar("V")

_missing = object()


def getOrAdd(
    mapping: MutableMapping[K, V], key: K, valueFactory: Callable[[K], V]
) -> V:
    """
    Return the value for C{key}, calling C{valueFactory(key)} and storing its
    result only if C{key} is not present.
    """
    value = mapping.get(key, _missing)
    if value is _missing:
        value = mapping[key] = valueFactory(key)
    return value  # type:ignore[return-value]


def addOrUpdate(
    mapping: MutableMapping[K, V],
    key: K,
    addValueFactory: Callable[[K], V],
    updateValueFactory: Callable[[K, V], V],
) -> V:
    """
    Store C{addValueFactory(key)} if C{key} is absent, or
    C{updateValueFactory(key, old)} if it is present.

    @return: the value now stored for C{key}.
    """
    old = mapping.get(key, _missing)
    if old is _missing:
        new = addValueFactory(key)
    else:
        new = updateValueFactory(key, old)  # type:ignore[arg-type]
    mapping[key] = new
    return new


def tryRemove(mapping: MutableMapping[K, V], key: K) -> tuple[V | None, bool]:
    """
    Remove C{key} if it is present.

    @return: the removed value and C{True}, or C{(None, False)}.
    """
    value = mapping.pop(key, _missing)
    if value is _missing:
        return None, False
    return value, True  # type:ignore[return-value]
