# -*- test-case-name: weakdictionary.test.test_benchmark -*-
"""
Compare L{WeakDictionary} against L{dict} and L{WeakKeyDictionary}.

Run with C{python -m weakdictionary.benchmark [N] [REPEAT]}.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Callable, MutableMapping, Sequence
from weakref import WeakKeyDictionary

from .weakdict import WeakDictionary

Container = MutableMapping[Any, int]


class BenchmarkKey:
    """
    A key that can be weakly referenced and hashes by identity.
    """


@dataclass(frozen=True)
class Contender:
    name: str
    create: Callable[[], Container]
    add: Callable[[Container, object, int], None]


def _setItem(container: Container, key: object, value: int) -> None:
    container[key] = value


def _addItem(container: Container, key: object, value: int) -> None:
    container.add(key, value)  # type:ignore[attr-defined]


contenders = [
    Contender("WeakDictionary", WeakDictionary, _addItem),
    Contender("dict", dict, _setItem),
    Contender("WeakKeyDictionary", WeakKeyDictionary, _setItem),
]


@dataclass(frozen=True)
class Measurement:
    operation: str
    container: str
    seconds: float


def _populated(contender: Contender, keys: Sequence[object]) -> Container:
    container = contender.create()
    for i, key in enumerate(keys):
        contender.add(container, key, i)
    return container


def _add(contender: Contender, keys: Sequence[object]) -> float:
    container = contender.create()
    started = perf_counter()
    for i, key in enumerate(keys):
        contender.add(container, key, i)
    return perf_counter() - started


def _set(contender: Contender, keys: Sequence[object]) -> float:
    container = _populated(contender, keys)
    started = perf_counter()
    for i, key in enumerate(keys):
        container[key] = i + 1
    return perf_counter() - started


def _remove(contender: Contender, keys: Sequence[object]) -> float:
    container = _populated(contender, keys)
    started = perf_counter()
    for key in keys:
        del container[key]
    return perf_counter() - started


def _lookup(contender: Contender, keys: Sequence[object]) -> float:
    container = _populated(contender, keys)
    started = perf_counter()
    for key in keys:
        container.get(key)
    return perf_counter() - started


operations: dict[str, Callable[[Contender, Sequence[object]], float]] = {
    "add": _add,
    "set": _set,
    "remove": _remove,
    "lookup": _lookup,
}


def measure(n: int = 100_000, repeat: int = 3) -> list[Measurement]:
    """
    Time each operation over C{n} fresh keys for every contender, keeping the
    best of C{repeat} runs.
    """
    results = []
    for operation, run in operations.items():
        for contender in contenders:
            best = min(
                run(contender, [BenchmarkKey() for _ in range(n)])
                for _ in range(repeat)
            )
            results.append(Measurement(operation, contender.name, best))
    return results


def main(argv: Sequence[str] = sys.argv[1:]) -> None:
    n = int(argv[0]) if len(argv) > 0 else 100_000
    repeat = int(argv[1]) if len(argv) > 1 else 3
    print(f"{'operation':<10}{'container':<20}{'seconds':>12}")
    for result in measure(n, repeat):
        print(
            f"{result.operation:<10}{result.container:<20}"
            f"{result.seconds:>12.6f}"
        )


if __name__ == "__main__":
    main()
