from __future__ import annotations

from contextlib import redirect_stdout
from io import StringIO

from twisted.trial.unittest import SynchronousTestCase as TC

from ..benchmark import contenders, main, measure, operations


class BenchmarkTests(TC):
    def test_measure(self) -> None:
        """
        L{measure} times every operation for every contender.
        """
        results = measure(n=20, repeat=2)
        self.assertEqual(
            [(result.operation, result.container) for result in results],
            [
                (operation, contender.name)
                for operation in operations
                for contender in contenders
            ],
        )
        for result in results:
            self.assertGreaterEqual(result.seconds, 0.0)

    def test_main(self) -> None:
        io = StringIO()
        with redirect_stdout(io):
            main(["10", "1"])
        lines = io.getvalue().splitlines()
        self.assertEqual(lines[0].split(), ["operation", "container", "seconds"])
        self.assertEqual(len(lines), 1 + len(operations) * len(contenders))
        self.assertIn("WeakDictionary", lines[1])
