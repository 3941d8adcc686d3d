"""
Shared fixtures: a script engine that counts its work, and a sheet using it.
"""

from collections import Counter

import pytest
import gamesheet


class CountingEngine(gamesheet.PythonScriptEngine):
    """PythonScriptEngine that counts parses and evaluations per entry name."""

    def __init__(self):
        super().__init__()
        self.parses = Counter()
        self.evaluations = Counter()

    def parse(self, source, filename="<script>"):
        self.parses[filename] += 1
        return super().parse(source, filename)

    def evaluate(self, script, lookup, prelude):
        self.evaluations[script.filename] += 1
        return super().evaluate(script, lookup, prelude)


@pytest.fixture
def engine():
    return CountingEngine()


@pytest.fixture
def sheet(engine):
    return gamesheet.Sheet(engine=engine)
