"""
Tests for dependency tracking and static reference scanning.
"""

import pytest
import gamesheet
from gamesheet import EntryStatus, find_references


class TestReferenceScan:
    """Test static detection of the entry names a script mentions."""

    def test_simple_reference(self):
        """Test detection of bare names."""
        assert find_references('a + 1') == {'a'}

    def test_multiple_references(self):
        refs = find_references('max(0, spot - strike)')
        assert refs == {'spot', 'strike'}

    def test_function_names_are_not_references(self):
        """Test that called names are functions, not entries."""
        assert 'square' not in find_references('square(x)')
        assert 'max' not in find_references('max(x, y)')

    def test_lookup_by_constant_name(self):
        """Test detection of g('name')."""
        assert find_references("g('enemy health') * 2") == {'enemy health'}

    def test_locals_are_not_references(self):
        """Test that assigned names are locals."""
        source = "total = 0\nfor item in items:\n    total += item\ntotal"
        assert find_references(source) == {'items'}

    def test_conditional_references(self):
        """Test that both branches are scanned."""
        refs = find_references('a if use_a else b')
        assert refs == {'a', 'b', 'use_a'}

    def test_bad_syntax(self):
        with pytest.raises(gamesheet.ParseError):
            find_references('1 +')


class TestDependencyTracking:
    """Test runtime dependency recording."""

    def test_dependencies_recorded(self, sheet):
        """Test that reads made during evaluation become edges."""
        sheet.create('a', 'b + c')
        sheet.create('b', '1')
        sheet.create('c', '2')
        sheet.read('a')

        assert sheet.dependencies('a') == ['b', 'c']
        assert sheet.dependents('b') == ['a']
        assert sheet.dependents('c') == ['a']

    def test_edges_are_symmetric(self, sheet):
        """Test that dependencies and dependents agree for every entry."""
        sheet.create('a', 'b + c')
        sheet.create('b', 'c * 2')
        sheet.create('c', '2')
        sheet.create('d', 'a if a > 100 else b')
        sheet.read('d')

        for name in sheet.names():
            for dependency in sheet.dependencies(name):
                assert name in sheet.dependents(dependency)
            for dependent in sheet.dependents(name):
                assert name in sheet.dependencies(dependent)

    def test_no_edges_before_evaluation(self, sheet):
        """Test that edges come from evaluation, not from the script text."""
        sheet.create('a', 'b')
        sheet.create('b', '1')
        assert sheet.dependencies('a') == []
        assert sheet.dependents('b') == []

    def test_only_taken_branch_recorded(self, sheet):
        """Test that an untaken branch reads nothing."""
        sheet.create('flag', 'True')
        sheet.create('a', 'x if flag else y')
        sheet.create('x', '1')
        sheet.create('y', '2')
        sheet.read('a')

        assert sheet.dependencies('a') == ['flag', 'x']
        assert sheet.dependents('y') == []

    def test_short_circuit_reads(self, sheet):
        """Test that `and`/`or` only read what they evaluate."""
        sheet.create('off', 'False')
        sheet.create('expensive', '1')
        sheet.create('a', 'off and expensive')
        assert sheet.read('a') is False
        assert sheet.dependencies('a') == ['off']

    def test_dynamic_lookup(self, sheet):
        """Test that g() records the name it was given at runtime."""
        sheet.create('level', '2')
        sheet.create('hp_1', '100')
        sheet.create('hp_2', '150')
        sheet.create('hp', "g(f'hp_{level}')")

        assert sheet.read('hp') == 150
        assert sheet.dependencies('hp') == ['hp_2', 'level']

        sheet.set_source('level', '1')
        assert sheet.read('hp') == 100
        assert sheet.dependencies('hp') == ['hp_1', 'level']
        assert sheet.dependents('hp_2') == []

    def test_prelude_reads_attributed_to_caller(self, sheet):
        """Test that entries read inside a prelude function are the caller's dependencies."""
        sheet.set_prelude("def scaled(x):\n    return x * difficulty\n")
        sheet.create('difficulty', '2')
        sheet.create('damage', 'scaled(10)')

        assert sheet.read('damage') == 20
        assert sheet.dependencies('damage') == ['difficulty']

        sheet.set_source('difficulty', '3')
        assert sheet.read('damage') == 30

    def test_nested_prelude_reads(self, sheet):
        """Test reads two prelude calls deep are still the caller's."""
        sheet.set_prelude(
            "def inner():\n    return bonus\n"
            "def outer(x):\n    return x + inner()\n"
        )
        sheet.create('bonus', '5')
        sheet.create('total', 'outer(1)')

        assert sheet.read('total') == 6
        assert sheet.dependencies('total') == ['bonus']

    def test_host_function_reads_attributed_to_caller(self, sheet):
        """Test a host function that calls back into the sheet to read an entry."""
        sheet.define('difficulty_scale', lambda: sheet.read('difficulty') * 10)
        sheet.create('difficulty', '2')
        sheet.create('damage', 'difficulty_scale() + 1')

        assert sheet.read('damage') == 21
        assert sheet.dependencies('damage') == ['difficulty']

        sheet.set_source('difficulty', '3')
        assert sheet.status('damage') is EntryStatus.STALE
        assert sheet.read('damage') == 31

    def test_top_level_reads_record_nothing(self, sheet):
        """Test that reads from outside any evaluation create no edges."""
        sheet.create('a', '1')
        sheet.create('b', '2')
        sheet.read('a')
        sheet.read('b')

        assert sheet.dependents('a') == []
        assert sheet.dependencies('b') == []


class TestCascadingInvalidation:
    """Test that writes reach everything that read the changed entry."""

    def test_invalidation_propagates(self, sheet, engine):
        """Test that an edit causes dependents to recompute."""
        sheet.create('a', '1')
        sheet.create('b', 'a * 2')

        assert sheet.read('b') == 2
        assert engine.evaluations['b'] == 1

        sheet.set_source('a', '5')
        assert sheet.read('b') == 10
        assert engine.evaluations['b'] == 2

    def test_deep_invalidation(self, sheet, engine):
        """Test invalidation through multiple levels."""
        sheet.create('a', 'b')
        sheet.create('b', 'c')
        sheet.create('c', '1')

        assert sheet.read('a') == 1
        assert dict(engine.evaluations) == {'a': 1, 'b': 1, 'c': 1}

        sheet.set_source('c', '2')

        assert sheet.status('a') is EntryStatus.STALE
        assert sheet.status('b') is EntryStatus.STALE
        assert sheet.read('a') == 2
        assert dict(engine.evaluations) == {'a': 2, 'b': 2, 'c': 2}

    def test_sibling_not_invalidated(self, sheet, engine):
        """Test that entries not reading the changed one keep their cache."""
        sheet.create('a', '1')
        sheet.create('b', '2')
        sheet.create('uses_a', 'a + 1')
        sheet.create('uses_b', 'b + 1')
        sheet.read('uses_a')
        sheet.read('uses_b')

        sheet.set_source('a', '10')

        assert sheet.status('uses_b') is EntryStatus.CLEAN
        assert sheet.read('uses_a') == 11
        assert engine.evaluations['uses_b'] == 1


class TestDependencyPruning:
    """Test that edges are replaced, not accumulated, on each evaluation."""

    def test_dropped_dependency_no_longer_invalidates(self, sheet, engine):
        """Test that once a script stops reading an entry, edits to it are ignored."""
        sheet.create('b', '1')
        sheet.create('a', 'b if True else 0')

        assert sheet.read('a') == 1
        assert sheet.dependents('b') == ['a']

        sheet.set_source('a', 'b if False else 0')
        assert sheet.read('a') == 0
        assert sheet.dependents('b') == []
        evaluations = engine.evaluations['a']

        sheet.set_source('b', '2')

        assert sheet.status('a') is EntryStatus.CLEAN
        assert sheet.read('a') == 0
        assert engine.evaluations['a'] == evaluations

    def test_flag_entry_switches_branch(self, sheet):
        """Test the dependency set following a flag entry."""
        sheet.create('flag', 'True')
        sheet.create('b', '1')
        sheet.create('a', 'b if flag else -1')

        assert sheet.read('a') == 1
        sheet.set_source('flag', 'False')
        assert sheet.read('a') == -1
        assert sheet.dependencies('a') == ['flag']
        assert sheet.dependents('b') == []

    def test_failed_evaluation_keeps_observed_edges(self, sheet):
        """Test that a failing evaluation still records what it read."""
        sheet.create('divisor', '0')
        sheet.create('a', '10 / divisor')

        with pytest.raises(gamesheet.EvaluationError):
            sheet.read('a')
        assert sheet.dependencies('a') == ['divisor']

        sheet.set_source('divisor', '2')
        assert sheet.read('a') == 5
