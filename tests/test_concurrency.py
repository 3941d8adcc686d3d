"""
Tests for sharing a sheet between threads.
"""

import threading

import gamesheet
from gamesheet import LockedSheet, Sheet


class TestThreadSafety:
    """Test LockedSheet under concurrent access."""

    def test_concurrent_reads(self):
        """Test many threads reading the same uncached chain."""
        shared = LockedSheet(Sheet({
            'base': '10',
            'double': 'base * 2',
            'total': 'double + base',
        }))
        results = []
        errors = []

        def reader():
            try:
                for _ in range(20):
                    results.append(shared.read('total'))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(8)]

        for t in threads:
            t.start()

        for t in threads:
            t.join()

        assert errors == []
        assert results == [30] * 160

    def test_concurrent_reads_and_writes(self):
        """Test that every read sees a value some write produced."""
        shared = LockedSheet()
        shared.create('level', '1')
        shared.create('health', 'level * 100')
        errors = []
        seen = []

        def writer():
            try:
                for level in range(1, 51):
                    shared.set_source('level', str(level))
            except Exception as e:
                errors.append(e)

        def reader():
            try:
                for _ in range(50):
                    seen.append(shared.read('health'))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer)]
        threads += [threading.Thread(target=reader) for _ in range(4)]

        for t in threads:
            t.start()

        for t in threads:
            t.join()

        assert errors == []
        assert all(value % 100 == 0 and 100 <= value <= 5000 for value in seen)
        assert shared.read('health') == 5000

    def test_concurrent_creates(self):
        """Test threads adding different entries."""
        shared = LockedSheet()
        errors = []

        def creator(thread_id):
            try:
                for i in range(10):
                    shared.create(f'item_{thread_id}_{i}', str(i))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=creator, args=(i,)) for i in range(5)]

        for t in threads:
            t.start()

        for t in threads:
            t.join()

        assert errors == []
        assert len(shared) == 50
        assert shared.read('item_3_7') == 7


class TestLockedSheet:
    """Test the wrapper itself."""

    def test_wraps_given_sheet(self):
        sheet = Sheet({'a': '1'})
        shared = LockedSheet(sheet)

        assert shared.sheet is sheet
        assert 'a' in shared
        assert shared.names() == ['a']
        assert shared.get_source('a') == '1'

    def test_reentrant_prelude(self):
        """Test a prelude function that calls back into the same LockedSheet."""
        shared = LockedSheet()
        shared.create('base', '7')
        shared.define('base_value', lambda: shared.read('base'))
        shared.create('a', 'base_value() + 1')

        assert shared.read('a') == 8
        assert shared.dependencies('a') == ['base']
        assert shared.dependents('base') == ['a']

        shared.set_source('base', '100')

        assert shared.status('a') is gamesheet.EntryStatus.STALE
        assert shared.read('a') == 101

    def test_lock_groups_calls(self):
        shared = LockedSheet()
        with shared.lock:
            shared.create('a', '1')
            shared.create('b', 'a + 1')
            assert shared.read('b') == 2

    def test_forwards_everything(self):
        shared = LockedSheet()
        shared.set_prelude("def inc(x):\n    return x + 1\n")
        shared.create('a', '1')
        shared.create('b', 'inc(a)')

        assert shared.values() == {'a': 1, 'b': 2}
        assert shared.dependencies('b') == ['a']
        assert shared.dependents('a') == ['b']
        assert shared.status('b') is gamesheet.EntryStatus.CLEAN
        assert shared.invalidate('a') == ['a', 'b']

        shared.remove('b')
        assert len(shared) == 1
