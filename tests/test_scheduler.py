import unittest
import os, sys
import threading
from unittest import mock

src_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..")) + "/src/"
sys.path.append(src_dir)

from pyext import base_algebra as BA
from pyext.once import OnceBiVec
from pyext.utils import iter_s_t, catch_up_s_t, get_num_threads


class Grid:
    """A toy computation on rows of OnceBiVec that records every call."""

    def __init__(self, min_s, min_t, max_s, absorb=True):
        self.min_s = min_s
        self.rows = {s: OnceBiVec(min_t) for s in range(min_s, max_s)}
        self.row_locks = {s: threading.Lock() for s in range(min_s, max_s)}
        self.absorb = absorb
        self.calls = []
        self.violations = []
        self._lock = threading.Lock()

    def check(self, s, t):
        if s > self.min_s and self.rows[s - 1].len < t:
            self.violations.append((s, t))

    def __call__(self, s, t):
        with self._lock:
            self.calls.append((s, t))
        if not self.absorb:
            self.check(s, t)
            return self.rows[s].push_ooo(t, t)
        with self.row_locks[s]:
            start = self.rows[s].len
            for t1 in range(start, t + 1):
                self.check(s, t1)
                self.rows[s].push_ooo(t1, t1)
            return range(start, self.rows[s].len)


class IterSTTestCase(unittest.TestCase):
    def run_grid(self, num_threads, absorb=True):
        grid = Grid(0, 0, 5, absorb)
        iter_s_t(grid, 0, 0, 5, lambda s: 6 + s, num_threads=num_threads)
        return grid

    def test_dependencies(self):
        for num_threads in (1, 4):
            for absorb in (True, False):
                grid = self.run_grid(num_threads, absorb)
                self.assertEqual([], grid.violations)
                self.assertEqual([6 + s for s in range(5)], [grid.rows[s].len for s in range(5)])

    def test_each_cell_once_without_absorption(self):
        grid = self.run_grid(4, absorb=False)
        self.assertEqual(len(grid.calls), len(set(grid.calls)))
        self.assertEqual(sum(6 + s for s in range(5)), len(grid.calls))

    def test_single_thread_is_deterministic(self):
        self.assertEqual(self.run_grid(1).calls, self.run_grid(1).calls)

    def test_offsets(self):
        grid = Grid(1, 2, 3)
        iter_s_t(grid, 1, 2, 3, 5, num_threads=2)
        self.assertEqual([], grid.violations)
        self.assertEqual([5, 5], [grid.rows[s].len for s in (1, 2)])
        self.assertTrue(all(1 <= s < 3 and 2 <= t < 5 for s, t in grid.calls))

    def test_empty(self):
        grid = Grid(0, 0, 1)
        iter_s_t(grid, 0, 0, 0, 5)
        iter_s_t(grid, 0, 3, 1, 3)
        self.assertEqual([], grid.calls)

    def test_exception(self):
        grid = Grid(0, 0, 5)

        def f(s, t):
            if s == 2 and t >= 3:
                raise ValueError("boom")
            return grid(s, t)

        with self.assertLogs("pyext.utils", level="WARNING"):
            with self.assertRaises(ValueError):
                iter_s_t(f, 0, 0, 5, lambda s: 6 + s, num_threads=3)
        self.assertLessEqual(grid.rows[2].len, 3)
        self.assertLessEqual(grid.rows[3].len, 4)

    def test_catch_up(self):
        grid = Grid(0, 0, 3)
        grid(0, 4)
        catch_up_s_t(grid, lambda s: grid.rows[s].len, 0, 3, 10)
        self.assertEqual([5, 6, 7], [grid.rows[s].len for s in range(3)])
        self.assertEqual([], grid.violations)
        iter_s_t(grid, 0, 0, 3, 10, num_threads=2)
        self.assertEqual([10, 10, 10], [grid.rows[s].len for s in range(3)])
        self.assertEqual([], grid.violations)


class NumThreadsTestCase(unittest.TestCase):
    def test_env(self):
        with mock.patch.dict(os.environ, {"PYEXT_NUM_THREADS": "3"}):
            self.assertEqual(3, get_num_threads())
            self.assertEqual(2, get_num_threads(2))
        with mock.patch.dict(os.environ, {"PYEXT_NUM_THREADS": "many"}):
            with self.assertRaises(BA.MyValueError):
                get_num_threads()
        with self.assertRaises(BA.MyValueError):
            get_num_threads(0)


if __name__ == "__main__":
    unittest.main()
