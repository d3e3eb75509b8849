import unittest
import os, sys
import threading

src_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..")) + "/src/"
sys.path.append(src_dir)

from pyext import base_algebra as BA
from pyext.once import OnceBiVec


class OnceBiVecTestCase(unittest.TestCase):
    def test_out_of_order(self):
        v = OnceBiVec(2)
        self.assertEqual(0, len(v.push_ooo("c", 4)))
        self.assertEqual(2, v.len)
        self.assertEqual(range(2, 3), v.push_ooo("a", 2))
        self.assertEqual(range(3, 5), v.push_ooo("b", 3))
        self.assertEqual(5, v.len)
        self.assertEqual(["a", "b", "c"], [v[i] for i in range(v.min_index, v.len)])
        self.assertIn(4, v)
        self.assertNotIn(5, v)
        self.assertIsNone(v.get(9))

    def test_errors(self):
        v = OnceBiVec(0)
        v.push_ooo(1, 0)
        with self.assertRaises(BA.MyStateError):
            v.push_ooo(2, 0)
        with self.assertRaises(BA.MyDegreeError):
            v.push_ooo(2, -1)
        with self.assertRaises(BA.MyStateError):
            v[3]

    def test_threads_report_disjoint_ranges(self):
        v = OnceBiVec(0)
        ranges = []
        lock = threading.Lock()

        def worker(indices):
            for i in indices:
                r = v.push_ooo(i, i)
                with lock:
                    ranges.append(r)

        threads = [threading.Thread(target=worker, args=(range(k, 200, 4),)) for k in range(4)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()
        self.assertEqual(200, v.len)
        covered = sorted(t for r in ranges for t in r)
        self.assertEqual(list(range(200)), covered)


if __name__ == "__main__":
    unittest.main()
