import unittest
import os, sys

import numpy as np

src_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..")) + "/src/"
sys.path.append(src_dir)

from pyext import base_algebra as BA
from pyext.polynomial import PolynomialAlgebra
from pyext.module import FDModule, FreeModule
from pyext.resolution import Resolution


def generators(res):
    """Return {(s, t): number of generators} over the computed bidegrees."""
    return {
        (s, t): res.number_of_gens_in_bidegree(s, t)
        for s, n, t in res.iter_stem()
        if res.number_of_gens_in_bidegree(s, t)
    }


def resolve_k(algebra, max_s, max_t, **kwargs):
    res = Resolution(FDModule.ground_field(algebra), **kwargs)
    res.compute_through_bidegree(max_s, max_t)
    return res


class NotConnected(BA.Algebra):
    prime = 2

    def __str__(self):
        return "F_2 x F_2"

    def compute_basis(self, degree):
        pass

    def dimension(self, degree):
        return 2 if degree == 0 else 0

    def multiply_basis_elements(self, result, coeff, r_degree, r_idx, s_degree, s_idx):
        if r_idx == s_idx:
            result[r_idx] = (result[r_idx] + coeff) % 2

    def basis_element_to_string(self, degree, idx):
        return f"e{idx}"


class ResolutionTestCase(unittest.TestCase):
    def test_polynomial(self):
        res = resolve_k(PolynomialAlgebra(2, [("x", 1)]), 4, 6)
        self.assertEqual({(0, 0): 1, (1, 1): 1}, generators(res))

    def test_koszul(self):
        res = resolve_k(PolynomialAlgebra(3, [("x", 1), ("y", 2)]), 4, 6)
        self.assertEqual({(0, 0): 1, (1, 1): 1, (1, 2): 1, (2, 3): 1}, generators(res))

    def test_exterior(self):
        res = resolve_k(PolynomialAlgebra.exterior(2, [("x", 1)]), 5, 6)
        self.assertEqual({(s, s): 1 for s in range(6)}, generators(res))

    def test_exterior_two_generators(self):
        # Ext is F_2[h_x, h_y], so there are s + 1 generators in (s, s).
        res = resolve_k(PolynomialAlgebra.exterior(2, [("x", 1), ("y", 1)]), 4, 5)
        self.assertEqual({(s, s): s + 1 for s in range(5)}, generators(res))

    def test_truncated(self):
        res = resolve_k(PolynomialAlgebra(2, [("x", 1, 4)]), 3, 8)
        self.assertEqual({(0, 0): 1, (1, 1): 1, (2, 4): 1, (3, 5): 1}, generators(res))

    def test_free_module(self):
        A = PolynomialAlgebra(2, [("x", 1)])
        F = FreeModule(A, "A", 0)
        F.add_generators(0, 1, ["1"])
        F.extend_by_zero(10)
        res = Resolution(F)
        res.compute_through_bidegree(3, 6)
        self.assertEqual({(0, 0): 1}, generators(res))

    def test_fd_module(self):
        A = PolynomialAlgebra(2, [("x", 1)])
        M = FDModule(A, "M", {0: ["a0"], 1: ["a1"]})
        M.add_generator_action_by_name("x", "a0", {"a1": 1})
        M.extend_actions()
        M.check_validity()
        res = Resolution(M)
        res.compute_through_bidegree(3, 6)
        self.assertEqual({(0, 0): 1, (1, 2): 1}, generators(res))

    def test_shifted_module(self):
        A = PolynomialAlgebra.exterior(2, [("x", 1)])
        res = Resolution(FDModule.ground_field(A, 3))
        res.compute_through_bidegree(3, 7)
        self.assertEqual(3, res.min_degree)
        self.assertEqual({(s, s + 3): 1 for s in range(4)}, generators(res))

    def test_end_to_end(self):
        A = PolynomialAlgebra(2, [("x", 1), ("y", 1)])
        res = Resolution(FDModule.ground_field(A))
        res.compute_through_stem(3, 5)
        self.assertEqual(1, res.number_of_gens_in_bidegree(0, 0))
        for s, n, t in res.iter_stem():
            self.assertLessEqual(n, 5)
            if s > 0 and t < s:
                self.assertEqual(0, res.number_of_gens_in_bidegree(s, t))
        self.assertTrue(res.has_computed_bidegree(3, 8))
        self.assertFalse(res.has_computed_bidegree(3, 9))
        self.assertFalse(res.has_computed_bidegree(4, 0))
        self.assertEqual({(0, 0): 1, (1, 1): 2, (2, 2): 1}, generators(res))

    def test_d_squared_zero(self):
        res = resolve_k(PolynomialAlgebra(3, [("x", 1), ("y", 2)]), 4, 7)
        k = res.base_module
        for s, n, t in res.iter_stem():
            if s == 0:
                continue
            for i in range(res.number_of_gens_in_bidegree(s, t)):
                dx = res.differential(s).output(t, i)
                self.assertTrue(dx.any())
                if s == 1:
                    result = np.zeros(k.dimension(t), dtype=np.int64)
                else:
                    result = np.zeros(res.module(s - 2).dimension_below(t, t), dtype=np.int64)
                res.differential(s - 1).apply(result, 1, t, dx)
                self.assertFalse(result.any())

    def test_resume(self):
        A = PolynomialAlgebra(3, [("x", 1), ("y", 2)])
        fresh = resolve_k(A, 4, 7)
        res = Resolution(FDModule.ground_field(A))
        res.compute_through_bidegree(2, 3)
        res.compute_through_stem(3, 1)
        res.compute_through_bidegree(4, 7)
        self.assertEqual(fresh.graded_dimensions(), res.graded_dimensions())

    def test_threads(self):
        A = PolynomialAlgebra(2, [("x", 1), ("y", 2)], name="B")
        one = resolve_k(A, 5, 9, num_threads=1)
        many = resolve_k(A, 5, 9, num_threads=4)
        self.assertEqual(one.graded_dimensions(), many.graded_dimensions())

    def test_quasi_inverse(self):
        A = PolynomialAlgebra(3, [("x", 1), ("y", 2)])
        cached = resolve_k(A, 3, 5)
        lazy = resolve_k(A, 3, 5, load_quasi_inverse=False)
        self.assertEqual(cached.graded_dimensions(), lazy.graded_dimensions())
        for s, n, t in cached.iter_stem():
            qi1, qi2 = cached.quasi_inverse(s, t), lazy.quasi_inverse(s, t)
            self.assertTrue(np.array_equal(qi1.preimage, qi2.preimage))
        # d_1 of the generator in (1, 2) is y * g
        qi = cached.quasi_inverse(1, 2)
        d = cached.differential(1)
        v = d.output(2, 0)
        result = np.zeros(qi.source_dimension, dtype=np.int64)
        qi.apply(result, 1, v)
        image = np.zeros(len(v), dtype=np.int64)
        d.apply(image, 1, 2, result)
        self.assertEqual(v.tolist(), image.tolist())

    def test_step_ahead_of_previous_row(self):
        A = PolynomialAlgebra(2, [("x", 1)])
        res = resolve_k(A, 2, 3)
        A.compute_basis(6)
        # Row 1 is complete through t = 3, so row 2 can reach t = 4 but not t = 5.
        with self.assertRaises(BA.MyInvariantError):
            res.step_resolution(2, 5)
        self.assertEqual(4, res.max_computed_degree(2))
        self.assertEqual(3, res.max_computed_degree(1))

    def test_errors(self):
        with self.assertRaises(BA.MyValueError):
            Resolution(FDModule(NotConnected(), "k", {0: ["1"]}))
        res = resolve_k(PolynomialAlgebra(2, [("x", 1)]), 2, 3)
        with self.assertRaises(BA.MyStateError):
            res.number_of_gens_in_bidegree(1, 4)
        with self.assertRaises(BA.MyStateError):
            res.module(3)
        with self.assertRaises(BA.MyStateError):
            res.quasi_inverse(3, 0)
        self.assertEqual(3, res.next_homological_degree)
        self.assertEqual("F0", str(res.module(0)))


if __name__ == "__main__":
    unittest.main()
