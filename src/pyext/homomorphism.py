"""Homomorphisms out of free modules."""

from __future__ import annotations

import numpy as np

from . import base_algebra as BA
from .fp import Matrix, zero_vector, to_vector
from .module import FreeModule, Module
from .mymath import iter_nonzero
from .once import OnceBiVec


class FreeModuleHomomorphism:
    """A module map `source -> target` lowering degree by `degree_shift`.

    It is determined by the images of the generators of `source`. The image of a
    generator of degree d is a vector of `target` in degree d - degree_shift."""

    def __init__(self, source: FreeModule, target: Module, degree_shift: int = 0):
        if source.prime != target.prime:
            raise BA.MyPrimeError(f"{source} and {target} are over different primes")
        self.source = source
        self.target = target
        self.degree_shift = degree_shift
        self.outputs = OnceBiVec(max(source.min_degree, target.min_degree + degree_shift))

    def __repr__(self):
        return f"FreeModuleHomomorphism({self.source} -> {self.target}, shift={self.degree_shift})"

    @property
    def prime(self) -> int:
        return self.source.prime

    @property
    def min_degree(self) -> int:
        return self.outputs.min_index

    @property
    def next_degree(self) -> int:
        return self.outputs.len

    def output(self, gen_degree: int, gen_index: int) -> np.ndarray:
        return self.outputs[gen_degree][gen_index]

    def _image_dimensions(self, target_degree: int) -> set[int]:
        """Allowed lengths of an image vector.

        Images in a free module may leave out the generators of the target
        degree itself, which need not be known yet."""
        target = self.target
        if not isinstance(target, FreeModule):
            return {target.dimension(target_degree)}
        result = {target.dimension_below(target_degree, target_degree)}
        if target_degree < target.min_degree or target_degree in target.gen_names:
            result.add(target.dimension(target_degree))
        return result

    def add_generators_from_rows(self, degree: int, rows) -> range:
        """Record the images of the generators of `source` in `degree`.

        Return the range of degrees that became contiguously known."""
        num_gens = self.source.number_of_gens_in_degree(degree)
        rows = list(rows)
        if len(rows) != num_gens:
            raise BA.MyValueError(f"{len(rows)} images for {num_gens} generators in degree {degree}")
        dims = self._image_dimensions(degree - self.degree_shift)
        vectors = []
        for row in rows:
            v = to_vector(row, self.prime).reshape(-1)
            if len(v) not in dims:
                raise BA.MyValueError(f"image of length {len(v)} in a target of dimension {max(dims)}")
            vectors.append(v)
        return self.outputs.push_ooo(vectors, degree)

    def extend_by_zero(self, degree: int):
        for t in range(self.next_degree, degree + 1):
            if t not in self.outputs:
                dim = max(self._image_dimensions(t - self.degree_shift))
                num_gens = self.source.number_of_gens_in_degree(t)
                self.outputs.push_ooo([zero_vector(dim) for _ in range(num_gens)], t)

    def apply_to_basis_element(self, result, coeff: int, input_degree: int, input_index: int):
        op_degree, op_index, gen_degree, gen_index = self.source.index_to_op_gen(input_degree, input_index)
        if gen_degree < self.min_degree:
            return
        output = self.output(gen_degree, gen_index)
        self.target.act(result, coeff, op_degree, op_index, gen_degree - self.degree_shift, output)

    def apply(self, result, coeff: int, input_degree: int, input):
        p = self.prime
        for i, v in iter_nonzero(input):
            self.apply_to_basis_element(result, coeff * v % p, input_degree, i)

    def get_matrix(self, degree: int, num_rows: int = None, num_columns: int = None) -> Matrix:
        """Return the matrix of the map in `degree` restricted to the first `num_rows` basis elements."""
        if num_rows is None:
            num_rows = self.source.dimension(degree)
        if num_columns is None:
            num_columns = self.target.dimension(degree - self.degree_shift)
        result = Matrix(self.prime, num_rows, num_columns)
        for i in range(num_rows):
            self.apply_to_basis_element(result[i], 1, degree, i)
        return result

    def hom_k(self, degree: int) -> list[list[int]]:
        """Return the map induced on Hom(-, k) between the generators of target degree `degree`.

        `result[j][i]` is the coefficient of the j-th generator of `target` in the
        image of the i-th generator of `source`."""
        target = self.target
        source_degree = degree + self.degree_shift
        num_target_gens = target.number_of_gens_in_degree(degree)
        num_source_gens = self.source.number_of_gens_in_degree(source_degree)
        if num_target_gens == 0 or num_source_gens == 0 or source_degree < self.min_degree:
            return [[0] * num_source_gens for _ in range(num_target_gens)]
        offset = target.generator_offset(degree, degree, 0)
        result = []
        for j in range(num_target_gens):
            row = []
            for i in range(num_source_gens):
                output = self.output(source_degree, i)
                row.append(int(output[offset + j]) if offset + j < len(output) else 0)
            result.append(row)
        return result
