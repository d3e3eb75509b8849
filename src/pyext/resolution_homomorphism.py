"""Chain maps between resolutions.

A `ResolutionHomomorphism` of bidegree (shift_s, shift_t) consists of maps
f_s: F^source_s -> F^target_{s - shift_s} lowering the internal degree by shift_t
and commuting with the differentials. It is fixed by its values on the
generators of the first row, or by the cocycle it represents, and the rest is
lifted through the quasi-inverses of the target."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import numpy as np

from . import base_algebra as BA
from .fp import DTYPE, zero_vector, to_vector
from .homomorphism import FreeModuleHomomorphism
from .resolution import Resolution
from .utils import iter_s_t, catch_up_s_t

logger = logging.getLogger(__name__)


class ResolutionHomomorphism:
    """A chain map from `source` to `target` of bidegree (shift_s, shift_t).

    Source bidegree (s, t) maps to target bidegree (s - shift_s, t - shift_t)."""

    def __init__(self, name: str, source: Resolution, target: Resolution, shift_s: int, shift_t: int):
        if source.prime != target.prime:
            raise BA.MyPrimeError(f"{source.name} and {target.name} are over different primes")
        if shift_s < 0:
            raise BA.MyDegreeError(f"negative homological shift {shift_s}")
        self.name = name
        self.source = source
        self.target = target
        self.shift_s = shift_s
        self.shift_t = shift_t
        self.maps = []  # type: list[FreeModuleHomomorphism]
        self._row_locks = []  # type: list[threading.Lock]
        self._lock = threading.RLock()

    def __repr__(self):
        return f"ResolutionHomomorphism({self.name}, ({self.shift_s}, {self.shift_t}))"

    @property
    def prime(self) -> int:
        return self.source.prime

    def get_map(self, input_s: int) -> FreeModuleHomomorphism:
        """Return f_{input_s}: F^source_{input_s} -> F^target_{input_s - shift_s}."""
        if input_s < self.shift_s:
            raise BA.MyDegreeError(f"no map out of homological degree {input_s}")
        with self._lock:
            for s in range(self.shift_s + len(self.maps), input_s + 1):
                self.maps.append(
                    FreeModuleHomomorphism(self.source.module(s), self.target.module(s - self.shift_s), self.shift_t)
                )
                self._row_locks.append(threading.Lock())
            return self.maps[input_s - self.shift_s]

    def next_degree(self, input_s: int) -> int:
        return self.get_map(input_s).next_degree

    # ---------- Extending ----------
    def extend_step(self, input_s: int, input_t: int, matrix=None) -> range:
        """Set the images of the source generators in bidegree (input_s, input_t).

        In the first target row `matrix` gives the images in the target's module,
        one row per source generator. In later rows it gives a cocycle over the
        target generators, added to the lifted image. Return the range of degrees
        that became contiguously known in row `input_s`."""
        f = self.get_map(input_s)
        with self._row_locks[input_s - self.shift_s]:
            if input_t in f.outputs:
                if matrix is not None:
                    raise BA.MyStateError(f"{self.name}: bidegree ({input_s}, {input_t}) already set")
                return range(f.next_degree, f.next_degree)
            return self._extend_step(input_s, input_t, matrix)

    def extend_one(self, input_s: int, input_t: int) -> range:
        """Lift the images of the new generators in (input_s, input_t) through the target."""
        return self.extend_step(input_s, input_t)

    def _extend_step(self, input_s: int, input_t: int, matrix) -> range:
        source, target = self.source, self.target
        output_s, output_t = input_s - self.shift_s, input_t - self.shift_t
        f = self.maps[output_s]
        if not source.has_computed_bidegree(input_s, input_t):
            raise BA.MyStateError(f"{source.name} has not computed ({input_s}, {input_t})")
        target_module = target.module(output_s)
        if output_t >= target.min_degree and not target.has_computed_bidegree(output_s, output_t):
            raise BA.MyStateError(f"{target.name} has not computed ({output_s}, {output_t})")

        num_gens = source.number_of_gens_in_bidegree(input_s, input_t)
        target_dim = target_module.dimension(output_t) if output_t >= target.min_degree else 0
        if output_s == 0:
            num_columns = target.base_module.dimension(output_t) if output_t >= target.min_degree else 0
        else:
            num_columns = target_module.number_of_gens_in_degree(output_t)
        # An empty target has no columns, so non-zero images fail the shape check.
        if matrix is not None:
            matrix = self._check_matrix(matrix, num_gens, num_columns)

        if input_t < f.min_degree:
            return range(f.next_degree, f.next_degree)
        if num_gens == 0 or output_t < target.min_degree or (output_s == 0 and target_dim == 0):
            outputs = [zero_vector(target_dim) for _ in range(num_gens)]
        elif output_s == 0:
            outputs = [zero_vector(target_dim) for _ in range(num_gens)]
            if matrix is not None:
                qi = target.quasi_inverse(0, output_t)
                for out, row in zip(outputs, matrix):
                    qi.apply(out, 1, row)
        else:
            outputs = self._lift(input_s, input_t)
            if matrix is not None:
                offset = target_module.generator_offset(output_t, output_t, 0)
                for out, row in zip(outputs, matrix):
                    out[offset:offset + num_columns] = (out[offset:offset + num_columns] + row) % self.prime
        logger.debug("%s (%d, %d): set %d images", self.name, input_s, input_t, num_gens)
        return f.add_generators_from_rows(input_t, outputs)

    def _check_matrix(self, matrix, num_rows: int, num_columns: int) -> np.ndarray:
        rows = [to_vector(row, self.prime).reshape(-1) for row in matrix]
        if len(rows) != num_rows or any(len(row) != num_columns for row in rows):
            raise BA.MyValueError(f"{self.name}: expected a {num_rows}x{num_columns} matrix")
        return np.array(rows, dtype=DTYPE).reshape(num_rows, num_columns)

    def _lift(self, input_s: int, input_t: int) -> list[np.ndarray]:
        """Solve d f(x) = f(d x) for the source generators x in (input_s, input_t)."""
        output_s, output_t = input_s - self.shift_s, input_t - self.shift_t
        f_prev = self.maps[output_s - 1]
        if f_prev.next_degree < input_t:
            raise BA.MyStateError(f"{self.name}: row {input_s - 1} has not reached degree {input_t}")
        d_source = self.source.differential(input_s)
        qi = self.target.quasi_inverse(output_s, output_t)
        outputs = []
        for i in range(self.source.number_of_gens_in_bidegree(input_s, input_t)):
            scratch = zero_vector(qi.target_dimension)
            f_prev.apply(scratch, 1, input_t, d_source.output(input_t, i))
            out = zero_vector(qi.source_dimension)
            qi.apply(out, 1, scratch)
            outputs.append(out)
        return outputs

    def _step_row(self, input_s: int, input_t: int) -> range:
        """Extend row `input_s` from its watermark through `input_t`, skipping degrees already set."""
        f = self.maps[input_s - self.shift_s]
        with self._row_locks[input_s - self.shift_s]:
            start = f.next_degree
            for t in range(start, input_t + 1):
                if t not in f.outputs:
                    self._extend_step(input_s, t, None)
            return range(start, f.next_degree)

    def extend_all(self):
        """Extend through every bidegree that both resolutions have computed."""
        with self._lock:
            start = time.perf_counter()
            source, target = self.source, self.target
            max_s = min(source.next_homological_degree, target.next_homological_degree + self.shift_s)
            if max_s <= self.shift_s:
                return
            min_t = self.get_map(max_s - 1).min_degree

            def max_t(s):
                return (
                    min(source.max_computed_degree(s), target.max_computed_degree(s - self.shift_s) + self.shift_t)
                    + 1
                )

            catch_up_s_t(self._step_row, self.next_degree, self.shift_s, max_s, max_t)
            iter_s_t(self._step_row, self.shift_s, min_t, max_s, max_t, num_threads=source.num_threads)
            logger.info("%s extended through s < %d in %.3fs", self.name, max_s, time.perf_counter() - start)

    # ---------- Queries ----------
    def hom_k(self, output_s: int, output_t: int, inputs: Optional[list] = None) -> list[list[int]]:
        """Return the induced map on Ext from target bidegree (output_s, output_t).

        Each row lists the coefficients over the source generators at
        (output_s + shift_s, output_t + shift_t) of the image of a target
        generator, or of a given cycle over the target generators."""
        input_s, input_t = output_s + self.shift_s, output_t + self.shift_t
        f = self.get_map(input_s)
        if input_t not in f.outputs:
            raise BA.MyStateError(f"{self.name}: bidegree ({input_s}, {input_t}) not computed")
        matrix = f.hom_k(output_t)
        if inputs is None:
            return matrix
        p = self.prime
        num_source_gens = self.source.number_of_gens_in_bidegree(input_s, input_t)
        result = []
        for v in inputs:
            if len(v) != len(matrix):
                raise BA.MyValueError(f"cycle of length {len(v)} over {len(matrix)} generators")
            result.append(
                [sum(int(c) * matrix[j][i] for j, c in enumerate(v)) % p for i in range(num_source_gens)]
            )
        return result
