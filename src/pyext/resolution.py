"""Minimal free resolutions of modules over a connected graded algebra.

A resolution of M is an exact sequence

    ... -> F_2 -> F_1 -> F_0 -> M -> 0

of free modules whose differentials land in the decomposable part. It is computed
one bidegree (s, t) at a time. Step (s, t) only needs rows s - 1 and s - 2 below
degree t, so the steps are driven by `utils.iter_s_t`."""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterator, Optional

from . import base_algebra as BA
from .fp import Matrix, Subspace, QuasiInverse
from .homomorphism import FreeModuleHomomorphism
from .module import FreeModule, Module
from .once import OnceBiVec
from .utils import iter_s_t, catch_up_s_t

logger = logging.getLogger(__name__)


class Resolution:
    """A minimal resolution of `module`, extended on demand."""

    def __init__(
        self,
        module: Module,
        *,
        name: str = "",
        load_quasi_inverse: bool = True,
        num_threads: Optional[int] = None,
    ):
        algebra = module.algebra
        algebra.compute_basis(0)
        if algebra.dimension(0) != 1:
            raise BA.MyValueError(f"{algebra} is not connected")
        self.algebra = algebra
        self.base_module = module
        self.name = name or f"Ext({module})"
        self.load_quasi_inverse = load_quasi_inverse
        self.num_threads = num_threads
        self.modules = []  # type: list[FreeModule]
        self.differentials = []  # type: list[FreeModuleHomomorphism]
        self.quasi_inverses = []  # type: list[OnceBiVec]
        self._row_locks = []  # type: list[threading.Lock]
        self._lock = threading.RLock()

    def __repr__(self):
        return f"Resolution({self.name}, s < {self.next_homological_degree})"

    @property
    def prime(self) -> int:
        return self.algebra.prime

    @property
    def min_degree(self) -> int:
        return self.base_module.min_degree

    @property
    def next_homological_degree(self) -> int:
        return len(self.modules)

    def module(self, s: int) -> FreeModule:
        self._check_s(s)
        return self.modules[s]

    def differential(self, s: int) -> FreeModuleHomomorphism:
        """Return d_s: F_s -> F_{s-1}, where d_0 is the augmentation F_0 -> M."""
        self._check_s(s)
        return self.differentials[s]

    def _check_s(self, s: int):
        if not 0 <= s < len(self.modules):
            raise BA.MyStateError(f"homological degree {s} not allocated in {self.name}")

    def extend_through_degree(self, max_s: int):
        with self._lock:
            for s in range(len(self.modules), max_s + 1):
                source = FreeModule(self.algebra, f"F{s}", self.min_degree)
                target = self.base_module if s == 0 else self.modules[s - 1]
                self.differentials.append(FreeModuleHomomorphism(source, target, 0))
                self.quasi_inverses.append(OnceBiVec(self.min_degree))
                self._row_locks.append(threading.Lock())
                self.modules.append(source)

    # ---------- Queries ----------
    def max_computed_degree(self, s: int) -> int:
        """The largest t such that row s is complete through t."""
        if s >= len(self.modules):
            return self.min_degree - 1
        return self.differentials[s].next_degree - 1

    def has_computed_bidegree(self, s: int, t: int) -> bool:
        return 0 <= s < len(self.modules) and t <= self.max_computed_degree(s)

    def number_of_gens_in_bidegree(self, s: int, t: int) -> int:
        if not self.has_computed_bidegree(s, t):
            raise BA.MyStateError(f"bidegree ({s}, {t}) not computed")
        return self.modules[s].number_of_gens_in_degree(t)

    def quasi_inverse(self, s: int, t: int) -> QuasiInverse:
        """Return a quasi-inverse of d_s in degree t.

        Its domain is the span of the generators of F_{s-1} below t (M_t for s = 0)."""
        if not self.has_computed_bidegree(s, t):
            raise BA.MyStateError(f"bidegree ({s}, {t}) not computed")
        qi = self.quasi_inverses[s].get(t)
        if qi is None:
            qi = self._compute_quasi_inverse(s, t)
        return qi

    def iter_stem(self) -> Iterator[tuple[int, int, int]]:
        """Yield `(s, n, t)` for every computed bidegree."""
        for s in range(len(self.modules)):
            for t in range(self.min_degree, self.max_computed_degree(s) + 1):
                yield s, t - s, t

    def graded_dimensions(self) -> list[list[int]]:
        """Return the number of generators of each computed bidegree, indexed by s then t - min_degree."""
        return [
            [self.modules[s].number_of_gens_in_degree(t) for t in range(self.min_degree, self.max_computed_degree(s) + 1)]
            for s in range(len(self.modules))
        ]

    # ---------- Computation ----------
    def compute_through_stem(self, max_s: int, max_n: int):
        """Compute every (s, t) with s <= max_s and t - s <= max_n."""
        with self._lock:
            start = time.perf_counter()
            self._compute(max_s, lambda s: max_n + s + 1)
            logger.info(
                "%s computed through stem (%d, %d) in %.3fs", self.name, max_s, max_n, time.perf_counter() - start
            )

    def compute_through_bidegree(self, max_s: int, max_t: int):
        """Compute every (s, t) with s <= max_s and t <= max_t."""
        with self._lock:
            start = time.perf_counter()
            self._compute(max_s, lambda s: max_t + 1)
            logger.info(
                "%s computed through bidegree (%d, %d) in %.3fs", self.name, max_s, max_t, time.perf_counter() - start
            )

    def _compute(self, max_s: int, max_t):
        self.extend_through_degree(max_s)
        top_t = max(max_t(s) for s in range(max_s + 1)) - 1
        if top_t >= self.min_degree:
            self.algebra.compute_basis(top_t - self.min_degree)
            self.base_module.compute_basis(top_t)
        catch_up_s_t(self.step_resolution, lambda s: self.differentials[s].next_degree, 0, max_s + 1, max_t)
        iter_s_t(self.step_resolution, 0, self.min_degree, max_s + 1, max_t, num_threads=self.num_threads)

    def step_resolution(self, s: int, t: int) -> range:
        """Compute row s through degree t and return the range of degrees added."""
        with self._row_locks[s]:
            start = self.differentials[s].next_degree
            for t1 in range(start, t + 1):
                self._step(s, t1)
            return range(start, self.differentials[s].next_degree)

    def _step(self, s: int, t: int):
        p = self.prime
        if s > 0 and self.differentials[s - 1].next_degree < t:
            raise BA.MyInvariantError(f"step ({s}, {t}) before row {s - 1} reached degree {t}")
        source = self.modules[s]
        d = self.differentials[s]
        num_columns = self._image_dimension(s, t)

        # By minimality d_{s-1} maps the generators of F_{s-1} below t into the
        # span of the generators of F_{s-2} below t - 1.
        if s == 0:
            kernel = Subspace.entire_space(p, num_columns)
        else:
            prev_columns = self.base_module.dimension(t) if s == 1 else self.modules[s - 2].dimension_below(t, t - 1)
            matrix = self.differentials[s - 1].get_matrix(t, num_columns, prev_columns)
            kernel = matrix.augment_identity().compute_kernel(prev_columns)

        image_matrix = d.get_matrix(t, source.dimension_below(t, t), num_columns)
        image = Subspace.from_matrix(image_matrix)
        new_gens = [v.copy() for v in kernel.basis() if image.add_vector(v)]

        source.add_generators(t, len(new_gens), [f"x_({t - s}, {s}, {i})" for i in range(len(new_gens))])
        if self.load_quasi_inverse:
            full = Matrix.from_rows(p, [*image_matrix, *new_gens], num_columns) if new_gens else image_matrix
            qi = full.augment_identity().compute_quasi_inverse(num_columns)
        else:
            qi = None
        self.quasi_inverses[s].push_ooo(qi, t)
        d.add_generators_from_rows(t, new_gens)
        logger.debug("%s (%d, %d): %d new generators", self.name, s, t, len(new_gens))

    def _image_dimension(self, s: int, t: int) -> int:
        """Dimension of the part of the target of d_s that the generators below t map into."""
        if s == 0:
            return self.base_module.dimension(t)
        return self.modules[s - 1].dimension_below(t, t)

    def _compute_quasi_inverse(self, s: int, t: int) -> QuasiInverse:
        num_columns = self._image_dimension(s, t)
        full = self.differentials[s].get_matrix(t, self.modules[s].dimension(t), num_columns)
        return full.augment_identity().compute_quasi_inverse(num_columns)
