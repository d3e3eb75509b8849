"""Graded modules over a graded algebra."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from . import base_algebra as BA
from .fp import zero_vector, to_vector
from .mymath import iter_nonzero
from .once import OnceBiVec

logger = logging.getLogger(__name__)


class Module(ABC):
    """A graded module over `self.algebra`, bounded below by `self.min_degree`."""

    algebra = None  # type: BA.Algebra
    name = ""  # type: str
    min_degree = 0  # type: int

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r} over {self.algebra})"

    @property
    def prime(self) -> int:
        return self.algebra.prime

    def act(self, result, coeff: int, op_degree: int, op_index: int, input_degree: int, input):
        """Add `coeff * op * input` to `result`."""
        p = self.prime
        for i, v in iter_nonzero(input):
            self.act_on_basis(result, coeff * v % p, op_degree, op_index, input_degree, i)

    def element_to_string(self, degree: int, element) -> str:
        terms = []
        for i, v in iter_nonzero(element):
            b = self.basis_element_to_string(degree, i)
            terms.append(b if v == 1 else f"{v} * {b}")
        result = " + ".join(terms)
        return result if result else "0"

    # abstract -----------------
    @abstractmethod
    def compute_basis(self, degree: int) -> None:
        pass

    @abstractmethod
    def dimension(self, degree: int) -> int:
        pass

    @abstractmethod
    def act_on_basis(self, result, coeff: int, op_degree: int, op_index: int, mod_degree: int, mod_index: int):
        """Add `coeff * op * m` to `result` for basis elements `op` and `m`."""
        pass

    @abstractmethod
    def basis_element_to_string(self, degree: int, idx: int) -> str:
        pass


class FDModule(Module):
    """A finite dimensional module given by the action of each basis element of the algebra.

    For a generated algebra it suffices to give the action of the generators and
    call `extend_actions()`, which uses `decompose_basis_element`."""

    def __init__(self, algebra: BA.Algebra, name: str, basis: dict[int, list[str]]):
        self.algebra = algebra
        self.name = name
        self.basis = {d: list(names) for d, names in basis.items() if names}
        if not self.basis:
            raise BA.MyModuleError(f"module {name} has no basis elements")
        self.min_degree = min(self.basis)
        self.max_degree = max(self.basis)
        self._names = {}
        for d, names in self.basis.items():
            for i, n in enumerate(names):
                if n in self._names:
                    raise BA.MyKeyError(f"duplicate basis element {n} in {name}")
                self._names[n] = (d, i)
        self._actions = {}  # type: dict[tuple[int, int, int, int], np.ndarray]
        algebra.compute_basis(self.max_degree - self.min_degree)

    @classmethod
    def ground_field(cls, algebra: BA.Algebra, degree: int = 0) -> FDModule:
        return cls(algebra, "k", {degree: ["1"]})

    def compute_basis(self, degree):
        self.algebra.compute_basis(degree - self.min_degree)

    def dimension(self, degree):
        return len(self.basis.get(degree, ()))

    def element_index(self, name: str) -> tuple[int, int]:
        try:
            return self._names[name]
        except KeyError:
            raise BA.MyKeyError(f"no element {name} in {self.name}") from None

    def basis_element_to_string(self, degree, idx):
        return self.basis[degree][idx]

    # ---------- Actions ----------
    def set_action(self, op_degree: int, op_index: int, input_degree: int, input_index: int, output):
        output_degree = op_degree + input_degree
        output = to_vector(output, self.prime)
        if len(output) != self.dimension(output_degree):
            raise BA.MyModuleError(
                f"action output has length {len(output)} but degree {output_degree} has dimension "
                f"{self.dimension(output_degree)}"
            )
        if op_degree <= 0:
            raise BA.MyDegreeError("actions of degree 0 are fixed by the unit")
        self._actions[(op_degree, op_index, input_degree, input_index)] = output

    def add_generator_action_by_name(self, op_name: str, input_name: str, output: dict[str, int]):
        """Set `op * input = sum output[name] * name` where `op` is a generator of the algebra."""
        rest, (op_degree, op_index) = self.algebra.string_to_generator(op_name)
        if rest.strip():
            raise BA.MyParseError(f"trailing input {rest!r} after generator")
        input_degree, input_index = self.element_index(input_name)
        output_degree = op_degree + input_degree
        v = zero_vector(self.dimension(output_degree))
        for n, c in output.items():
            d, i = self.element_index(n)
            if d != output_degree:
                raise BA.MyDegreeError(f"{n} is not in degree {output_degree}")
            v[i] = c % self.prime
        self.set_action(op_degree, op_index, input_degree, input_index, v)

    def act_on_basis(self, result, coeff, op_degree, op_index, mod_degree, mod_index):
        if self.dimension(op_degree + mod_degree) == 0:
            return
        if op_degree == 0:
            result[mod_index] = (result[mod_index] + coeff) % self.prime
            return
        output = self._actions.get((op_degree, op_index, mod_degree, mod_index))
        if output is not None:
            result[:] = (result + coeff * output) % self.prime

    def extend_actions(self):
        """Compute the action of every basis element from the action of the generators."""
        for op_degree in range(1, self.max_degree - self.min_degree + 1):
            for input_degree in range(self.min_degree, self.max_degree - op_degree + 1):
                self._extend_actions(op_degree, input_degree)

    def _extend_actions(self, op_degree: int, input_degree: int):
        algebra = self.algebra
        p = self.prime
        output_degree = op_degree + input_degree
        input_dim = self.dimension(input_degree)
        output_dim = self.dimension(output_degree)
        if input_dim == 0 or output_dim == 0:
            return
        gens = set(algebra.generators(op_degree))
        for op_index in range(algebra.dimension(op_degree)):
            if op_index in gens:
                continue
            decomposition = algebra.decompose_basis_element(op_degree, op_index)
            for input_index in range(input_dim):
                if (op_degree, op_index, input_degree, input_index) in self._actions:
                    continue
                output = zero_vector(output_dim)
                for c, (deg_a, idx_a), (deg_b, idx_b) in decomposition:
                    tmp = zero_vector(self.dimension(input_degree + deg_b))
                    self.act_on_basis(tmp, 1, deg_b, idx_b, input_degree, input_index)
                    self.act(output, c % p, deg_a, idx_a, input_degree + deg_b, tmp)
                self._actions[(op_degree, op_index, input_degree, input_index)] = output

    def check_validity(self):
        """Raise `MyModuleError` if a generating relation of the algebra does not hold."""
        algebra = self.algebra
        p = self.prime
        for op_degree in range(1, self.max_degree - self.min_degree + 1):
            relations = algebra.generating_relations(op_degree)
            for input_degree in range(self.min_degree, self.max_degree - op_degree + 1):
                output_dim = self.dimension(op_degree + input_degree)
                if output_dim == 0:
                    continue
                for relation in relations:
                    for input_index in range(self.dimension(input_degree)):
                        output = zero_vector(output_dim)
                        for c, (deg_a, idx_a), (deg_b, idx_b) in relation:
                            tmp = zero_vector(self.dimension(input_degree + deg_b))
                            self.act_on_basis(tmp, 1, deg_b, idx_b, input_degree, input_index)
                            self.act(output, c % p, deg_a, idx_a, input_degree + deg_b, tmp)
                        if output.any():
                            terms = " + ".join(
                                f"{c} * {algebra.basis_element_to_string(*a)} {algebra.basis_element_to_string(*b)}"
                                for c, a, b in relation
                            )
                            raise BA.MyModuleError(
                                f"relation {terms} fails on {self.basis[input_degree][input_index]}: "
                                f"got {self.element_to_string(op_degree + input_degree, output)}"
                            )
        logger.debug("module %s satisfies the relations of %s", self.name, algebra)


class FreeModule(Module):
    """A free module whose generators are added one degree at a time.

    The basis in degree t consists of `op * g` for the generators `g` ordered by
    (degree, index) and `op` running over the basis of the algebra in degree
    t - |g|. Generators of degree t come last, so the span of generators below a
    given degree is a prefix of the basis."""

    def __init__(self, algebra: BA.Algebra, name: str, min_degree: int):
        self.algebra = algebra
        self.name = name
        self.min_degree = min_degree
        self.gen_names = OnceBiVec(min_degree)  # type: OnceBiVec

    @property
    def next_degree(self) -> int:
        return self.gen_names.len

    def add_generators(self, degree: int, num_gens: int, names: Optional[list[str]] = None) -> range:
        if names is None:
            names = [f"{self.name}_{degree}_{i}" for i in range(num_gens)]
        elif len(names) != num_gens:
            raise BA.MyValueError(f"{len(names)} names for {num_gens} generators")
        return self.gen_names.push_ooo(list(names), degree)

    def extend_by_zero(self, degree: int):
        """Declare that there are no further generators up to `degree`."""
        for t in range(self.next_degree, degree + 1):
            if t not in self.gen_names:
                self.gen_names.push_ooo([], t)

    def number_of_gens_in_degree(self, degree: int) -> int:
        if degree < self.min_degree:
            return 0
        return len(self.gen_names[degree])

    def compute_basis(self, degree):
        self.algebra.compute_basis(degree - self.min_degree)

    def dimension(self, degree):
        return self.dimension_below(degree, degree + 1)

    def dimension_below(self, degree: int, gen_bound: int) -> int:
        """Return the dimension of the span of generators of degree < `gen_bound` in `degree`."""
        algebra = self.algebra
        return sum(
            self.number_of_gens_in_degree(d) * algebra.dimension(degree - d)
            for d in range(self.min_degree, min(gen_bound, degree + 1))
        )

    def generator_offset(self, degree: int, gen_degree: int, gen_index: int) -> int:
        """Return the index of `1 * g` block start for the generator `(gen_degree, gen_index)` in `degree`."""
        return self.dimension_below(degree, gen_degree) + gen_index * self.algebra.dimension(degree - gen_degree)

    def index_to_op_gen(self, degree: int, idx: int) -> tuple[int, int, int, int]:
        """Return `(op_degree, op_index, gen_degree, gen_index)` of a basis element."""
        algebra = self.algebra
        i = idx
        for gen_degree in range(self.min_degree, degree + 1):
            op_dim = algebra.dimension(degree - gen_degree)
            block = self.number_of_gens_in_degree(gen_degree) * op_dim
            if i < block:
                gen_index, op_index = divmod(i, op_dim)
                return degree - gen_degree, op_index, gen_degree, gen_index
            i -= block
        raise BA.MyValueError(f"index {idx} out of range in degree {degree} of {self.name}")

    def act_on_basis(self, result, coeff, op_degree, op_index, mod_degree, mod_index):
        op_degree_1, op_index_1, gen_degree, gen_index = self.index_to_op_gen(mod_degree, mod_index)
        out_degree = op_degree + mod_degree
        offset = self.generator_offset(out_degree, gen_degree, gen_index)
        length = self.algebra.dimension(out_degree - gen_degree)
        self.algebra.multiply_basis_elements(
            result[offset:offset + length], coeff, op_degree, op_index, op_degree_1, op_index_1
        )

    def basis_element_to_string(self, degree, idx):
        op_degree, op_index, gen_degree, gen_index = self.index_to_op_gen(degree, idx)
        gen = self.gen_names[gen_degree][gen_index]
        if op_degree == 0:
            return gen
        return f"{self.algebra.basis_element_to_string(op_degree, op_index)} {gen}"
