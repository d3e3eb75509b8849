from __future__ import annotations

from abc import ABC, abstractmethod

from .mymath import iter_nonzero


class Algebra(ABC):
    """A graded algebra over F_p.

    Each degree is finite dimensional with a distinguished ordered basis. Basis
    elements are referred to by `(degree, index)` and a general element of a
    degree is a vector over that degree's basis.

    The basis is built lazily: `compute_basis(degree)` must be called before
    any other operation involving `degree`."""

    prime = None  # type: int

    # methods -------------------
    def __repr__(self) -> str:
        return self.__str__()

    def multiply_basis_element_by_element(self, result, coeff: int, r_degree: int, r_idx: int, s_degree: int, s):
        """Add `coeff * r * s` to `result` where `r` is a basis element."""
        p = self.prime
        for i, v in iter_nonzero(s):
            self.multiply_basis_elements(result, coeff * v % p, r_degree, r_idx, s_degree, i)

    def multiply_element_by_basis_element(self, result, coeff: int, r_degree: int, r, s_degree: int, s_idx: int):
        """Add `coeff * r * s` to `result` where `s` is a basis element."""
        p = self.prime
        for i, v in iter_nonzero(r):
            self.multiply_basis_elements(result, coeff * v % p, r_degree, i, s_degree, s_idx)

    def multiply_element_by_element(self, result, coeff: int, r_degree: int, r, s_degree: int, s):
        """Add `coeff * r * s` to `result`."""
        p = self.prime
        for i, v in iter_nonzero(s):
            self.multiply_element_by_basis_element(result, coeff * v % p, r_degree, r, s_degree, i)

    def default_filtration_one_products(self) -> list[tuple[str, int, int]]:
        """Return `(name, degree, index)` of the filtration one elements of Ext to multiply by."""
        return []

    def element_to_string(self, degree: int, element) -> str:
        terms = []
        for i, v in iter_nonzero(element):
            b = self.basis_element_to_string(degree, i)
            terms.append(b if v == 1 else f"{v} * {b}")
        result = " + ".join(terms)
        return result if result else "0"

    # abstract -----------------
    @abstractmethod
    def __str__(self) -> str: pass

    @abstractmethod
    def compute_basis(self, degree: int) -> None:
        """Compute the basis up to and including `degree`.

        Must be idempotent and safe to call from several threads."""
        pass

    @abstractmethod
    def dimension(self, degree: int) -> int:
        """Return the dimension of `degree`. `compute_basis` must have been called."""
        pass

    @abstractmethod
    def multiply_basis_elements(self, result, coeff: int, r_degree: int, r_idx: int, s_degree: int, s_idx: int):
        """Add `coeff * r * s` to `result`.

        `result` is a vector in degree `r_degree + s_degree` and may be a slice
        of a larger vector."""
        pass

    @abstractmethod
    def basis_element_to_string(self, degree: int, idx: int) -> str:
        pass


class GeneratedAlgebra(Algebra, ABC):
    """An algebra with a distinguished presentation.

    The presentation lets a module be specified by the action of generators."""

    def generator_to_string(self, degree: int, idx: int) -> str:
        """Must be inverse to `string_to_generator`."""
        return self.basis_element_to_string(degree, idx)

    @abstractmethod
    def generators(self, degree: int) -> list[int]:
        """Return the indices of the generators in `degree`."""
        pass

    @abstractmethod
    def string_to_generator(self, text: str) -> tuple[str, tuple[int, int]]:
        """Parse a generator at the start of `text`.

        Return the unconsumed remainder and `(degree, index)`."""
        pass

    @abstractmethod
    def decompose_basis_element(self, degree: int, idx: int) -> list[tuple[int, tuple[int, int], tuple[int, int]]]:
        """Return `[(c_i, A_i, B_i), ...]` with the element equal to sum c_i A_i B_i.

        Each `A_i` and `B_i` has degree strictly smaller than `degree`."""
        pass

    @abstractmethod
    def generating_relations(self, degree: int) -> list[list[tuple[int, tuple[int, int], tuple[int, int]]]]:
        """Return relations sum c_i a_i b_i = 0 of total degree `degree`."""
        pass


class MyError(Exception):
    pass


class MyPrimeError(MyError):
    pass


class MyDegreeError(MyError):
    pass


class MyKeyError(MyError):
    pass


class MyParseError(MyError):
    pass


class MyValueError(MyError):
    pass


class MyModuleError(MyError):
    pass


class MyStateError(MyError):
    pass


class MyInvariantError(Exception):
    """A broken mathematical invariant. Not recoverable."""
    pass
