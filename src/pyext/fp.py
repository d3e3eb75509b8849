"""Linear algebra over F_p.

Vectors are one dimensional numpy arrays of `DTYPE` with entries in [0, p).
Slicing a vector gives a view, so results can be accumulated into a sub-range
of a larger vector in place."""

from __future__ import annotations

import numpy as np

from . import base_algebra as BA

DTYPE = np.int64
# (p - 1)^2 + p must fit in DTYPE for the single products below.
MAX_PRIME = 1 << 31
_DTYPE_BOUND = 1 << 63


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    i = 2
    while i * i <= n:
        if n % i == 0:
            return False
        i += 1
    return True


def valid_prime(p: int) -> int:
    """Return `p` as an int if it is a usable prime."""
    if not isinstance(p, (int, np.integer)) or not is_prime(int(p)):
        raise BA.MyPrimeError(f"{p} is not a prime")
    if p >= MAX_PRIME:
        raise BA.MyPrimeError(f"prime {p} too large")
    return int(p)


def zero_vector(dim: int) -> np.ndarray:
    return np.zeros(dim, dtype=DTYPE)


def to_vector(entries, p: int) -> np.ndarray:
    return np.asarray(entries, dtype=DTYPE) % p


def vector_times_matrix(v, m: np.ndarray, p: int) -> np.ndarray:
    """Return `v @ m` reduced mod p.

    The numpy product is used when a row of partial sums cannot overflow DTYPE.
    Otherwise the rows are accumulated one at a time and reduced after each."""
    if len(v) * (p - 1) ** 2 < _DTYPE_BOUND - p:
        return v @ m % p
    result = zero_vector(m.shape[1])
    for c, row in zip(v, m):
        c = int(c)
        if c:
            result = (result + c * row) % p
    return result


class Matrix:
    """A dense matrix over F_p. Rows are vectors."""

    def __init__(self, p: int, rows: int, columns: int, data: np.ndarray = None):
        self.prime = p
        if data is None:
            data = np.zeros((rows, columns), dtype=DTYPE)
        elif data.shape != (rows, columns):
            raise BA.MyValueError(f"expected a {rows}x{columns} matrix, got {data.shape}")
        self.data = data

    @classmethod
    def from_rows(cls, p: int, rows, columns: int) -> Matrix:
        rows = list(rows)
        if not rows:
            return cls(p, 0, columns)
        data = np.array([to_vector(r, p) for r in rows], dtype=DTYPE).reshape(len(rows), columns)
        return cls(p, len(rows), columns, data)

    def __repr__(self):
        return f"Matrix(p={self.prime}, {self.data.tolist()})"

    def __getitem__(self, i):
        return self.data[i]

    def __iter__(self):
        return iter(self.data)

    def __eq__(self, other):
        return self.prime == other.prime and np.array_equal(self.data, other.data)

    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def columns(self) -> int:
        return self.data.shape[1]

    def to_list(self) -> list[list[int]]:
        return self.data.tolist()

    def augment_identity(self) -> Matrix:
        """Return [self | I]."""
        n = self.rows
        data = np.concatenate([self.data % self.prime, np.eye(n, dtype=DTYPE)], axis=1)
        return Matrix(self.prime, n, self.columns + n, data)

    def row_reduce(self) -> list[int]:
        """Put the matrix in reduced row echelon form in place.

        Return `pivots` where `pivots[c]` is the row whose pivot is in column `c`
        and -1 if there is none."""
        p = self.prime
        m = self.data
        pivots = [-1] * self.columns
        r = 0
        for c in range(self.columns):
            if r == self.rows:
                break
            nz = np.flatnonzero(m[r:, c])
            if len(nz) == 0:
                continue
            i = r + int(nz[0])
            if i != r:
                m[[r, i]] = m[[i, r]]
            m[r] = m[r] * pow(int(m[r, c]), -1, p) % p
            col = m[:, c].copy()
            col[r] = 0
            others = np.flatnonzero(col)
            if len(others):
                m[others] = (m[others] - np.outer(col[others], m[r])) % p
            pivots[c] = r
            r += 1
        return pivots

    def compute_quasi_inverse(self, last_target_col: int) -> QuasiInverse:
        """For an augmented matrix [A | I] in row echelon form, return the quasi-inverse of A."""
        pivot_cols, rank = self._image_pivots(last_target_col)
        return QuasiInverse(
            pivot_cols,
            self.data[:rank, last_target_col:].copy(),
            self.data[:rank, :last_target_col].copy(),
            self.prime,
        )

    def compute_kernel(self, last_target_col: int) -> Subspace:
        """For an augmented matrix [A | I] in row echelon form, return the kernel of A."""
        _, rank = self._image_pivots(last_target_col)
        kernel = Subspace(self.prime, self.columns - last_target_col)
        for row in self.data[rank:, last_target_col:]:
            kernel.add_vector(row)
        return kernel

    def _image_pivots(self, last_target_col: int):
        pivots = self.row_reduce()
        pivot_cols = [c for c in range(last_target_col) if pivots[c] >= 0]
        return pivot_cols, len(pivot_cols)


class Subspace:
    """A subspace of F_p^dim kept as a basis in reduced row echelon form."""

    def __init__(self, p: int, dim: int):
        self.prime = p
        self.dim = dim
        self._rows = []  # type: list[np.ndarray]
        self._pivots = []  # type: list[int]

    @classmethod
    def entire_space(cls, p: int, dim: int) -> Subspace:
        result = cls(p, dim)
        for i in range(dim):
            v = zero_vector(dim)
            v[i] = 1
            result._rows.append(v)
            result._pivots.append(i)
        return result

    @classmethod
    def from_matrix(cls, matrix: Matrix) -> Subspace:
        result = cls(matrix.prime, matrix.columns)
        for row in matrix:
            result.add_vector(row)
        return result

    def __len__(self):
        return len(self._rows)

    def basis(self) -> list[np.ndarray]:
        return self._rows

    def reduce(self, v: np.ndarray) -> np.ndarray:
        """Reduce `v` by the basis in place and return it."""
        p = self.prime
        for row, col in zip(self._rows, self._pivots):
            c = int(v[col])
            if c:
                v[:] = (v - c * row) % p
        return v

    def add_vector(self, v) -> bool:
        """Add `v` to the subspace. Return whether the dimension grew."""
        p = self.prime
        w = self.reduce(to_vector(v, p).copy())
        nz = np.flatnonzero(w)
        if len(nz) == 0:
            return False
        col = int(nz[0])
        w = w * pow(int(w[col]), -1, p) % p
        for i, row in enumerate(self._rows):
            c = int(row[col])
            if c:
                self._rows[i] = (row - c * w) % p
        self._rows.append(w)
        self._pivots.append(col)
        return True


class QuasiInverse:
    """A right inverse of a linear map, defined on its image.

    `image_rows[k]` is the reduced image vector with pivot `pivot_cols[k]` and
    `preimage[k]` is a preimage of it."""

    def __init__(self, pivot_cols: list[int], preimage: np.ndarray, image_rows: np.ndarray, p: int):
        self.prime = p
        self.pivot_cols = np.asarray(pivot_cols, dtype=np.intp)
        self.preimage = preimage
        self.image_rows = image_rows

    @property
    def source_dimension(self) -> int:
        return self.preimage.shape[1]

    @property
    def target_dimension(self) -> int:
        return self.image_rows.shape[1]

    def apply(self, result, coeff: int, v):
        """Add `coeff` times a preimage of `v` to `result`.

        Raise `MyInvariantError` if `v` is not in the image."""
        p = self.prime
        v = np.asarray(v, dtype=DTYPE) % p
        if len(v) != self.target_dimension:
            raise BA.MyValueError(f"vector of length {len(v)} for a map into dimension {self.target_dimension}")
        if len(self.pivot_cols) == 0:
            if v.any():
                raise BA.MyInvariantError("vector not in the image of the zero map")
            return
        cs = v[self.pivot_cols]
        if ((v - vector_times_matrix(cs, self.image_rows, p)) % p).any():
            raise BA.MyInvariantError("vector not in the image")
        result[:] = (result + coeff % p * vector_times_matrix(cs, self.preimage, p)) % p
