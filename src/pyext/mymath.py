"""Small helpers shared by the algebra and linear algebra modules.

Monomials are sparse vectors ((g1, e1), (g2, e2), ...) sorted by generator index
with positive exponents."""

from __future__ import annotations

import numpy as np


def iter_nonzero(v):
    """Yield `(index, value)` for the non-zero entries of a vector."""
    for i in np.flatnonzero(v):
        yield int(i), int(v[i])


# operations for sparse monomials
def add_dtuple(d1, d2):
    """Return d1 + d2 as sparse vectors."""
    result = dict(d1)
    for gen, exp in d2:
        result[gen] = result.get(gen, 0) + exp
    return tuple(sorted(result.items()))


def sub_dtuple(d1, d2):
    """Return d1 - d2 as sparse vectors. Zero entries are dropped."""
    result = dict(d1)
    for gen, exp in d2:
        result[gen] = result.get(gen, 0) - exp
        if result[gen] == 0:
            del result[gen]
    return tuple(sorted(result.items()))


def dense_dtuple(d, n: int) -> tuple:
    """Return the dense exponent vector of length `n`."""
    result = [0] * n
    for gen, exp in d:
        result[gen] = exp
    return tuple(result)


def tex_pow(base: str, exp: int) -> str:
    """Return base^exp in latex."""
    return base if exp == 1 else f"{base}^{{{exp}}}"
