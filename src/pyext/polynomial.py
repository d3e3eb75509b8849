"""Graded commutative polynomial algebras over F_p.

Monomials are modeled by sparse vectors ((g1, e1), (g2, e2), ...).
A generator may be truncated by a height h, meaning g^h = 0. With every height
equal to 2 this is an exterior algebra (ignoring signs)."""

from __future__ import annotations

import threading
from itertools import combinations
from typing import NamedTuple, Optional, Iterable

from . import base_algebra as BA
from .fp import valid_prime
from .mymath import add_dtuple, sub_dtuple, dense_dtuple, tex_pow


class Gen(NamedTuple):
    name: str
    deg: int
    height: Optional[int]


class PolynomialAlgebra(BA.GeneratedAlgebra):
    """The algebra F_p[x_1, ..., x_n]/(x_i^{h_i}) with all |x_i| > 0."""

    def __init__(self, p: int, gens: Iterable[tuple], *, name: str = None):
        self.prime = valid_prime(p)
        self.gens = []  # type: list[Gen]
        for g in gens:
            name_g, deg, height = (*g, None) if len(g) == 2 else g
            if deg <= 0:
                raise BA.MyDegreeError(f"generator {name_g} must have positive degree")
            if height is not None and height < 2:
                raise BA.MyValueError(f"height of {name_g} must be at least 2")
            if not name_g or any(c.isspace() or c in "+*" for c in name_g):
                raise BA.MyKeyError(f"invalid generator name {name_g!r}")
            if any(g1.name == name_g for g1 in self.gens):
                raise BA.MyKeyError(f"duplicate generator {name_g}")
            self.gens.append(Gen(name_g, deg, height))
        self.name = name
        self._basis = {}  # type: dict[int, list[tuple]]
        self._index = {}  # type: dict[int, dict[tuple, int]]
        self._max_degree = -1
        self._lock = threading.Lock()

    @classmethod
    def exterior(cls, p: int, gens: Iterable[tuple[str, int]], *, name: str = None) -> PolynomialAlgebra:
        return cls(p, ((n, d, 2) for n, d in gens), name=name)

    def __str__(self):
        if self.name:
            return self.name
        names = ", ".join(g.name for g in self.gens)
        result = f"F_{self.prime}[{names}]"
        truncations = [tex_pow(g.name, g.height) for g in self.gens if g.height]
        if truncations:
            result += f"/({', '.join(truncations)})"
        return result

    # ---------- Basis ----------
    def compute_basis(self, degree: int):
        if degree <= self._max_degree:
            return
        with self._lock:
            for d in range(self._max_degree + 1, degree + 1):
                mons = self._basis_mons(d)
                self._index[d] = {m: i for i, m in enumerate(mons)}
                self._basis[d] = mons
                self._max_degree = d

    def _basis_mons(self, d: int) -> list[tuple]:
        """Return the monomials of degree `d`, each built by appending generators in increasing order."""
        if d == 0:
            return [()]
        result = []
        for i, gen in enumerate(self.gens):
            if gen.deg > d:
                continue
            for m in self._basis[d - gen.deg]:
                i_m, e_m = m[-1] if m else (-1, 0)
                if i_m > i:
                    continue
                if i_m == i:
                    if gen.height and e_m + 1 >= gen.height:
                        continue
                    result.append(m[:-1] + ((i, e_m + 1),))
                else:
                    result.append(m + ((i, 1),))
        n = len(self.gens)
        result.sort(key=lambda _m: tuple(-e for e in dense_dtuple(_m, n)))
        return result

    def dimension(self, degree: int) -> int:
        return len(self._basis.get(degree, ()))

    def deg_mon(self, mon: tuple) -> int:
        return sum(self.gens[i].deg * e for i, e in mon)

    def mon_index(self, mon: tuple) -> tuple[int, int]:
        """Return `(degree, index)` of a monomial."""
        d = self.deg_mon(mon)
        self.compute_basis(d)
        try:
            return d, self._index[d][mon]
        except KeyError:
            raise BA.MyValueError(f"{mon} is zero in {self}") from None

    def is_truncated(self, mon: tuple) -> bool:
        return any(self.gens[i].height and e >= self.gens[i].height for i, e in mon)

    # ---------- Multiplication ----------
    def multiply_basis_elements(self, result, coeff, r_degree, r_idx, s_degree, s_idx):
        m = add_dtuple(self._basis[r_degree][r_idx], self._basis[s_degree][s_idx])
        if self.is_truncated(m):
            return
        i = self._index[r_degree + s_degree][m]
        result[i] = (result[i] + coeff) % self.prime

    def default_filtration_one_products(self):
        return [(g.name, *self.mon_index(((i, 1),))) for i, g in enumerate(self.gens)]

    # ---------- Strings ----------
    def str_mon(self, mon: tuple) -> str:
        if mon:
            return "".join(tex_pow(self.gens[i].name, e) for i, e in mon)
        else:
            return "1"

    def basis_element_to_string(self, degree, idx):
        return self.str_mon(self._basis[degree][idx])

    # ---------- Presentation ----------
    def generators(self, degree):
        self.compute_basis(degree)
        return [self._index[degree][((i, 1),)] for i, g in enumerate(self.gens) if g.deg == degree]

    def generator_to_string(self, degree, idx):
        mon = self._basis[degree][idx]
        if len(mon) != 1 or mon[0][1] != 1:
            raise BA.MyValueError(f"{self.str_mon(mon)} is not a generator")
        return self.gens[mon[0][0]].name

    def string_to_generator(self, text):
        s = text.lstrip()
        matches = [i for i, g in enumerate(self.gens) if s.startswith(g.name)]
        if not matches:
            raise BA.MyParseError(f"no generator at {text!r}")
        i = max(matches, key=lambda _i: len(self.gens[_i].name))
        return s[len(self.gens[i].name):], self.mon_index(((i, 1),))

    def decompose_basis_element(self, degree, idx):
        mon = self._basis[degree][idx]
        if sum(e for _, e in mon) <= 1:
            raise BA.MyValueError(f"{self.str_mon(mon)} is not decomposable")
        i = mon[0][0]
        x = ((i, 1),)
        return [(1, self.mon_index(x), self.mon_index(sub_dtuple(mon, x)))]

    def generating_relations(self, degree):
        p = self.prime
        relations = []
        for (i, gi), (j, gj) in combinations(enumerate(self.gens), 2):
            if gi.deg + gj.deg == degree:
                xi, xj = self.mon_index(((i, 1),)), self.mon_index(((j, 1),))
                relations.append([(1, xi, xj), (p - 1, xj, xi)])
        for i, g in enumerate(self.gens):
            if g.height and g.deg * g.height == degree:
                relations.append([(1, self.mon_index(((i, 1),)), self.mon_index(((i, g.height - 1),)))])
        return relations
