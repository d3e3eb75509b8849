"""Minimal resolutions and chain maps over graded algebras over F_p."""

from .base_algebra import (
    Algebra,
    GeneratedAlgebra,
    MyError,
    MyPrimeError,
    MyDegreeError,
    MyKeyError,
    MyParseError,
    MyValueError,
    MyModuleError,
    MyStateError,
    MyInvariantError,
)
from .polynomial import PolynomialAlgebra
from .module import Module, FDModule, FreeModule
from .homomorphism import FreeModuleHomomorphism
from .resolution import Resolution
from .resolution_homomorphism import ResolutionHomomorphism
from .utils import iter_s_t

__version__ = "0.1.0"
