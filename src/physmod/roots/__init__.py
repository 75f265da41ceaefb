"""Scalar root finding.

- :func:`fzero` -- Zero of ``g(x)`` from an initial guess or a bracket
- :func:`brent` -- Brent's method on a bracket ``[low, high]``
- :func:`find_bracket` -- Outward search from a guess for a sign change

All take an error function ``g(x) -> float`` and return a
:class:`RootEstimate` (or a :class:`Bracket` for :func:`find_bracket`).
"""

from physmod.roots._types import Bracket, RootConfig, RootEstimate
from physmod.roots.bracketing import brent
from physmod.roots.zero import find_bracket, fzero

__all__ = [
    "Bracket",
    "RootConfig",
    "RootEstimate",
    "brent",
    "find_bracket",
    "fzero",
]
