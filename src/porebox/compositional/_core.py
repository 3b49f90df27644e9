"""This private module contains central assumptions and data for the entire
compositional subpackage.

Changes here should be done with much care.

"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "R_IDEAL_MOL",
    "T_REF",
    "PhysicalState",
]


NUMBA_CACHE: bool = True
"""Flag to instruct the numba compiler to cache (!and use cached!) functions.

This might cause some confusion in the developing process due to some lack in numba's
caching functionality.
(Does not recognize changes in nested functions and hence does not trigger
re-compilation).

See Also:
    https://numba.readthedocs.io/en/stable/user/jit.html#cache

"""

NUMBA_FAST_MATH: bool = False
"""Flag to instruct the numba compiler to use it's ``fastmath`` functions.

To be used with care, due to loss in precision. The constraint solvers compare mole
fractions with tolerances close to machine precision.

See Also:
    https://numba.readthedocs.io/en/stable/reference/jit-compilation.html#numba.jit

"""

R_IDEAL_MOL: float = 8.31446261815324
"""Universal gas constant in ``[J / K mol]``."""

T_REF: float = 273.16
"""The reference temperature for the compositional module is set to the triple point
temperature of pure water in ``[K]``.

Specific enthalpies of the fluid systems are zero at this temperature.

"""


class PhysicalState(Enum):
    """Enum object for characterizing the physical states of a phase.

    - :attr:`liquid`: liquid-like state (value 0)
    - ``gas: int = 1``: gas-like state (value 1)
    - values above 1 are reserved for further development

    """

    liquid: int = 0
    gas: int = 1
