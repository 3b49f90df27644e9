"""Contains utility functions for the compositional subpackage, as well as the custom
exception classes :class:`CompositionalModellingError` and
:class:`ConstraintSolverError`."""

from __future__ import annotations

from typing import Optional

import numba
import numpy as np

from ._core import NUMBA_FAST_MATH

__all__ = [
    "normalize_fractions",
    "CompositionalModellingError",
    "ConstraintSolverError",
]


@numba.njit("float64[:](float64[:])", fastmath=NUMBA_FAST_MATH, cache=True)
def normalize_fractions(x: np.ndarray) -> np.ndarray:
    """Divides a vector of fractions by the sum of its elements.

    Intended use is for the composition of a phase, which ought to fulfill the unity
    constraint (e.g. when a non-present phase becomes present).

    NJIT-ed function with signature ``(float64[:]) -> float64[:]``.

    Parameters:
        x: ``shape=(N,)``

            Fractions of ``N`` components.

    Returns:
        A normalized copy of ``x``.

    """
    return x / x.sum()


class CompositionalModellingError(Exception):
    """Custom exception class to alert the user when the compositional framework is
    inconsistently used.

    Such usage includes for example:

    - passing a fluid state with a number of phases or components differing from the
      fluid system,
    - passing a number of auxiliary constraints which does not close the equilibrium
      problem,
    - requesting a mass or mole basis which is not known.

    """


class ConstraintSolverError(ArithmeticError):
    """Raised when a constraint solver fails to compute a thermodynamically consistent
    state, i.e. it did not converge, or the linear system was singular.

    This is a recoverable error: The fluid state passed to the solver must not be used,
    but a nonlinear solver may reduce its update and re-evaluate the residual.

    Parameters:
        msg: Error message.
        num_iter: Number of iterations performed until the failure, if applicable.
        residual: Last measure of convergence (maximal change in mole fractions), if
            applicable.

    """

    def __init__(
        self, msg: str, num_iter: int = 0, residual: Optional[float] = None
    ) -> None:
        super().__init__(msg)

        self.num_iter: int = num_iter
        """Number of iterations performed by the solver before failing."""

        self.residual: Optional[float] = residual
        """Last convergence measure of the solver, if any was computed."""
