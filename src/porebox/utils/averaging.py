"""Averages of parameters over the two sides of a face."""

from __future__ import annotations

import numpy as np


def harmonic_mean(a, b) -> np.ndarray:
    """Entry-wise harmonic mean ``2 a b / (a + b)``, zero where ``a + b`` is zero.

    Parameters:
        a: Scalar or array of values on one side of the face.
        b: Values on the other side, of the same shape as ``a``.

    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    denom = a + b
    safe = np.where(denom == 0.0, 1.0, denom)
    return np.where(denom == 0.0, 0.0, 2.0 * a * b / safe)
