"""Testing utility functions of the compositional subpackage."""

from __future__ import annotations

import numpy as np
import pytest

import porebox as pb
from porebox.compositional.utils import normalize_fractions


def test_normalize_fractions():
    x = np.array([0.5, 1.0, 0.5])
    normalized = normalize_fractions(x)

    assert np.allclose(normalized, [0.25, 0.5, 0.25], rtol=0.0, atol=1e-15)
    # A copy is returned
    assert np.all(x == [0.5, 1.0, 0.5])


def test_constraint_solver_error():
    err = pb.ConstraintSolverError("Not converged.", 12, 1e-3)
    assert isinstance(err, ArithmeticError)
    assert str(err) == "Not converged."
    assert err.num_iter == 12
    assert err.residual == 1e-3

    with pytest.raises(pb.ConstraintSolverError) as info:
        raise pb.ConstraintSolverError("Singular system.")
    assert info.value.num_iter == 0
    assert info.value.residual is None
