"""Tests of the boundary condition types of sub-control volumes."""

import numpy as np
import pytest

import porebox as pb


def test_no_conditions_by_default():
    bc = pb.BoundaryTypes(3)

    assert not bc.has_neumann()
    assert not bc.has_outflow()
    assert not bc.has_dirichlet()
    assert all(bc.bc_type(i) == pb.BoundaryType.none for i in range(3))
    assert np.all(bc.eq_to_pv == [0, 1, 2])


def test_conditions_are_exclusive():
    bc = pb.BoundaryTypes(3)
    bc.set_neumann()
    bc.set_dirichlet(1)
    bc.set_outflow([2])

    assert bc.bc_type(0) == pb.BoundaryType.neumann
    assert bc.bc_type(1) == pb.BoundaryType.dirichlet
    assert bc.bc_type(2) == pb.BoundaryType.outflow
    assert np.all(bc.is_neu == [True, False, False])
    assert np.all(bc.is_dir == [False, True, False])
    assert np.all(bc.is_out == [False, False, True])
    assert bc.is_neumann(0) and bc.is_dirichlet(1) and bc.is_outflow(2)

    # Overwriting a condition removes the previous one
    bc.set_neumann(1)
    assert not bc.has_dirichlet()
    assert bc.is_neumann(1)


def test_dirichlet_primary_variable_mapping():
    bc = pb.BoundaryTypes(3)
    bc.set_dirichlet(0, pv_idx=2)
    assert bc.eq_to_pv[0] == 2

    bc.set_dirichlet(0)
    assert bc.eq_to_pv[0] == 0

    with pytest.raises(ValueError):
        bc.set_dirichlet([0, 1], pv_idx=2)
    with pytest.raises(ValueError):
        bc.set_neumann(3)
    with pytest.raises(ValueError):
        bc.set_outflow(-1)


def test_copy_and_reset():
    bc = pb.BoundaryTypes(2)
    bc.set_dirichlet(1, pv_idx=0)
    copy = bc.copy()

    bc.reset()
    assert not bc.has_dirichlet()
    assert np.all(bc.eq_to_pv == [0, 1])

    # The copy is independent
    assert copy.is_dirichlet(1)
    assert copy.eq_to_pv[1] == 0
    assert "Dirichlet equations: [1]" in repr(copy)
