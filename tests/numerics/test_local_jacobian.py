"""Tests of the finite difference Jacobian of the local residual.

An incompressible tracer solution without diffusion gives a residual which is linear
in the pressure and, with fixed upstream direction, in the fractions. The derivatives
are known in closed form.

"""

from __future__ import annotations

import numpy as np
import pytest

import porebox as pb


class _Problem(pb.Problem):
    def porosity(self, elem_geom, scv_idx):
        return 0.4

    def intrinsic_permeability(self, elem_geom, scv_idx):
        return 1e-12 * np.eye(elem_geom.dim)

    def tortuosity(self, elem_geom, scv_idx):
        return 0.5

    def temperature(self, elem_geom, scv_idx):
        return 293.15

    def source(self, elem_geom, scv_idx):
        return np.zeros(2)

    def boundary_types(self, elem_geom, scv_idx):
        return pb.BoundaryTypes(2)


@pytest.fixture
def model() -> pb.OnePTwoCModel:
    return pb.OnePTwoCModel(
        _Problem(),
        pb.TracerFluidSystem(diffusion_coefficient=0.0),
        params={"use_moles": False},
    )


def _element_state(model, values):
    elem_geom = pb.line_grid(np.array([0.0, 1.0])).elements[0]
    pvs = [model.make_primary_variables(np.array(v)) for v in values]
    vol_vars = []
    for scv, pv in zip(elem_geom.scvs, pvs):
        vv = model.make_volume_variables()
        vv.update(pv, model.problem, elem_geom, scv.local_idx)
        vol_vars.append(vv)
    return elem_geom, pvs, vol_vars


@pytest.mark.parametrize("method", [1, 0, -1])
def test_derivatives(model, method: int):
    elem_geom, pvs, cur = _element_state(model, [[2e5, 0.1], [1e5, 0.2]])
    _, _, prev = _element_state(model, [[2e5, 0.1], [1e5, 0.1]])
    jacobian = pb.LocalJacobian(model, {"numeric_difference_method": method})

    residual, jac = jacobian.assemble(elem_geom, pvs, cur, prev, dt=10.0)

    assert jac.shape == (4, 4)
    # Darcy flux rho K / mu / L per unit of pressure
    assert jac[0, 0] == pytest.approx(1e-6, rel=1e-6)
    assert jac[0, 2] == pytest.approx(-1e-6, rel=1e-6)
    assert jac[2, 0] == pytest.approx(-1e-6, rel=1e-6)
    # Storage rho phi V / dt and the upstream transport 0.1
    assert jac[1, 1] == pytest.approx(20.1, rel=1e-6)
    # Fractions downstream do not enter the advective fluxes
    assert jac[1, 3] == pytest.approx(0.0, abs=1e-9)
    # The continuity equation does not depend on the fractions
    assert jac[0, 1] == pytest.approx(0.0, abs=1e-9)

    # The stored residual is the one of the unperturbed state
    assert np.array_equal(model.local_residual.residual, residual)
    assert residual[1, 1] == pytest.approx(20.0 * 0.1 - 0.01, rel=1e-10)


def test_forward_and_central_differences_agree(model):
    elem_geom, pvs, cur = _element_state(model, [[2e5, 0.1], [1e5, 0.2]])
    _, forward = pb.LocalJacobian(model).assemble(elem_geom, pvs, cur)
    _, central = pb.LocalJacobian(
        model, {"numeric_difference_method": 0}
    ).assemble(elem_geom, pvs, cur)

    assert np.allclose(forward, central, rtol=1e-6, atol=1e-12)


def test_perturbation_does_not_modify_primary_variables(model):
    elem_geom, pvs, cur = _element_state(model, [[2e5, 0.1], [1e5, 0.2]])
    pb.LocalJacobian(model).assemble(elem_geom, pvs, cur)

    assert pvs[0].values.tolist() == [2e5, 0.1]
    assert pvs[1].values.tolist() == [1e5, 0.2]
    assert cur[0].pressure == 2e5


def test_numeric_epsilon_and_invalid_method(model):
    jacobian = pb.LocalJacobian(model, {"base_epsilon": 1e-6})
    assert jacobian.numeric_epsilon(0.0) == pytest.approx(1e-6)
    assert jacobian.numeric_epsilon(-1e5) == pytest.approx(1e-6 * (1e5 + 1.0))

    with pytest.raises(ValueError):
        pb.LocalJacobian(model, {"numeric_difference_method": 2})
