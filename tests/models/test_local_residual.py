"""Tests of the element-local residuals of the 1p2c and the PVS model.

The 1p2c tests use an incompressible tracer solution without diffusion, such that
fluxes over a face are known in closed form: With a unit element, a permeability of
``1e-12``, a pressure drop of ``1e5`` and a viscosity of ``1e-3``, the volume flux is
``1e-7 / 1e-3 = 1e-4`` and the mass flux ``0.1``.

"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pytest

import porebox as pb


class _ColumnProblem(pb.Problem):
    """Homogeneous medium with boundary conditions assigned per global vertex."""

    def __init__(
        self,
        bc_types: Optional[dict[int, pb.BoundaryTypes]] = None,
        dirichlet_values: Optional[np.ndarray] = None,
        neumann_values: Optional[np.ndarray] = None,
        num_eq: int = 2,
    ) -> None:
        super().__init__()
        self.bc_types = {} if bc_types is None else bc_types
        self.dirichlet_values = dirichlet_values
        self.neumann_values = neumann_values
        self.num_eq = num_eq

    def porosity(self, elem_geom, scv_idx):
        return 0.4

    def intrinsic_permeability(self, elem_geom, scv_idx):
        return 1e-12 * np.eye(elem_geom.dim)

    def tortuosity(self, elem_geom, scv_idx):
        return 0.5

    def temperature(self, elem_geom, scv_idx):
        return 293.15

    def source(self, elem_geom, scv_idx):
        return np.zeros(self.num_eq)

    def boundary_types(self, elem_geom, scv_idx):
        vertex = elem_geom.scvs[scv_idx].global_idx
        return self.bc_types.get(vertex, pb.BoundaryTypes(self.num_eq)).copy()

    def dirichlet(self, elem_geom, scv_idx):
        return self.dirichlet_values

    def neumann(self, elem_geom, boundary_face_idx):
        return self.neumann_values


def _bc(num_eq: int, kind: str, eq_idx=None) -> pb.BoundaryTypes:
    bc = pb.BoundaryTypes(num_eq)
    getattr(bc, f"set_{kind}")(eq_idx)
    return bc


def _vol_vars(model, elem_geom, pvs):
    vol_vars = []
    for scv, pv in zip(elem_geom.scvs, pvs):
        vv = model.make_volume_variables()
        vv.update(pv, model.problem, elem_geom, scv.local_idx)
        vol_vars.append(vv)
    return vol_vars


def _one_p_two_c(problem, params=None, **fluid_params):
    fluid_params.setdefault("diffusion_coefficient", 0.0)
    params = {"use_moles": False} if params is None else params
    return pb.OnePTwoCModel(problem, pb.TracerFluidSystem(**fluid_params), params)


def _eval(model, elem_geom, values, prev_values=None, dt=None):
    pvs = [model.make_primary_variables(np.array(v)) for v in values]
    cur = _vol_vars(model, elem_geom, pvs)
    prev = None
    if prev_values is not None:
        prev_pvs = [model.make_primary_variables(np.array(v)) for v in prev_values]
        prev = _vol_vars(model, elem_geom, prev_pvs)
    return model.local_residual.eval(elem_geom, cur, pvs, prev, dt)


@pytest.fixture
def line_element() -> pb.ElementGeometry:
    return pb.line_grid(np.array([0.0, 1.0])).elements[0]


@pytest.mark.parametrize(
    "upwind_weight, expected_transport", [(1.0, 0.01), (0.5, 0.015), (0.0, 0.02)]
)
def test_upwinding(upwind_weight: float, expected_transport: float, line_element):
    model = _one_p_two_c(
        _ColumnProblem(), {"use_moles": False, "upwind_weight": upwind_weight}
    )
    residual = _eval(model, line_element, [[2e5, 0.1], [1e5, 0.2]])

    assert residual[0, 0] == pytest.approx(0.1, rel=1e-12)
    assert residual[0, 1] == pytest.approx(expected_transport, rel=1e-12)
    # What leaves the first sub-control volume enters the second one
    assert np.allclose(residual[1], -residual[0], rtol=0.0, atol=1e-16)
    assert residual is model.local_residual.residual


def test_upstream_direction(line_element):
    model = _one_p_two_c(_ColumnProblem())
    residual = _eval(model, line_element, [[1e5, 0.1], [2e5, 0.2]])

    assert residual[0, 0] == pytest.approx(-0.1, rel=1e-12)
    assert residual[0, 1] == pytest.approx(-0.02, rel=1e-12)


def test_upwind_weight_configuration(monkeypatch):
    problem = _ColumnProblem()
    with pytest.raises(ValueError):
        _one_p_two_c(problem, {"upwind_weight": 1.5})
    with pytest.raises(ValueError):
        _one_p_two_c(problem, {"upwind_weight": -0.1})

    assert _one_p_two_c(problem).local_residual.upwind_weight == 1.0

    monkeypatch.setitem(pb.config, pb.NUMERICS, {"upwind_weight": "0.5"})
    assert _one_p_two_c(problem).local_residual.upwind_weight == 0.5
    # Model parameters take precedence
    model = _one_p_two_c(problem, {"upwind_weight": 0.8})
    assert model.local_residual.upwind_weight == 0.8


def test_diffusive_flux(line_element):
    model = _one_p_two_c(_ColumnProblem(), diffusion_coefficient=1e-9)
    residual = _eval(model, line_element, [[1e5, 0.1], [1e5, 0.2]])

    # No pressure gradient: -phi * tau * D * rho * dX/dx
    assert residual[0, 0] == pytest.approx(0.0, abs=1e-20)
    assert residual[0, 1] == pytest.approx(-0.4 * 0.5 * 1e-9 * 1000.0 * 0.1)


def test_storage_and_source(line_element):
    class _Injection(_ColumnProblem):
        def source(self, elem_geom, scv_idx):
            return np.array([2.0, 1.0])

    model = _one_p_two_c(_Injection())
    values = [[1e5, 0.2], [1e5, 0.2]]
    residual = _eval(model, line_element, values, [[1e5, 0.1], [1e5, 0.1]], dt=10.0)

    # (rho phi X - rho phi X_prev) V / dt - q V
    storage = 1000.0 * 0.4 * (0.2 - 0.1) * 0.5 / 10.0
    assert np.allclose(residual[:, 0], -1.0, rtol=1e-12)
    assert np.allclose(residual[:, 1], storage - 0.5, rtol=1e-12)

    with pytest.raises(ValueError):
        _eval(model, line_element, values, dt=10.0)


def test_mass_and_mole_formulation(line_element):
    """Both formulations describe the same balances, related by the molar masses."""
    fluid_params = {"density_coefficient": 0.3}
    params = {"upwind_weight": 0.5}
    mole = _one_p_two_c(
        _ColumnProblem(), {"use_moles": True, **params}, **fluid_params
    )
    mass = _one_p_two_c(
        _ColumnProblem(), {"use_moles": False, **params}, **fluid_params
    )
    M0, M1 = mole.fluid_system.molar_mass(0), mole.fluid_system.molar_mass(1)

    def to_mass(p, x1):
        return [p, x1 * M1 / ((1.0 - x1) * M0 + x1 * M1)]

    cur = [[2e5, 0.01], [1e5, 0.05]]
    prev = [[1.5e5, 0.02], [1.5e5, 0.02]]
    r_mole = _eval(mole, line_element, cur, prev, dt=100.0)
    r_mass = _eval(
        mass,
        line_element,
        [to_mass(*v) for v in cur],
        [to_mass(*v) for v in prev],
        dt=100.0,
    )

    atol = 1e-10 * np.abs(r_mass).max()
    assert np.allclose(r_mass[:, 1], M1 * r_mole[:, 1], rtol=1e-10, atol=atol)
    assert np.allclose(
        r_mass[:, 0],
        M0 * r_mole[:, 0] + (M1 - M0) * r_mole[:, 1],
        rtol=1e-10,
        atol=atol,
    )


def test_dirichlet_replaces_equations(line_element):
    bc = pb.BoundaryTypes(2)
    bc.set_dirichlet(0)
    problem = _ColumnProblem({0: bc}, dirichlet_values=np.array([1.5e5, 0.0]))
    model = _one_p_two_c(problem)
    residual = _eval(model, line_element, [[2e5, 0.1], [1e5, 0.2]])

    assert residual[0, 0] == pytest.approx(5e4)
    # The transport equation keeps its flux
    assert residual[0, 1] == pytest.approx(0.01, rel=1e-12)
    assert np.allclose(residual[1], [-0.1, -0.01], rtol=1e-12)
    assert np.all(
        model.local_residual.dirichlet_mask() == [[True, False], [False, False]]
    )

    # Prescribing the pressure in the transport equation
    bc.set_dirichlet(1, pv_idx=0)
    residual = _eval(model, line_element, [[2e5, 0.1], [1e5, 0.2]])
    assert residual[0, 1] == pytest.approx(5e4)


def test_neumann_is_scaled_with_face_areas():
    grid = pb.rectangle_grid(np.array([0.0, 2.0]), np.array([0.0, 1.0]))
    elem_geom = grid.elements[0]
    problem = _ColumnProblem(
        {v: _bc(2, "neumann") for v in range(4)}, neumann_values=np.array([1.0, 2.0])
    )
    model = _one_p_two_c(problem)
    # Uniform state, no interior fluxes
    residual = _eval(model, elem_geom, [[1e5, 0.1]] * 4)

    # Sub-control volume 0 has a bottom face of length 1 and a left face of length 0.5
    assert np.allclose(residual[0], [1.5, 3.0])
    assert residual[:, 0].sum() == pytest.approx(6.0)


def test_outflow(line_element):
    problem = _ColumnProblem({1: _bc(2, "outflow")})
    model = _one_p_two_c(problem)
    residual = _eval(model, line_element, [[2e5, 0.1], [1e5, 0.2]])

    # The fluid leaves with the composition of the outflow vertex
    assert residual[1, 0] == pytest.approx(0.0, abs=1e-14)
    assert residual[1, 1] == pytest.approx(0.01, rel=1e-12)
    assert np.allclose(residual[0], [0.1, 0.01], rtol=1e-12)


def test_outflow_requires_implementation(line_element):
    class _NoOutflow(pb.BoxLocalResidual):
        def compute_flux(self, result, face_idx):
            result[:] = 0.0

    problem = _ColumnProblem({1: _bc(2, "outflow")})
    residual = _NoOutflow(problem, 2)
    with pytest.raises(NotImplementedError):
        residual.eval(line_element, [None, None], [None, None])


def test_boundary_evaluation_is_idempotent(line_element):
    problem = _ColumnProblem(
        {0: _bc(2, "neumann"), 1: _bc(2, "outflow")},
        neumann_values=np.array([-1.0, -0.5]),
    )
    model = _one_p_two_c(problem)
    lr = model.local_residual
    residual = _eval(model, line_element, [[2e5, 0.1], [1e5, 0.2]]).copy()

    first = lr.eval_boundary()
    second = lr.eval_boundary()
    assert np.all(first == second)
    assert np.allclose(first, [[-1.0, -0.5], [0.1, 0.02]])
    # The stored residual is not modified
    assert np.all(lr.residual == residual)


def test_missing_boundary_callback(line_element):
    class _NoBoundary(_ColumnProblem):
        boundary_types = pb.Problem.boundary_types

    model = _one_p_two_c(_NoBoundary())
    with pytest.raises(NotImplementedError, match="boundary_types"):
        _eval(model, line_element, [[1e5, 0.1], [1e5, 0.1]])


def test_gravity_equilibrium(line_element):
    """A hydrostatic pressure profile in a vertical column does not induce a flux."""
    problem = _ColumnProblem()
    problem.enable_gravity = True
    model = _one_p_two_c(problem)
    p_top = 2e5 - 1000.0 * pb.GRAVITY_ACCELERATION
    pvs = [
        model.make_primary_variables(np.array([2e5, 0.1])),
        model.make_primary_variables(np.array([p_top, 0.1])),
    ]
    vol_vars = _vol_vars(model, line_element, pvs)

    flux_vars = pb.OnePTwoCFluxVariables(
        problem, line_element, 0, vol_vars, model.basis
    )
    assert flux_vars.kmvp_normal == pytest.approx(0.0, abs=1e-20)

    problem.enable_gravity = False
    flux_vars = pb.OnePTwoCFluxVariables(
        problem, line_element, 0, vol_vars, model.basis
    )
    assert flux_vars.kmvp_normal == pytest.approx(
        1e-12 * 1000.0 * pb.GRAVITY_ACCELERATION
    )


def test_pvs_advective_fluxes(line_element):
    problem = _ColumnProblem()
    model = pb.PvsModel(problem, pb.H2ON2FluidSystem())
    pvs = [
        model.make_primary_variables(np.array([2e5, 0.3])),
        model.make_primary_variables(np.array([1e5, 0.6])),
    ]
    vol_vars = _vol_vars(model, line_element, pvs)
    residual = model.local_residual.eval(line_element, vol_vars, pvs)

    # Both phases flow from the first vertex, kmvp = 1e-7
    up = vol_vars[0]
    fs = up.fluid_state
    for k in range(2):
        expected = sum(
            1e-7 * fs.molar_density(j) * fs.mole_fraction[j, k] * up.mobility[j]
            for j in range(2)
        )
        assert residual[0, k] == pytest.approx(expected, rel=1e-10)
    assert np.allclose(residual[1], -residual[0], rtol=1e-14)


def test_pvs_storage(line_element):
    model = pb.PvsModel(
        _ColumnProblem(), pb.H2ON2FluidSystem(), params={"use_moles": "mass"}
    )
    pvs = [model.make_primary_variables(np.array([1e5, 0.3]))] * 2
    vol_vars = _vol_vars(model, line_element, pvs)
    lr = model.local_residual
    lr.bind(line_element, vol_vars, pvs)

    storage = np.zeros(2)
    lr.compute_storage(storage, 0, False)
    fs = vol_vars[0].fluid_state
    # Total mass of both components
    assert storage.sum() == pytest.approx(0.4 * np.dot(fs.saturation, fs.density))
    assert storage[1] == pytest.approx(
        0.4
        * sum(
            fs.saturation[j] * fs.density[j] * fs.mass_fraction(j, 1)
            for j in range(2)
        )
    )
