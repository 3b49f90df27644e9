"""Tests of the energy modules of the PVS model."""

from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

import porebox as pb
from porebox.models.energy import somerton_conductivity


class _HeatProblem(pb.Problem):
    def porosity(self, elem_geom, scv_idx):
        return 0.25

    def heat_capacity_solid(self, elem_geom, scv_idx):
        return 2e6

    def heat_conduction_params(self, elem_geom, scv_idx):
        return pb.SomertonParams(dry_conductivity=0.5, wet_conductivity=2.5)

    def boundary_types(self, elem_geom, scv_idx):
        return pb.BoundaryTypes(3)


def test_somerton_conductivity():
    params = pb.SomertonParams(dry_conductivity=0.5, wet_conductivity=2.5)
    assert somerton_conductivity(1.0, params) == pytest.approx(2.5)
    assert somerton_conductivity(0.0, params) == pytest.approx(0.5)
    assert somerton_conductivity(0.25, params) == pytest.approx(1.5)
    # Saturations are clipped
    assert somerton_conductivity(-0.1, params) == pytest.approx(0.5)
    assert somerton_conductivity(1.2, params) == pytest.approx(2.5)


def test_isothermal_module_adds_nothing():
    module = pb.IsothermalEnergyModule()
    assert module.num_eq == 0
    assert not module.enable_energy

    storage = np.ones(2)
    module.add_storage(storage, None)
    module.add_advective_flux(storage, 1.0, None, None, 0, 1.0)
    module.add_conductive_flux(storage, None, [])
    assert np.all(storage == 1.0)
    assert module.solid_properties(None, None, None, 0) == (0.0, 0.0)


def test_conductive_flux():
    face = pb.line_grid(np.array([0.0, 2.0])).elements[0].faces[0]
    vol_vars = [
        SimpleNamespace(
            fluid_state=SimpleNamespace(temperature=np.array([T])),
            heat_conductivity=lam,
        )
        for T, lam in [(300.0, 1.0), (310.0, 3.0)]
    ]
    flux = np.zeros(3)
    pb.MultiPhaseEnergyModule(2).add_conductive_flux(flux, face, vol_vars)

    # Harmonic mean 1.5 of the conductivities, temperature gradient 5
    assert np.allclose(flux, [0.0, 0.0, -7.5])


def test_non_isothermal_volume_variables_and_storage():
    elem_geom = pb.line_grid(np.array([0.0, 1.0])).elements[0]
    model = pb.PvsModel(
        _HeatProblem(), pb.H2ON2FluidSystem(), params={"enable_energy": True}
    )
    assert model.num_eq == 3
    assert model.local_residual.num_eq == 3

    pv = model.make_primary_variables(np.array([1e5, 0.3, 330.0]))
    assert pv.temperature_idx == 2
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)

    fs = vv.fluid_state
    assert np.all(fs.temperature == 330.0)
    assert np.all(fs.enthalpy > 0.0)
    assert vv.heat_capacity_solid == 2e6
    assert vv.heat_conductivity == pytest.approx(0.5 + np.sqrt(0.7) * 2.0)

    lr = model.local_residual
    lr.bind(elem_geom, [vv, vv], [pv, pv])
    storage = np.zeros(3)
    lr.compute_storage(storage, 0, False)

    expected = sum(
        0.25 * fs.saturation[j] * fs.density[j] * fs.internal_energy(j)
        for j in range(2)
    )
    expected += 0.75 * 2e6 * 330.0
    assert storage[2] == pytest.approx(expected, rel=1e-12)


def test_advective_enthalpy_flux():
    up = SimpleNamespace(
        fluid_state=SimpleNamespace(
            density=np.array([1000.0]), enthalpy=np.array([2.0])
        ),
        mobility=np.array([10.0]),
    )
    dn = SimpleNamespace(
        fluid_state=SimpleNamespace(
            density=np.array([500.0]), enthalpy=np.array([1.0])
        ),
        mobility=np.array([4.0]),
    )
    flux = np.zeros(2)
    pb.MultiPhaseEnergyModule(1).add_advective_flux(flux, 1e-3, up, dn, 0, 0.5)

    assert flux[1] == pytest.approx(1e-3 * (0.5 * 2e4 + 0.5 * 2e3))


class _NoSolidHeatProblem(_HeatProblem):
    def heat_capacity_solid(self, elem_geom, scv_idx):
        return pb.Problem.heat_capacity_solid(self, elem_geom, scv_idx)


def test_failed_solid_properties_keep_volume_variables():
    elem_geom = pb.line_grid(np.array([0.0, 1.0])).elements[0]
    model = pb.PvsModel(
        _HeatProblem(), pb.H2ON2FluidSystem(), params={"enable_energy": True}
    )
    vv = model.make_volume_variables()
    vv.update(
        model.make_primary_variables(np.array([1e5, 0.3, 330.0])),
        model.problem,
        elem_geom,
        0,
    )
    fluid_state = vv.fluid_state
    conductivity = vv.heat_conductivity

    with pytest.raises(NotImplementedError):
        vv.update(
            model.make_primary_variables(np.array([2e5, 0.5, 350.0])),
            _NoSolidHeatProblem(),
            elem_geom,
            0,
        )

    # Nothing of the failed update is visible
    assert vv.fluid_state is fluid_state
    assert np.all(vv.fluid_state.temperature == 330.0)
    assert vv.porosity == 0.25
    assert vv.heat_capacity_solid == 2e6
    assert vv.heat_conductivity == conductivity
