"""Tests of the volume variables of the 1p2c and the PVS model."""

from __future__ import annotations

import numpy as np
import pytest

import porebox as pb

T = 293.15


class _IsothermalProblem(pb.Problem):
    def porosity(self, elem_geom, scv_idx):
        return 0.4

    def tortuosity(self, elem_geom, scv_idx):
        return 0.5

    def temperature(self, elem_geom, scv_idx):
        return T


@pytest.fixture
def elem_geom() -> pb.ElementGeometry:
    return pb.line_grid(np.array([0.0, 1.0])).elements[0]


@pytest.mark.parametrize("use_moles", [True, False])
def test_one_p_two_c(use_moles: bool, elem_geom):
    fsys = pb.H2ON2FluidSystem()
    model = pb.OnePTwoCModel(_IsothermalProblem(), fsys, {"use_moles": use_moles})
    pv = model.make_primary_variables(np.array([2e5, 0.01]))
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)

    fs = vv.fluid_state
    assert fs.mole_fraction[0].sum() == pytest.approx(1.0, abs=1e-12)
    assert vv.mass_fraction(0) + vv.mass_fraction(1) == pytest.approx(1.0, abs=1e-12)
    if use_moles:
        assert vv.mole_fraction(1) == pytest.approx(0.01, rel=1e-14)
    else:
        assert vv.mass_fraction(1) == pytest.approx(0.01, rel=1e-12)

    assert vv.pressure == 2e5
    assert vv.temperature == T
    assert fs.saturation[0] == 1.0
    assert vv.viscosity == fsys.liquid_viscosity
    assert vv.molar_density == pytest.approx(
        vv.density / fs.average_molar_mass(0), rel=1e-14
    )
    assert vv.diff_coeff == 2.0e-9
    assert vv.porosity == 0.4
    assert vv.tortuosity == 0.5
    assert np.all(vv.dispersivity == 0.0)


def test_one_p_two_c_missing_callback(elem_geom):
    class _NoTortuosity(_IsothermalProblem):
        tortuosity = pb.Problem.tortuosity

    model = pb.OnePTwoCModel(_NoTortuosity(), pb.TracerFluidSystem())
    pv = model.make_primary_variables(np.array([1e5, 0.1]))
    vv = model.make_volume_variables()
    with pytest.raises(NotImplementedError, match="tortuosity"):
        vv.update(pv, model.problem, elem_geom, 0)


@pytest.mark.parametrize(
    "presence, values",
    [(0b11, [1e5, 0.3]), (0b01, [1e5, 1e-6]), (0b10, [1e5, 0.9])],
)
def test_pvs_fractions_and_saturations(presence: int, values, elem_geom):
    fsys = pb.H2ON2FluidSystem()
    model = pb.PvsModel(_IsothermalProblem(), fsys)
    pv = model.make_primary_variables(np.array(values), presence)
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 1)

    fs = vv.fluid_state
    for j in range(2):
        if pv.phase_is_present(j):
            assert fs.mole_fraction[j].sum() == pytest.approx(1.0, abs=1e-12)
            assert vv.phase_is_present(j)
        else:
            assert not vv.phase_is_present(j)
    assert fs.saturation.sum() == pytest.approx(1.0, abs=1e-15)
    assert np.allclose(fs.pressure, 1e5)
    assert np.allclose(fs.temperature, T)
    assert np.allclose(vv.mobility, vv.relative_permeability / fs.viscosity)
    assert vv.porosity == 0.4
    assert vv.phase_presence == presence
    assert len(vv.auxiliary_constraints(pv)) == 2 - pv.num_present_phases

    # Equal fugacities of water in both phases
    psat = fsys.vapor_pressure(T)
    assert fs.mole_fraction[1, 0] * 1e5 == pytest.approx(
        fs.mole_fraction[0, 0] * psat, rel=1e-10
    )


def test_pvs_capillary_pressure(elem_geom):
    class _Problem(_IsothermalProblem):
        def material_law_params(self, elem_geom, scv_idx):
            return pb.LinearMaterialParams(entry_pc=1e3, max_pc=1e4)

    model = pb.PvsModel(_Problem(), pb.H2ON2FluidSystem(), pb.LinearMaterial())
    pv = model.make_primary_variables(np.array([1e5, 0.5]))
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)

    # The primary pressure is the one of phase 0 (wetting)
    assert vv.fluid_state.pressure[0] == 1e5
    assert vv.fluid_state.pressure[1] == pytest.approx(1e5 + 5.5e3)
    assert np.allclose(vv.relative_permeability, [0.5, 0.5])


def test_pvs_failed_update_keeps_values(elem_geom):
    model = pb.PvsModel(_IsothermalProblem(), pb.H2ON2FluidSystem())
    pv = model.make_primary_variables(np.array([1e5, 0.3]))
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)
    fluid_state = vv.fluid_state
    mobility = vv.mobility.copy()

    invalid = model.make_primary_variables(np.array([-1e5, 0.3]))
    with pytest.raises(pb.ConstraintSolverError):
        vv.update(invalid, model.problem, elem_geom, 0)

    assert vv.fluid_state is fluid_state
    assert np.all(vv.fluid_state.pressure == 1e5)
    assert np.all(vv.mobility == mobility)


class _ThreePhaseFluidSystem(pb.FluidSystem):
    """Ideal mixtures with mole fractions ``x_j = K_j x_0`` at equal pressures."""

    num_phases = 3
    num_components = 3

    K = np.array([[1.0, 1.0, 1.0], [2.0, 0.5, 1.0], [0.5, 1.0, 3.0]])

    def molar_mass(self, comp_idx):
        return 0.01 * (comp_idx + 1)

    def is_ideal_mixture(self, phase_idx):
        return True

    def fugacity_coefficient(self, fluid_state, param_cache, phase_idx, comp_idx):
        return 1.0 / self.K[phase_idx, comp_idx]

    def density(self, fluid_state, param_cache, phase_idx):
        return 1000.0

    def viscosity(self, fluid_state, param_cache, phase_idx):
        return 1e-3


@pytest.mark.parametrize("presence", range(1, 8))
def test_pvs_three_phases(presence: int, elem_geom):
    fsys = _ThreePhaseFluidSystem()
    model = pb.PvsModel(_IsothermalProblem(), fsys)
    pv = model.make_primary_variables(np.array([1e5, 0.2, 0.3]), presence)
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)

    fs = vv.fluid_state
    for j in range(3):
        if pv.phase_is_present(j):
            assert fs.mole_fraction[j].sum() == pytest.approx(1.0, abs=1e-12)
        else:
            assert fs.saturation[j] == 0.0
        assert np.allclose(
            fs.mole_fraction[j], fsys.K[j] * fs.mole_fraction[0], rtol=1e-10
        )
    assert fs.saturation.sum() == pytest.approx(1.0, abs=1e-15)
    assert np.all(fs.mole_fraction >= 0.0)

    # Switching slots holding mole fractions pin the composition of the lowest
    # present phase, the others hold saturations
    for slot in range(2):
        var, j, k = pv.switching_variable(slot)
        value = pv[pv.switch0_idx + slot]
        if var == pb.SwitchingVariable.mole_fraction:
            assert fs.mole_fraction[j, k] == pytest.approx(value, rel=1e-12)
        else:
            assert fs.saturation[j] == value
