"""Tests of the phase appearance and disappearance criteria of the PVS model."""

from __future__ import annotations

import logging

import numpy as np
import pytest

import porebox as pb

T = 293.15


class _Problem(pb.Problem):
    def porosity(self, elem_geom, scv_idx):
        return 0.3

    def temperature(self, elem_geom, scv_idx):
        return T


@pytest.fixture
def model() -> pb.PvsModel:
    return pb.PvsModel(
        _Problem(), pb.H2ON2FluidSystem(), params={"phase_switch_eps": 1e-6}
    )


def _switch(model: pb.PvsModel, pv: pb.PrimaryVariables) -> tuple[bool, object]:
    elem_geom = pb.line_grid(np.array([0.0, 1.0])).elements[0]
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)
    return model.phase_switch.update(pv, vv, 7), vv


def test_undersaturated_liquid_stays(model):
    # The gas fractions in equilibrium sum up to about 0.1
    pv = model.make_primary_variables(np.array([1e5, 1e-6]), 0b01)
    switched, _ = _switch(model, pv)

    assert not switched
    assert pv.phase_presence == 0b01
    assert pv[1] == 1e-6


def test_gas_appears_in_supersaturated_liquid(model, caplog):
    pv = model.make_primary_variables(np.array([1e5, 2e-5]), 0b01)
    with caplog.at_level(logging.INFO, logger="porebox.models.phase_switch"):
        switched, vv = _switch(model, pv)

    assert vv.fluid_state.mole_fraction[1].sum() > 1.0
    assert switched
    assert pv.phase_presence == 0b11
    # The appearing gas starts with zero saturation
    assert pv[1] == 0.0
    assert pv[0] == 1e5
    assert "Vertex 7" in caplog.text
    assert "0b1 to 0b11" in caplog.text


def test_gas_disappears(model):
    pv = model.make_primary_variables(np.array([1e5, -0.01]), 0b11)
    switched, vv = _switch(model, pv)

    assert switched
    assert pv.phase_presence == 0b01
    # The switching slot holds the nitrogen fraction of the liquid
    assert pv[1] == pytest.approx(vv.fluid_state.mole_fraction[0, 1])


def test_liquid_disappears(model):
    pv = model.make_primary_variables(np.array([1e5, 1.5]), 0b11)
    switched, vv = _switch(model, pv)

    assert switched
    assert pv.phase_presence == 0b10
    assert pv[1] == pytest.approx(vv.fluid_state.mole_fraction[1, 1])


def test_tolerance(model):
    pv = model.make_primary_variables(np.array([1e5, -1e-7]), 0b11)
    switched, _ = _switch(model, pv)

    assert not switched
    assert pv.phase_presence == 0b11


def test_new_phase_presence_does_not_modify(model):
    pv = model.make_primary_variables(np.array([1e5, 2e-5]), 0b01)
    elem_geom = pb.line_grid(np.array([0.0, 1.0])).elements[0]
    vv = model.make_volume_variables()
    vv.update(pv, model.problem, elem_geom, 0)

    assert model.phase_switch.new_phase_presence(pv, vv) == 0b11
    assert pv.phase_presence == 0b01
    assert pv[1] == 2e-5
