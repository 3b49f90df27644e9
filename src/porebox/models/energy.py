"""Energy modules of the PVS model.

The energy module is injected into the volume variables and the local residual of the
PVS model. The isothermal module takes the temperature from the problem and adds
nothing to the balance equations. The multi-phase module adds an energy balance,
with the temperature as last primary variable:

.. math::

    \\frac{\\partial}{\\partial t} \\left( \\sum_j \\phi S_j \\rho_j u_j
    + (1 - \\phi) c_s T \\right)
    + \\nabla \\cdot \\left( \\sum_j \\rho_j h_j \\lambda_j \\mathbf{v}_j
    - \\lambda_{pm} \\nabla T \\right) = q^e

with :math:`c_s` the volumetric heat capacity of the solid and :math:`\\lambda_{pm}`
the effective heat conductivity of the porous medium (Somerton).

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np

from porebox.compositional.fluid_state import CompositionalFluidState
from porebox.grids.box_geometry import ElementGeometry, SubControlVolumeFace
from porebox.utils.averaging import harmonic_mean

if TYPE_CHECKING:
    from porebox.models.primary_variables import PrimaryVariables
    from porebox.models.problem import Problem
    from porebox.models.volume_variables import PvsVolumeVariables

__all__ = [
    "SomertonParams",
    "somerton_conductivity",
    "IsothermalEnergyModule",
    "MultiPhaseEnergyModule",
]


@dataclass(frozen=True, kw_only=True)
class SomertonParams:
    """Parameters of the Somerton law for the heat conductivity of a porous
    medium."""

    dry_conductivity: float = 0.32
    """Heat conductivity of the medium saturated by the non-wetting phase in
    ``[W / (m K)]``."""

    wet_conductivity: float = 2.7
    """Heat conductivity of the medium saturated by the wetting phase in
    ``[W / (m K)]``."""

    wetting_phase_idx: int = 0


def somerton_conductivity(sw: float, params: SomertonParams) -> float:
    """Effective heat conductivity
    :math:`\\lambda_{dry} + \\sqrt{S_w} (\\lambda_{wet} - \\lambda_{dry})`.

    The wetting saturation is clipped to ``[0, 1]``.

    """
    sw = min(max(sw, 0.0), 1.0)
    return params.dry_conductivity + np.sqrt(sw) * (
        params.wet_conductivity - params.dry_conductivity
    )


class IsothermalEnergyModule:
    """Energy module of isothermal models.

    Temperatures are given by :meth:`~porebox.models.problem.Problem.temperature`.
    All contributions to the balance equations are no-ops.

    """

    enable_energy: bool = False

    num_eq: int = 0
    """Number of equations added by the module."""

    def update_temperatures(
        self,
        fluid_state: CompositionalFluidState,
        primary_variables: PrimaryVariables,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> None:
        fluid_state.temperature[:] = problem.temperature(elem_geom, scv_idx)

    def solid_properties(
        self,
        fluid_state: CompositionalFluidState,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> tuple[float, float]:
        """Volumetric heat capacity of the solid and effective heat conductivity of
        the porous medium. Zero for isothermal models."""
        return 0.0, 0.0

    def add_storage(self, storage: np.ndarray, vol_vars: PvsVolumeVariables) -> None:
        pass

    def add_advective_flux(
        self,
        flux: np.ndarray,
        kmvp_normal: float,
        up: PvsVolumeVariables,
        dn: PvsVolumeVariables,
        phase_idx: int,
        upwind_weight: float,
    ) -> None:
        pass

    def add_conductive_flux(
        self,
        flux: np.ndarray,
        face: SubControlVolumeFace,
        elem_vol_vars: Sequence[PvsVolumeVariables],
    ) -> None:
        pass


class MultiPhaseEnergyModule(IsothermalEnergyModule):
    """Energy module adding a thermal energy balance in local thermal equilibrium.

    Parameters:
        energy_eq_idx: Index of the energy equation, equal to the index of the
            temperature primary variable.

    """

    enable_energy: bool = True

    num_eq: int = 1

    def __init__(self, energy_eq_idx: int) -> None:
        self.energy_eq_idx: int = energy_eq_idx

    def update_temperatures(
        self,
        fluid_state: CompositionalFluidState,
        primary_variables: PrimaryVariables,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> None:
        temperature_idx = primary_variables.temperature_idx
        fluid_state.temperature[:] = primary_variables[temperature_idx]

    def solid_properties(
        self,
        fluid_state: CompositionalFluidState,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> tuple[float, float]:
        """The solid heat capacity from the problem and the Somerton heat
        conductivity at the wetting saturation of ``fluid_state``.

        The phase enthalpies are computed by the constraint solvers.

        """
        heat_capacity_solid = problem.heat_capacity_solid(elem_geom, scv_idx)
        params: Any = problem.heat_conduction_params(elem_geom, scv_idx)
        sw = fluid_state.saturation[params.wetting_phase_idx]
        return heat_capacity_solid, somerton_conductivity(sw, params)

    def add_storage(self, storage: np.ndarray, vol_vars: PvsVolumeVariables) -> None:
        fs = vol_vars.fluid_state
        phi = vol_vars.porosity
        energy = 0.0
        for j in range(fs.num_phases):
            energy += phi * fs.saturation[j] * fs.density[j] * fs.internal_energy(j)
        energy += (1.0 - phi) * vol_vars.heat_capacity_solid * fs.temperature[0]
        storage[self.energy_eq_idx] += energy

    def add_advective_flux(
        self,
        flux: np.ndarray,
        kmvp_normal: float,
        up: PvsVolumeVariables,
        dn: PvsVolumeVariables,
        phase_idx: int,
        upwind_weight: float,
    ) -> None:
        def term(vv: PvsVolumeVariables) -> float:
            fs = vv.fluid_state
            rho_h = fs.density[phase_idx] * fs.enthalpy[phase_idx]
            return rho_h * vv.mobility[phase_idx]

        flux[self.energy_eq_idx] += kmvp_normal * (
            upwind_weight * term(up) + (1.0 - upwind_weight) * term(dn)
        )

    def add_conductive_flux(
        self,
        flux: np.ndarray,
        face: SubControlVolumeFace,
        elem_vol_vars: Sequence[PvsVolumeVariables],
    ) -> None:
        temperatures = np.array([vv.fluid_state.temperature[0] for vv in elem_vol_vars])
        grad_t = temperatures @ face.grad
        lambda_pm = float(
            harmonic_mean(
                elem_vol_vars[face.i].heat_conductivity,
                elem_vol_vars[face.j].heat_conductivity,
            )
        )
        flux[self.energy_eq_idx] -= lambda_pm * float(np.dot(grad_t, face.normal))

