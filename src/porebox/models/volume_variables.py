"""Volume variables: the secondary variables of a sub-control volume.

Volume variables are computed from the primary variables of a vertex, using the fluid
system, the material law and the spatial parameters of the problem. They exist for the
current and the previous time level and are not modified between two calls to
``update``.

An update is transactional: All quantities are computed on fresh objects, which replace
the stored ones only after the update succeeded. A
:class:`~porebox.compositional.utils.ConstraintSolverError` raised during an update
hence leaves the volume variables in their previous state.

"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np

from porebox.compositional.constraint_solvers import (
    AuxiliaryConstraint,
    ComputeFromReferencePhase,
    MiscibleMultiPhaseComposition,
)
from porebox.compositional.fluid_state import (
    CompositionalFluidState,
    initialize_fluid_state,
)
from porebox.compositional.fluid_system import FluidSystem, ParameterCache
from porebox.grids.box_geometry import ElementGeometry
from porebox.models.energy import IsothermalEnergyModule
from porebox.models.primary_variables import PrimaryVariables, SwitchingVariable
from porebox.models.problem import Problem
from porebox.models.unit_basis import MassBasis, MoleBasis
from porebox.params.material_laws import MaterialLaw

__all__ = ["OnePTwoCVolumeVariables", "PvsVolumeVariables"]


class OnePTwoCVolumeVariables:
    """Volume variables of the single-phase two-component model.

    Parameters:
        fluid_system: Fluid system with at least two components. Only the phase
            ``phase_idx`` is used.
        basis: Unit basis deciding whether primary variable 1 is a mass or a mole
            fraction.
        phase_idx: ``default=0``

            Index of the fluid phase in the fluid system.

    """

    pressure_idx: int = 0
    """Primary variable holding the pressure."""

    x1_idx: int = 1
    """Primary variable holding the fraction of component 1."""

    def __init__(
        self,
        fluid_system: FluidSystem,
        basis: Union[MassBasis, MoleBasis],
        phase_idx: int = 0,
    ) -> None:
        self.fluid_system: FluidSystem = fluid_system
        self.basis: Union[MassBasis, MoleBasis] = basis
        self.phase_idx: int = phase_idx

        self.fluid_state: CompositionalFluidState = initialize_fluid_state(fluid_system)
        self.param_cache: ParameterCache = ParameterCache(fluid_system.num_phases)

        self.porosity: float = 0.0
        self.tortuosity: float = 0.0
        self.dispersivity: np.ndarray = np.zeros(2)

        self.diff_coeff: float = 0.0
        """Binary diffusion coefficient of the two components in the fluid phase."""

    def update(
        self,
        primary_variables: PrimaryVariables,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> None:
        """Computes the volume variables of a sub-control volume.

        Parameters:
            primary_variables: Pressure and fraction of component 1.
            problem: Provides temperature, porosity, tortuosity and dispersivity.
            elem_geom: Geometry of the element.
            scv_idx: Local index of the sub-control volume in the element.

        """
        fsys = self.fluid_system
        j = self.phase_idx
        fs = initialize_fluid_state(fsys)

        fs.temperature[:] = problem.temperature(elem_geom, scv_idx)
        fs.pressure[:] = primary_variables[self.pressure_idx]
        fs.saturation[j] = 1.0
        self.basis.set_binary_composition(fs, j, primary_variables[self.x1_idx])

        cache = ParameterCache(fsys.num_phases)
        cache.update_all(fs)
        fs.density[j] = fsys.density(fs, cache, j)
        fs.viscosity[j] = fsys.viscosity(fs, cache, j)
        diff_coeff = fsys.binary_diffusion_coefficient(fs, cache, j, 0, 1)

        self.porosity = problem.porosity(elem_geom, scv_idx)
        self.tortuosity = problem.tortuosity(elem_geom, scv_idx)
        self.dispersivity = problem.dispersivity(elem_geom, scv_idx)

        self.fluid_state = fs
        self.param_cache = cache
        self.diff_coeff = diff_coeff

    @property
    def pressure(self) -> float:
        return float(self.fluid_state.pressure[self.phase_idx])

    @property
    def temperature(self) -> float:
        return float(self.fluid_state.temperature[self.phase_idx])

    @property
    def density(self) -> float:
        return float(self.fluid_state.density[self.phase_idx])

    @property
    def molar_density(self) -> float:
        return self.fluid_state.molar_density(self.phase_idx)

    @property
    def viscosity(self) -> float:
        return float(self.fluid_state.viscosity[self.phase_idx])

    def mole_fraction(self, comp_idx: int) -> float:
        return float(self.fluid_state.mole_fraction[self.phase_idx, comp_idx])

    def mass_fraction(self, comp_idx: int) -> float:
        return self.fluid_state.mass_fraction(self.phase_idx, comp_idx)


class PvsVolumeVariables:
    """Volume variables of the primary-variable-switching model.

    Parameters:
        fluid_system: The fluid system.
        material_law: Material law for capillary pressures and relative
            permeabilities.
        energy_module: ``default=None``

            Energy module. An :class:`IsothermalEnergyModule` if not given.

    """

    def __init__(
        self,
        fluid_system: FluidSystem,
        material_law: MaterialLaw,
        energy_module: Optional[IsothermalEnergyModule] = None,
    ) -> None:
        self.fluid_system: FluidSystem = fluid_system
        self.material_law: MaterialLaw = material_law
        if energy_module is None:
            energy_module = IsothermalEnergyModule()
        self.energy_module: IsothermalEnergyModule = energy_module

        self.reference_solver = ComputeFromReferencePhase(fluid_system)
        self.miscible_solver = MiscibleMultiPhaseComposition(fluid_system)

        nphase = fluid_system.num_phases
        self.fluid_state: CompositionalFluidState = initialize_fluid_state(fluid_system)
        self.param_cache: ParameterCache = ParameterCache(nphase)
        self.relative_permeability: np.ndarray = np.zeros(nphase)
        self.mobility: np.ndarray = np.zeros(nphase)
        self.porosity: float = 0.0
        self.phase_presence: int = 0

        self.heat_capacity_solid: float = 0.0
        """Volumetric heat capacity of the solid. Zero for isothermal models."""

        self.heat_conductivity: float = 0.0
        """Effective heat conductivity. Zero for isothermal models."""

    def auxiliary_constraints(
        self, primary_variables: PrimaryVariables
    ) -> list[AuxiliaryConstraint]:
        """Mole fractions fixed by the switching slots of the primary variables.

        Every switching slot which does not hold a saturation pins a mole fraction of
        the lowest present phase.

        """
        aux = []
        for slot in range(primary_variables.num_components - 1):
            var, j, k = primary_variables.switching_variable(slot)
            if var == SwitchingVariable.mole_fraction:
                value = primary_variables[primary_variables.switch0_idx + slot]
                aux.append(AuxiliaryConstraint(j, k, float(value)))
        return aux

    def update(
        self,
        primary_variables: PrimaryVariables,
        problem: Problem,
        elem_geom: ElementGeometry,
        scv_idx: int,
    ) -> None:
        """Computes the volume variables of a sub-control volume.

        Parameters:
            primary_variables: Primary variables and phase presence of the vertex.
            problem: Provides porosity, material law parameters and, for isothermal
                problems, the temperature.
            elem_geom: Geometry of the element.
            scv_idx: Local index of the sub-control volume in the element.

        Raises:
            ConstraintSolverError: If the phase compositions could not be computed.
                The volume variables are then unchanged.

        """
        fsys = self.fluid_system
        energy = self.energy_module
        fs = initialize_fluid_state(fsys)
        cache = ParameterCache(fsys.num_phases)

        energy.update_temperatures(fs, primary_variables, problem, elem_geom, scv_idx)

        fs.saturation[:] = primary_variables.saturations()

        params = problem.material_law_params(elem_geom, scv_idx)
        pc = self.material_law.capillary_pressures(fs, params)
        p0 = primary_variables[primary_variables.pressure0_idx]
        fs.pressure[:] = p0 + (pc - pc[0])

        presence = int(primary_variables.phase_presence)
        lowest = primary_variables.lowest_present_phase_idx
        if primary_variables.num_present_phases == 1:
            # The switching slots hold the complete composition of the present phase
            aux = self.auxiliary_constraints(primary_variables)
            for c in aux:
                fs.mole_fraction[lowest, c.comp_idx] = c.value
            fs.mole_fraction[lowest, 0] = 1.0 - sum(c.value for c in aux)
            self.reference_solver.solve(
                fs,
                cache,
                lowest,
                set_viscosity=True,
                set_enthalpy=energy.enable_energy,
            )
        else:
            self.miscible_solver.solve(
                fs,
                cache,
                presence,
                self.auxiliary_constraints(primary_variables),
                set_viscosity=True,
                set_enthalpy=energy.enable_energy,
            )

        kr = np.asarray(self.material_law.relative_permeabilities(fs, params))
        mobility = kr / fs.viscosity
        porosity = problem.porosity(elem_geom, scv_idx)
        heat_capacity_solid, heat_conductivity = energy.solid_properties(
            fs, problem, elem_geom, scv_idx
        )

        self.fluid_state = fs
        self.param_cache = cache
        self.relative_permeability = kr
        self.mobility = mobility
        self.phase_presence = presence
        self.porosity = porosity
        self.heat_capacity_solid = heat_capacity_solid
        self.heat_conductivity = heat_conductivity

    @property
    def num_phases(self) -> int:
        return self.fluid_system.num_phases

    def phase_is_present(self, phase_idx: int) -> bool:
        return bool(self.phase_presence & (1 << phase_idx))
