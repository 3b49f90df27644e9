"""Box models bundling the strategy objects of a discretization.

A model is configured once from a problem, a fluid system and a parameter dictionary.
It owns the local residual and creates volume variables and primary variables with
matching dimensions. The assembler only interacts with the model.

Recognized parameters:

- ``'use_moles'``: Balance moles (True) or masses (False). Defaults to True.
- ``'upwind_weight'``: Weight of the upstream side in the advective fluxes.
- ``'phase_idx'``: Fluid phase of the 1p2c model. Defaults to 0.
- ``'enable_energy'``: Add the energy balance to the PVS model. Defaults to False.
- ``'phase_switch_eps'``: Tolerance of the PVS phase switch.

"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from porebox.compositional.fluid_system import FluidSystem
from porebox.compositional.utils import CompositionalModellingError
from porebox.models.energy import IsothermalEnergyModule, MultiPhaseEnergyModule
from porebox.models.local_residual import OnePTwoCLocalResidual, PvsLocalResidual
from porebox.models.phase_switch import PvsPhaseSwitch
from porebox.models.primary_variables import PhasePresence, PrimaryVariables
from porebox.models.problem import Problem
from porebox.models.unit_basis import MassBasis, MoleBasis, unit_basis
from porebox.models.volume_variables import (
    OnePTwoCVolumeVariables,
    PvsVolumeVariables,
)
from porebox.params.material_laws import MaterialLaw, NullMaterialLaw

__all__ = ["OnePTwoCModel", "PvsModel"]

logger = logging.getLogger(__name__)


class OnePTwoCModel:
    """Single-phase two-component model.

    Primary variables are the pressure and the fraction of component 1 (mass or mole
    fraction, depending on ``params['use_moles']``).

    Parameters:
        problem: The problem.
        fluid_system: A fluid system with at least two components.
        params: ``default=None``

            Model parameters, see module documentation.

    Raises:
        CompositionalModellingError: If the fluid system has less than two components
            or not the requested phase.

    """

    def __init__(
        self,
        problem: Problem,
        fluid_system: FluidSystem,
        params: Optional[dict] = None,
    ) -> None:
        if params is None:
            params = {}
        self.params: dict = params
        self.problem: Problem = problem
        self.fluid_system: FluidSystem = fluid_system

        self.phase_idx: int = int(params.get("phase_idx", 0))
        if fluid_system.num_components < 2:
            raise CompositionalModellingError(
                "The 1p2c model requires a fluid system with two components."
            )
        if not 0 <= self.phase_idx < fluid_system.num_phases:
            raise CompositionalModellingError(
                f"Fluid system has no phase {self.phase_idx}."
            )

        self.basis: Union[MassBasis, MoleBasis] = unit_basis(
            params.get("use_moles", True)
        )
        self.num_eq: int = 2
        self.local_residual = OnePTwoCLocalResidual(
            problem, self.basis, self.phase_idx, params
        )

        self.phase_switch = None
        """The 1p2c model does not switch primary variables."""

        logger.debug(
            f"Set up 1p2c model with {type(fluid_system).__name__},"
            + f" {self.basis.name} formulation."
        )

    def make_volume_variables(self) -> OnePTwoCVolumeVariables:
        return OnePTwoCVolumeVariables(self.fluid_system, self.basis, self.phase_idx)

    def make_primary_variables(
        self, values: Optional[np.ndarray] = None
    ) -> PrimaryVariables:
        """Primary variables ``[pressure, fraction of component 1]``."""
        return PrimaryVariables(1, 2, values)


class PvsModel:
    """Compositional multi-phase model with primary variable switching.

    Parameters:
        problem: The problem.
        fluid_system: The fluid system. It must have at least as many components as
            phases.
        material_law: ``default=None``

            Material law for capillary pressures and relative permeabilities. A
            :class:`~porebox.params.material_laws.NullMaterialLaw` if not given.
        params: ``default=None``

            Model parameters, see module documentation.

    Raises:
        CompositionalModellingError: If the fluid system has less components than
            phases.

    """

    def __init__(
        self,
        problem: Problem,
        fluid_system: FluidSystem,
        material_law: Optional[MaterialLaw] = None,
        params: Optional[dict] = None,
    ) -> None:
        if params is None:
            params = {}
        self.params: dict = params
        self.problem: Problem = problem
        self.fluid_system: FluidSystem = fluid_system
        if fluid_system.num_components < fluid_system.num_phases:
            raise CompositionalModellingError(
                "The PVS model requires at least as many components as phases."
            )

        self.material_law: MaterialLaw = (
            NullMaterialLaw() if material_law is None else material_law
        )
        self.basis: Union[MassBasis, MoleBasis] = unit_basis(
            params.get("use_moles", True)
        )

        self.enable_energy: bool = bool(params.get("enable_energy", False))
        ncomp = fluid_system.num_components
        self.energy_module: IsothermalEnergyModule = (
            MultiPhaseEnergyModule(ncomp)
            if self.enable_energy
            else IsothermalEnergyModule()
        )
        self.num_eq: int = ncomp + self.energy_module.num_eq

        self.local_residual = PvsLocalResidual(
            problem, ncomp, self.basis, self.energy_module, params
        )
        self.phase_switch = PvsPhaseSwitch(params)

        logger.debug(
            f"Set up PVS model with {type(fluid_system).__name__},"
            + f" {self.basis.name} formulation, energy: {self.enable_energy}."
        )

    def make_volume_variables(self) -> PvsVolumeVariables:
        return PvsVolumeVariables(
            self.fluid_system, self.material_law, self.energy_module
        )

    def make_primary_variables(
        self,
        values: Optional[np.ndarray] = None,
        phase_presence: Optional[int] = None,
    ) -> PrimaryVariables:
        """Primary variables of a vertex, with all phases present by default."""
        if phase_presence is None:
            phase_presence = PhasePresence.all_phases(self.fluid_system.num_phases)
        return PrimaryVariables(
            self.fluid_system.num_phases,
            self.fluid_system.num_components,
            values,
            phase_presence,
            self.enable_energy,
        )
