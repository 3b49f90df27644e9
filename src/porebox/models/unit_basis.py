"""Unit bases of the balance equations.

The balance equations of a model are formulated either in terms of masses (mass
densities and mass fractions) or in terms of moles (molar densities and mole
fractions). A unit basis is a stateless policy object deciding which of the two is
used, such that storage, flux and boundary terms are written once for both
formulations.

"""

from __future__ import annotations

from typing import Union

from porebox.compositional.fluid_state import CompositionalFluidState
from porebox.compositional.utils import CompositionalModellingError

__all__ = ["MassBasis", "MoleBasis", "unit_basis"]


class MassBasis:
    """Balance equations in terms of mass density and mass fractions."""

    name: str = "mass"

    def quantity(self, fluid_state: CompositionalFluidState, phase_idx: int) -> float:
        """Mass density of a phase."""
        return float(fluid_state.density[phase_idx])

    def fraction(
        self, fluid_state: CompositionalFluidState, phase_idx: int, comp_idx: int
    ) -> float:
        """Mass fraction of a component in a phase."""
        return fluid_state.mass_fraction(phase_idx, comp_idx)

    def concentration(
        self, fluid_state: CompositionalFluidState, phase_idx: int, comp_idx: int
    ) -> float:
        """Partial mass density of a component in a phase in ``[kg / m^3]``."""
        return self.quantity(fluid_state, phase_idx) * fluid_state.mass_fraction(
            phase_idx, comp_idx
        )

    def set_binary_composition(
        self, fluid_state: CompositionalFluidState, phase_idx: int, fraction: float
    ) -> None:
        """Sets the composition of a two-component phase from the mass fraction of
        component 1."""
        fluid_state.set_mass_fractions(phase_idx, [1.0 - fraction, fraction])

    def __repr__(self) -> str:
        return "MassBasis()"


class MoleBasis:
    """Balance equations in terms of molar density and mole fractions."""

    name: str = "mole"

    def quantity(self, fluid_state: CompositionalFluidState, phase_idx: int) -> float:
        """Molar density of a phase."""
        return fluid_state.molar_density(phase_idx)

    def fraction(
        self, fluid_state: CompositionalFluidState, phase_idx: int, comp_idx: int
    ) -> float:
        """Mole fraction of a component in a phase."""
        return float(fluid_state.mole_fraction[phase_idx, comp_idx])

    def concentration(
        self, fluid_state: CompositionalFluidState, phase_idx: int, comp_idx: int
    ) -> float:
        """Molarity of a component in a phase in ``[mol / m^3]``."""
        return fluid_state.molarity(phase_idx, comp_idx)

    def set_binary_composition(
        self, fluid_state: CompositionalFluidState, phase_idx: int, fraction: float
    ) -> None:
        """Sets the composition of a two-component phase from the mole fraction of
        component 1."""
        fluid_state.mole_fraction[phase_idx, 0] = 1.0 - fraction
        fluid_state.mole_fraction[phase_idx, 1] = fraction

    def __repr__(self) -> str:
        return "MoleBasis()"


def unit_basis(use_moles: Union[bool, str]) -> Union[MassBasis, MoleBasis]:
    """Returns the unit basis for a model parameter.

    Parameters:
        use_moles: Either a boolean (True for the molar formulation), or one of the
            strings ``'mass'`` and ``'mole'``.

    Raises:
        CompositionalModellingError: If the argument does not name a basis.

    """
    if isinstance(use_moles, str):
        if use_moles == "mass":
            return MassBasis()
        if use_moles == "mole":
            return MoleBasis()
        raise CompositionalModellingError(f"Unknown unit basis '{use_moles}'.")
    return MoleBasis() if use_moles else MassBasis()
