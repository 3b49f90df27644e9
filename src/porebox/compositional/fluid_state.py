"""Module containing the data structure storing the thermodynamic state of a fluid
inside a single control volume.

Note:
    The fluid state is a contract for which thermodynamic properties are required to
    describe a fluid in PoreBox's flow & transport problems. It is filled by the volume
    variables, using the fluid system for the constitutive relations and the constraint
    solvers for the phase compositions, and read by the flux variables and local
    residuals.

"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from .utils import CompositionalModellingError, normalize_fractions

if TYPE_CHECKING:
    from .fluid_system import FluidSystem

__all__ = [
    "CompositionalFluidState",
    "initialize_fluid_state",
]


@dataclass
class CompositionalFluidState:
    """Dataclass for storing the thermodynamic state of a multi-phase multi-component
    fluid in a control volume.

    Values are stored per phase in 1D arrays of length ``num_phases``, and per
    phase and component in 2D arrays of shape ``(num_phases, num_components)``.

    Specific quantities (density, enthalpy) are massic. Molar quantities are derived
    using the molar masses of the components.

    """

    molar_masses: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Molar masses of the components in ``[kg / mol]``."""

    saturation: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Saturation per phase."""

    pressure: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Pressure per phase in ``[Pa]``."""

    temperature: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Temperature per phase in ``[K]``."""

    mole_fraction: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    """Mole fraction of each component (column) in each phase (row).

    For phases which are not present, the fractions do not necessarily fulfill the
    unity constraint.

    """

    density: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Mass density per phase in ``[kg / m^3]``."""

    viscosity: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Dynamic viscosity per phase in ``[Pa s]``."""

    enthalpy: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Specific enthalpy per phase in ``[J / kg]``."""

    @property
    def num_phases(self) -> int:
        """Number of phases represented in this state."""
        return self.mole_fraction.shape[0]

    @property
    def num_components(self) -> int:
        """Number of components represented in this state."""
        return self.mole_fraction.shape[1]

    def average_molar_mass(self, phase_idx: int) -> float:
        """Mean molar mass of a phase, ``sum_k x_k M_k``.

        Note:
            For phases whose mole fractions do not sum up to one (non-present phases),
            the mole fractions are not normalized.

        """
        return float(np.dot(self.mole_fraction[phase_idx], self.molar_masses))

    def molar_density(self, phase_idx: int) -> float:
        """Molar density of a phase in ``[mol / m^3]``."""
        return self.density[phase_idx] / self.average_molar_mass(phase_idx)

    def mass_fraction(self, phase_idx: int, comp_idx: int) -> float:
        """Mass fraction of a component in a phase."""
        x = self.mole_fraction[phase_idx]
        M = self.molar_masses
        return float(x[comp_idx] * M[comp_idx] / np.dot(x, M))

    def molarity(self, phase_idx: int, comp_idx: int) -> float:
        """Concentration of a component in a phase in ``[mol / m^3]``."""
        return self.molar_density(phase_idx) * self.mole_fraction[phase_idx, comp_idx]

    def fugacity(self, phase_idx: int, comp_idx: int, phi: float) -> float:
        """Fugacity of a component in a phase, given its fugacity coefficient ``phi``.

        It holds :math:`f = x \\phi p`.

        """
        return self.mole_fraction[phase_idx, comp_idx] * phi * self.pressure[phase_idx]

    def internal_energy(self, phase_idx: int) -> float:
        """Specific internal energy of a phase ``u = h - p / rho`` in ``[J / kg]``."""
        h = self.enthalpy[phase_idx]
        return h - self.pressure[phase_idx] / self.density[phase_idx]

    def set_mass_fractions(self, phase_idx: int, mass_fractions: np.ndarray) -> None:
        """Sets the composition of a phase in terms of mass fractions.

        The mole fractions are computed as
        :math:`x_k = \\frac{X_k / M_k}{\\sum_l X_l / M_l}`.

        Parameters:
            phase_idx: Index of the phase.
            mass_fractions: ``shape=(num_components,)``

                Mass fractions of all components in the phase.

        """
        X = np.asarray(mass_fractions, dtype=float)
        self.mole_fraction[phase_idx] = normalize_fractions(X / self.molar_masses)

    def copy(self) -> CompositionalFluidState:
        """Returns a deep copy of the state."""
        return copy.deepcopy(self)

    def assign(self, other: CompositionalFluidState) -> None:
        """Copies all values of ``other`` into this state, in place."""
        if other.mole_fraction.shape != self.mole_fraction.shape:
            raise CompositionalModellingError(
                "Cannot assign a fluid state with a different number of phases or"
                + " components."
            )
        for name in (
            "saturation",
            "pressure",
            "temperature",
            "mole_fraction",
            "density",
            "viscosity",
            "enthalpy",
        ):
            getattr(self, name)[:] = getattr(other, name)


def initialize_fluid_state(fluid_system: FluidSystem) -> CompositionalFluidState:
    """Creates a zero-valued fluid state with the dimensions of a fluid system.

    Parameters:
        fluid_system: The fluid system whose phases and components are represented.

    Returns:
        A fluid state whose arrays have the sizes given by the number of phases and
        components of ``fluid_system``.

    """
    nphase = fluid_system.num_phases
    ncomp = fluid_system.num_components
    return CompositionalFluidState(
        molar_masses=np.array(
            [fluid_system.molar_mass(k) for k in range(ncomp)], dtype=float
        ),
        saturation=np.zeros(nphase),
        pressure=np.zeros(nphase),
        temperature=np.zeros(nphase),
        mole_fraction=np.zeros((nphase, ncomp)),
        density=np.zeros(nphase),
        viscosity=np.zeros(nphase),
        enthalpy=np.zeros(nphase),
    )
