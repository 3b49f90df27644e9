"""Primary variables of the box models.

The primary variables of a vertex are a vector of ``num_eq`` values, tagged with the
set of phases present at that vertex. For the primary-variable-switching (PVS) model,
the meaning of the values depends on the phase presence:

- Slot ``pressure0_idx = 0`` holds the pressure of phase 0.
- Slots ``switch0_idx + s`` for ``s = 0 ... num_components - 2`` are switching slots.
  Slot ``s < num_phases - 1`` is associated with the ``s``-th phase when the lowest
  present phase is skipped. If that phase is present, the slot holds its saturation,
  otherwise the mole fraction of component ``s + 1`` in the lowest present phase.
  Slots ``s >= num_phases - 1`` always hold the mole fraction of component ``s + 1``
  in the lowest present phase.
- If the energy equation is enabled, the last slot holds the temperature.

The saturation of the lowest present phase is not a primary variable, it follows from
the unity of saturations.

The single-phase two-component model uses the same layout with one phase: slot 0 holds
the pressure and slot 1 the fraction of component 1.

"""

from __future__ import annotations

import enum
from typing import Optional

import numpy as np

from porebox.compositional.fluid_state import CompositionalFluidState

__all__ = [
    "PhasePresence",
    "SwitchingVariable",
    "PrimaryVariables",
]


class PhasePresence(enum.IntFlag):
    """Bitmask of present phases, bit ``j`` is set if phase ``j`` is present.

    Combinations of more phases than the named members are valid values.

    Example:
        # Liquid and gas phase present
        presence = PhasePresence.phase0 | PhasePresence.phase1

    """

    phase0 = 1
    phase1 = 2
    phase2 = 4
    phase3 = 8

    @classmethod
    def of(cls, *phase_indices: int) -> PhasePresence:
        """Presence with the given phases present."""
        mask = 0
        for j in phase_indices:
            mask |= 1 << j
        return cls(mask)

    @classmethod
    def all_phases(cls, num_phases: int) -> PhasePresence:
        """Presence with all of ``num_phases`` phases present."""
        return cls((1 << num_phases) - 1)

    def contains_phase(self, phase_idx: int) -> bool:
        return bool(self & (1 << phase_idx))


class SwitchingVariable(enum.Enum):
    """Meaning of a switching slot of the primary variables."""

    saturation = "saturation"
    mole_fraction = "mole_fraction"


class PrimaryVariables:
    """Primary variables of a single vertex.

    Parameters:
        num_phases: Number of fluid phases.
        num_components: Number of components.
        values: ``default=None``

            Initial values. Zero if not given.
        phase_presence: ``default=None``

            Initially present phases. All phases if not given.
        enable_energy: ``default=False``

            Append the temperature as last primary variable.

    Raises:
        ValueError: If no phase is present, a phase outside of ``num_phases`` is
            flagged present, or the values have the wrong size.

    """

    pressure0_idx: int = 0
    """Slot of the pressure of phase 0."""

    switch0_idx: int = 1
    """First switching slot."""

    def __init__(
        self,
        num_phases: int,
        num_components: int,
        values: Optional[np.ndarray] = None,
        phase_presence: Optional[int] = None,
        enable_energy: bool = False,
    ) -> None:
        self.num_phases: int = num_phases
        self.num_components: int = num_components
        self.enable_energy: bool = enable_energy

        self.num_eq: int = num_components + int(enable_energy)
        """Number of primary variables, equal to the number of equations."""

        if values is None:
            self.values: np.ndarray = np.zeros(self.num_eq)
        else:
            self.values = np.array(values, dtype=float)
            if self.values.shape != (self.num_eq,):
                raise ValueError(
                    f"Expecting {self.num_eq} primary variables, got"
                    + f" {self.values.shape}."
                )

        if phase_presence is None:
            phase_presence = PhasePresence.all_phases(num_phases)
        self._phase_presence: PhasePresence = self._validated(phase_presence)

    def _validated(self, presence: int) -> PhasePresence:
        mask = int(presence)
        if mask == 0:
            raise ValueError("At least one phase must be present.")
        if mask >> self.num_phases:
            raise ValueError(
                f"Phase presence {mask:#b} flags phases beyond the {self.num_phases}"
                + " phases of the model."
            )
        return PhasePresence(mask)

    @property
    def phase_presence(self) -> PhasePresence:
        """Bitmask of the present phases."""
        return self._phase_presence

    @phase_presence.setter
    def phase_presence(self, presence: int) -> None:
        self._phase_presence = self._validated(presence)

    @property
    def temperature_idx(self) -> int:
        """Slot of the temperature.

        Raises:
            ValueError: If the energy equation is not enabled.

        """
        if not self.enable_energy:
            raise ValueError("The temperature is not a primary variable.")
        return self.num_components

    def __getitem__(self, idx):
        return self.values[idx]

    def __setitem__(self, idx, value) -> None:
        self.values[idx] = value

    def __len__(self) -> int:
        return self.num_eq

    def __repr__(self) -> str:
        return (
            f"PrimaryVariables(values={self.values},"
            f" phase_presence={int(self._phase_presence):#b})"
        )

    def copy(self) -> PrimaryVariables:
        return PrimaryVariables(
            self.num_phases,
            self.num_components,
            self.values.copy(),
            self._phase_presence,
            self.enable_energy,
        )

    def phase_is_present(self, phase_idx: int) -> bool:
        return bool(self._phase_presence & (1 << phase_idx))

    def present_phases(self) -> list[int]:
        return [j for j in range(self.num_phases) if self.phase_is_present(j)]

    @property
    def num_present_phases(self) -> int:
        return len(self.present_phases())

    @property
    def lowest_present_phase_idx(self) -> int:
        """Index of the present phase with the lowest index."""
        return self.present_phases()[0]

    @property
    def implicit_saturation_idx(self) -> int:
        """Index of the phase whose saturation is given by the unity of saturations."""
        return self.lowest_present_phase_idx

    def switching_variable(self, slot: int) -> tuple[SwitchingVariable, int, int]:
        """Meaning of a switching slot.

        Parameters:
            slot: Switching slot ``s``, i.e. primary variable ``switch0_idx + s``.

        Returns:
            The kind of variable, the phase it belongs to and, for mole fractions, the
            component. The component is ``-1`` for saturations.

        """
        if slot < 0 or slot >= self.num_components - 1:
            raise ValueError(
                f"Switching slot {slot} out of range for"
                + f" {self.num_components} components."
            )
        lowest = self.lowest_present_phase_idx
        if slot < self.num_phases - 1:
            phase_idx = slot if slot < lowest else slot + 1
            if self.phase_is_present(phase_idx):
                return SwitchingVariable.saturation, phase_idx, -1
        return SwitchingVariable.mole_fraction, lowest, slot + 1

    def explicit_saturation_value(self, phase_idx: int) -> float:
        """Saturation of a phase as given by the primary variables.

        Zero for phases which are not present and for the implicit (lowest present)
        phase.

        """
        if phase_idx == self.lowest_present_phase_idx:
            return 0.0
        for slot in range(min(self.num_phases - 1, self.num_components - 1)):
            var, j, _ = self.switching_variable(slot)
            if var == SwitchingVariable.saturation and j == phase_idx:
                return float(self.values[self.switch0_idx + slot])
        return 0.0

    def saturations(self) -> np.ndarray:
        """Saturations of all phases, the implicit one closing the unity."""
        sat = np.array(
            [self.explicit_saturation_value(j) for j in range(self.num_phases)]
        )
        sat[self.implicit_saturation_idx] = 1.0 - sat.sum()
        return sat

    def assign_from_fluid_state(
        self, fluid_state: CompositionalFluidState, phase_presence: int
    ) -> None:
        """Sets all primary variables from a complete fluid state.

        Parameters:
            fluid_state: Fluid state with saturations, pressures, compositions and
                temperatures of all phases.
            phase_presence: The (possibly new) phase presence of the vertex.

        """
        self.phase_presence = phase_presence
        self.values[self.pressure0_idx] = fluid_state.pressure[0]
        for slot in range(self.num_components - 1):
            var, j, k = self.switching_variable(slot)
            if var == SwitchingVariable.saturation:
                value = fluid_state.saturation[j]
            else:
                value = fluid_state.mole_fraction[j, k]
            self.values[self.switch0_idx + slot] = value
        if self.enable_energy:
            self.values[self.temperature_idx] = fluid_state.temperature[0]
