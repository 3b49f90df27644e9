"""Phase appearance and disappearance criteria of the PVS model."""

from __future__ import annotations

import logging
from typing import Optional

from porebox.compositional.utils import normalize_fractions
from porebox.models.primary_variables import PrimaryVariables
from porebox.models.volume_variables import PvsVolumeVariables

__all__ = ["PvsPhaseSwitch"]

logger = logging.getLogger(__name__)


class PvsPhaseSwitch:
    """Default phase switching criterion of the PVS model.

    A present phase disappears if its saturation drops below ``-eps``. A phase which is
    not present appears if the sum of its mole fractions, computed from the fugacity
    equality with the present phases, exceeds ``1 + eps``. The last present phase never
    disappears.

    Parameters:
        params: ``default=None``

            Model parameters. The key ``'phase_switch_eps'`` sets the tolerance
            ``eps`` (default ``1e-6``).

    """

    def __init__(self, params: Optional[dict] = None) -> None:
        if params is None:
            params = {}
        self.eps: float = float(params.get("phase_switch_eps", 1e-6))
        """Tolerance of the switching criteria."""

    def new_phase_presence(
        self, primary_variables: PrimaryVariables, vol_vars: PvsVolumeVariables
    ) -> int:
        """The phase presence following from the criteria, as a bitmask."""
        fs = vol_vars.fluid_state
        old = int(primary_variables.phase_presence)
        new = old
        for j in range(primary_variables.num_phases):
            bit = 1 << j
            if old & bit:
                if fs.saturation[j] < -self.eps and new & ~bit:
                    new &= ~bit
            elif fs.mole_fraction[j].sum() > 1.0 + self.eps:
                new |= bit
        return new

    def update(
        self,
        primary_variables: PrimaryVariables,
        vol_vars: PvsVolumeVariables,
        global_idx: int,
    ) -> bool:
        """Checks the criteria for a vertex and switches the primary variables if the
        phase presence changed.

        The switched primary variables are set from the fluid state of the volume
        variables. Saturations of appearing phases start at zero, the saturation of a
        disappearing phase is given to the phase whose saturation is implicit.

        Parameters:
            primary_variables: Primary variables of the vertex, modified in place.
            vol_vars: Volume variables computed from ``primary_variables``.
            global_idx: Index of the vertex, used for logging.

        Returns:
            True if the phase presence changed. The volume variables then need to be
            recomputed.

        """
        old = int(primary_variables.phase_presence)
        new = self.new_phase_presence(primary_variables, vol_vars)
        if new == old:
            return False

        fs = vol_vars.fluid_state.copy()
        for j in range(primary_variables.num_phases):
            bit = 1 << j
            if not new & bit:
                fs.saturation[j] = 0.0
            elif not old & bit:
                # Appearing phases start with a composition summing up to one
                fs.mole_fraction[j] = normalize_fractions(fs.mole_fraction[j])
        primary_variables.assign_from_fluid_state(fs, new)

        logger.info(
            f"Vertex {global_idx}: phase presence switched from {old:#b} to {new:#b}."
        )
        return True
