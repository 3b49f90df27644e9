"""Constraint solvers for the phase compositions of a fluid in thermodynamic
equilibrium.

Given a fluid state where some quantities are fixed (saturations, pressures,
temperatures and either the complete composition of a reference phase or a set of
auxiliary constraints), the solvers compute the remaining mole fractions such that the
fugacity of every component is equal in all phases,

.. math::

    x_{jk} \\phi_{jk} p_j = x_{rk} \\phi_{rk} p_r~,

and afterwards the densities and, if requested, viscosities and enthalpies of all
phases.

1. :class:`ComputeFromReferencePhase`: The composition of one phase is known. The
   compositions of the other phases follow directly from the fugacity equality.
2. :class:`MiscibleMultiPhaseComposition`: All phases in the phase presence mask
   fulfill the unity constraint of their mole fractions. The system is closed by
   :class:`AuxiliaryConstraint` s pinning single mole fractions.

If the fugacity coefficients depend on the composition (non-ideal mixtures), the
solvers perform a successive substitution until the mole fractions do not change
anymore. Failing to do so within the maximal number of iterations, or encountering a
singular system, raises a
:class:`~porebox.compositional.utils.ConstraintSolverError`. In that case the given
fluid state is left untouched.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

import numba
import numpy as np

from porebox.utils.logging import time_logger

from ._core import NUMBA_CACHE, NUMBA_FAST_MATH
from .fluid_state import CompositionalFluidState
from .fluid_system import FluidSystem, ParameterCache
from .utils import CompositionalModellingError, ConstraintSolverError

__all__ = [
    "AuxiliaryConstraint",
    "ComputeFromReferencePhase",
    "MiscibleMultiPhaseComposition",
]

module_sections = ["compositional"]
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuxiliaryConstraint:
    """Pins the mole fraction of a component in a phase to a given value."""

    phase_idx: int
    comp_idx: int
    value: float


@numba.njit(fastmath=NUMBA_FAST_MATH, cache=NUMBA_CACHE)
def _compositions_from_reference(
    phis: np.ndarray, pressures: np.ndarray, x_ref: np.ndarray, ref_idx: int
) -> np.ndarray:
    """Computes the mole fractions of all phases by equating the fugacities with the
    ones of the reference phase ``ref_idx``, whose composition is ``x_ref``."""
    nphase, ncomp = phis.shape
    x = np.empty((nphase, ncomp))
    for j in range(nphase):
        for k in range(ncomp):
            if j == ref_idx:
                x[j, k] = x_ref[k]
            else:
                f = x_ref[k] * phis[ref_idx, k] * pressures[ref_idx]
                x[j, k] = f / (phis[j, k] * pressures[j])
    return x


@numba.njit(fastmath=NUMBA_FAST_MATH, cache=NUMBA_CACHE)
def _assemble_composition_system(
    phis: np.ndarray,
    pressures: np.ndarray,
    present: np.ndarray,
    aux_phase: np.ndarray,
    aux_comp: np.ndarray,
    aux_value: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Assembles the linear system for all mole fractions of a miscible multi-phase
    system with frozen fugacity coefficients.

    The unknown ``x[j, k]`` is stored at position ``j * ncomp + k``. Rows are, in this
    order, fugacity equalities between phase 0 and every other phase (scaled by the
    fugacity coefficient of phase 0), unity constraints for present phases and the
    auxiliary constraints.

    """
    nphase, ncomp = phis.shape
    n = nphase * ncomp
    mat = np.zeros((n, n))
    rhs = np.zeros(n)

    row = 0
    for j in range(1, nphase):
        for k in range(ncomp):
            mat[row, k] = 1.0
            mat[row, j * ncomp + k] = -(
                phis[j, k] * pressures[j] / (phis[0, k] * pressures[0])
            )
            row += 1

    for j in range(nphase):
        if present[j]:
            for k in range(ncomp):
                mat[row, j * ncomp + k] = 1.0
            rhs[row] = 1.0
            row += 1

    for a in range(aux_phase.shape[0]):
        mat[row, aux_phase[a] * ncomp + aux_comp[a]] = 1.0
        rhs[row] = aux_value[a]
        row += 1

    return mat, rhs


class _ConstraintSolver:
    """Shared functionality of the constraint solvers.

    Parameters:
        fluid_system: Fluid system providing fugacity coefficients and the phase
            properties.

    """

    def __init__(self, fluid_system: FluidSystem) -> None:
        self.fluid_system: FluidSystem = fluid_system
        """The fluid system passed at instantiation."""

        self.tolerance: float = 1e-10
        """Convergence criterion for the maximal change in mole fractions between two
        successive substitutions. Defaults to ``1e-10``."""

        self.max_iter: int = 50
        """Maximal number of successive substitutions. Defaults to 50."""

    def _check_dimensions(self, fluid_state: CompositionalFluidState) -> None:
        fs = self.fluid_system
        if fluid_state.mole_fraction.shape != (fs.num_phases, fs.num_components):
            raise CompositionalModellingError(
                f"Fluid state with {fluid_state.num_phases} phases and"
                + f" {fluid_state.num_components} components does not match fluid"
                + f" system {type(fs).__name__}."
            )

    def _is_ideal(self) -> bool:
        fs = self.fluid_system
        return all(fs.is_ideal_mixture(j) for j in range(fs.num_phases))

    def _fugacity_coefficients(
        self, fluid_state: CompositionalFluidState, param_cache: ParameterCache
    ) -> np.ndarray:
        fs = self.fluid_system
        phis = np.empty((fs.num_phases, fs.num_components))
        for j in range(fs.num_phases):
            for k in range(fs.num_components):
                phis[j, k] = fs.fugacity_coefficient(fluid_state, param_cache, j, k)
        if not np.all(np.isfinite(phis)) or np.any(phis <= 0.0):
            raise ConstraintSolverError(
                "Non-positive or non-finite fugacity coefficients encountered."
            )
        return phis

    def _update_phase_properties(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        set_viscosity: bool,
        set_enthalpy: bool,
    ) -> None:
        fs = self.fluid_system
        for j in range(fs.num_phases):
            fluid_state.density[j] = fs.density(fluid_state, param_cache, j)
            if set_viscosity:
                fluid_state.viscosity[j] = fs.viscosity(fluid_state, param_cache, j)
            if set_enthalpy:
                fluid_state.enthalpy[j] = fs.enthalpy(fluid_state, param_cache, j)

        if not np.all(np.isfinite(fluid_state.density)):
            raise ConstraintSolverError("Non-finite phase densities encountered.")

    def _substitute(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        update: Callable[[np.ndarray], np.ndarray],
    ) -> int:
        """Performs successive substitutions ``x <- update(phis)`` on ``fluid_state``
        until the mole fractions converged.

        Returns:
            The number of performed iterations.

        """
        ideal = self._is_ideal()
        residual = np.inf
        for num_iter in range(1, self.max_iter + 1):
            phis = self._fugacity_coefficients(fluid_state, param_cache)
            x_new = update(phis)
            if not np.all(np.isfinite(x_new)):
                raise ConstraintSolverError(
                    "Non-finite mole fractions encountered.", num_iter
                )
            residual = float(np.max(np.abs(x_new - fluid_state.mole_fraction)))
            fluid_state.mole_fraction[:] = x_new
            # Fugacity coefficients of ideal mixtures do not depend on the composition
            if ideal or residual < self.tolerance:
                break
        else:
            raise ConstraintSolverError(
                f"{type(self).__name__} did not converge within {self.max_iter}"
                + f" iterations (last change in mole fractions {residual:.3e}).",
                self.max_iter,
                residual,
            )
        logger.debug(
            f"{type(self).__name__} converged after {num_iter} iterations"
            + f" (change in mole fractions {residual:.3e})."
        )
        return num_iter


class ComputeFromReferencePhase(_ConstraintSolver):
    """Computes the compositions of all phases from the known composition of a
    reference phase.

    This is the constraint solver used when only one phase is present: The primary
    variables contain the complete composition of that phase, and the compositions of
    the non-present phases follow from the fugacity equality. The mole fractions of
    non-present phases do in general not sum up to one. This is used by the phase
    switching to detect appearing phases.

    """

    @time_logger(sections=module_sections)
    def solve(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        ref_phase_idx: int,
        set_viscosity: bool = True,
        set_enthalpy: bool = False,
    ) -> None:
        """Computes the compositions and properties of all phases.

        Parameters:
            fluid_state: A fluid state with saturations, pressures, temperatures and the
                composition of the reference phase set. It is updated in place.
            param_cache: Parameter cache of the control volume.
            ref_phase_idx: Index of the phase whose composition is known.
            set_viscosity: ``default=True``

                Compute the viscosities of all phases.
            set_enthalpy: ``default=False``

                Compute the enthalpies of all phases.

        Raises:
            CompositionalModellingError: If the fluid state does not match the fluid
                system.
            ConstraintSolverError: If the compositions could not be computed. The fluid
                state is then unchanged.

        """
        self._check_dimensions(fluid_state)

        trial = fluid_state.copy()
        param_cache.update_all(trial)
        x_ref = trial.mole_fraction[ref_phase_idx].copy()
        pressures = trial.pressure.copy()

        self._substitute(
            trial,
            param_cache,
            lambda phis: _compositions_from_reference(
                phis, pressures, x_ref, ref_phase_idx
            ),
        )
        self._update_phase_properties(trial, param_cache, set_viscosity, set_enthalpy)
        fluid_state.assign(trial)


class MiscibleMultiPhaseComposition(_ConstraintSolver):
    """Computes the compositions of all phases of a miscible multi-phase system in
    thermodynamic equilibrium.

    The unknowns are the mole fractions of all components in all phases. The equations
    are

    - equal fugacities of every component in phase 0 and every other phase,
    - unity of the mole fractions of every present phase,
    - the given auxiliary constraints.

    Hence, ``num_components + num_non_present_phases - num_phases`` auxiliary
    constraints are required to close the system.

    """

    @time_logger(sections=module_sections)
    def solve(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_presence: int,
        aux_constraints: Sequence[AuxiliaryConstraint] = (),
        set_viscosity: bool = True,
        set_enthalpy: bool = False,
    ) -> None:
        """Computes the compositions and properties of all phases.

        Parameters:
            fluid_state: A fluid state with saturations, pressures and temperatures
                set. It is updated in place. Its mole fractions are used as the initial
                guess for non-ideal mixtures.
            param_cache: Parameter cache of the control volume.
            phase_presence: Bitmask with bit ``j`` set if phase ``j`` is present.
            aux_constraints: Auxiliary constraints closing the system.
            set_viscosity: ``default=True``

                Compute the viscosities of all phases.
            set_enthalpy: ``default=False``

                Compute the enthalpies of all phases.

        Raises:
            CompositionalModellingError: If no phase is present, if the number of
                auxiliary constraints does not close the system or if an auxiliary
                constraint is given twice for the same mole fraction.
            ConstraintSolverError: If the system is singular or the successive
                substitution did not converge. The fluid state is then unchanged.

        """
        self._check_dimensions(fluid_state)
        nphase = self.fluid_system.num_phases
        ncomp = self.fluid_system.num_components

        present = np.array([bool(phase_presence & (1 << j)) for j in range(nphase)])
        if not np.any(present):
            raise CompositionalModellingError("At least one phase must be present.")

        num_non_present = int(nphase - present.sum())
        num_aux = ncomp + num_non_present - nphase
        if len(aux_constraints) != num_aux:
            raise CompositionalModellingError(
                f"Expecting {num_aux} auxiliary constraints for {nphase} phases"
                + f" ({num_non_present} not present) and {ncomp} components,"
                + f" {len(aux_constraints)} given."
            )
        pinned = {(c.phase_idx, c.comp_idx) for c in aux_constraints}
        if len(pinned) != len(aux_constraints):
            raise CompositionalModellingError(
                "Auxiliary constraints must pin distinct mole fractions."
            )

        aux_phase = np.array([c.phase_idx for c in aux_constraints], dtype=np.int64)
        aux_comp = np.array([c.comp_idx for c in aux_constraints], dtype=np.int64)
        aux_value = np.array([c.value for c in aux_constraints], dtype=float)

        trial = fluid_state.copy()
        param_cache.update_all(trial)
        pressures = trial.pressure.copy()

        def update(phis: np.ndarray) -> np.ndarray:
            mat, rhs = _assemble_composition_system(
                phis, pressures, present, aux_phase, aux_comp, aux_value
            )
            try:
                x = np.linalg.solve(mat, rhs)
            except np.linalg.LinAlgError as err:
                raise ConstraintSolverError(
                    f"Singular equilibrium system: {err}"
                ) from err
            return x.reshape((nphase, ncomp))

        self._substitute(trial, param_cache, update)
        self._update_phase_properties(trial, param_cache, set_viscosity, set_enthalpy)
        fluid_state.assign(trial)
