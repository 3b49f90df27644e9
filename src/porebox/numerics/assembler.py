"""Global assembly of box model residuals and Jacobians.

The assembler evaluates a model on a grid element by element:

1. The volume variables of the sub-control volumes of an element are computed from
   the solution at its vertices, with the spatial parameters of that element.
2. The local residual (and Jacobian) of the element is evaluated from these volume
   variables and scattered into the global system.

A vertex shared by several elements hence has one set of volume variables per element.
In layered media, each half-box sees the porosity and material law of its own element.

Global degrees of freedom are numbered vertex-wise, the equation ``eq`` of vertex
``v`` has the index ``v * num_eq + eq``. Equations with Dirichlet conditions are
replaced by ``primary_variable - dirichlet_value`` in the global system.

The nonlinear solver is not part of the assembler. A Newton driver calls
:meth:`BoxAssembler.assemble`, solves the linear system and updates the solution;
on an :class:`AssemblyError` it may reduce the update or the time step.

"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import numpy as np
import scipy.sparse as sps

from porebox.compositional.utils import ConstraintSolverError
from porebox.grids.box_geometry import BoxGrid, ElementGeometry
from porebox.models.primary_variables import PrimaryVariables
from porebox.numerics.local_jacobian import LocalJacobian
from porebox.utils.logging import time_logger

__all__ = ["AssemblyError", "BoxAssembler"]

logger = logging.getLogger(__name__)

module_sections = ["assembly", "numerics"]


class AssemblyError(ConstraintSolverError):
    """Raised if the residual of an element could not be evaluated because a
    constraint solver failed.

    Parameters:
        msg: Error message.
        element_idx: Index of the element in which the failure occurred.
        num_iter: Iterations of the failing constraint solver.
        residual: Last convergence measure of the failing constraint solver.

    """

    def __init__(
        self,
        msg: str,
        element_idx: int,
        num_iter: int = 0,
        residual: Optional[float] = None,
    ) -> None:
        super().__init__(msg, num_iter, residual)
        self.element_idx: int = element_idx


class BoxAssembler:
    """Assembles the global residual and Jacobian of a model on a grid.

    Parameters:
        model: A box model (:class:`~porebox.models.models.OnePTwoCModel` or
            :class:`~porebox.models.models.PvsModel`).
        grid: The element geometries.
        params: ``default=None``

            Parameters of the local Jacobian, see
            :class:`~porebox.numerics.local_jacobian.LocalJacobian`.

    """

    def __init__(
        self, model: Any, grid: BoxGrid, params: Optional[dict] = None
    ) -> None:
        self.model = model
        self.grid: BoxGrid = grid
        self.local_jacobian = LocalJacobian(model, params)

        self.num_eq: int = model.num_eq
        self.num_dofs: int = grid.num_vertices * self.num_eq

        # For every vertex, the first element containing it and its local index there
        self._vertex_owner: list[tuple[int, int]] = [(-1, -1)] * grid.num_vertices
        for elem in grid.elements:
            for scv in elem.scvs:
                if self._vertex_owner[scv.global_idx][0] < 0:
                    self._vertex_owner[scv.global_idx] = (
                        elem.element_idx,
                        scv.local_idx,
                    )

        self.cur_vol_vars: Optional[list[list]] = None
        """Volume variables of the last successful evaluation, per element and
        sub-control volume."""

        self.prev_vol_vars: Optional[list[list]] = None
        """Volume variables of the previous time level, per element and sub-control
        volume."""

        self.residual: np.ndarray = np.zeros(self.num_dofs)
        """Global residual of the last successful evaluation."""

        self.jacobian: sps.csr_matrix = sps.csr_matrix((self.num_dofs, self.num_dofs))
        """Global Jacobian of the last successful assembly."""

    def _check_solution(self, solution: Sequence[PrimaryVariables]) -> None:
        if len(solution) != self.grid.num_vertices:
            raise ValueError(
                f"Expecting primary variables for {self.grid.num_vertices} vertices,"
                + f" got {len(solution)}."
            )

    def element_volume_variables(
        self, elem: ElementGeometry, solution: Sequence[PrimaryVariables]
    ) -> list:
        """Computes the volume variables of the sub-control volumes of an element.

        Raises:
            AssemblyError: If a constraint solver failed for a sub-control volume.

        """
        vol_vars = []
        for scv in elem.scvs:
            vv = self.model.make_volume_variables()
            try:
                vv.update(
                    solution[scv.global_idx], self.model.problem, elem, scv.local_idx
                )
            except ConstraintSolverError as err:
                raise AssemblyError(
                    f"Volume variables of vertex {scv.global_idx} in element"
                    + f" {elem.element_idx} failed: {err}",
                    elem.element_idx,
                    err.num_iter,
                    err.residual,
                ) from err
            vol_vars.append(vv)
        return vol_vars

    def compute_volume_variables(
        self, solution: Sequence[PrimaryVariables]
    ) -> list[list]:
        """Computes the volume variables of all elements.

        Returns:
            For every element, the volume variables of its sub-control volumes.

        Raises:
            AssemblyError: If a constraint solver failed. The error names the first
                element in which it failed.

        """
        self._check_solution(solution)
        return [
            self.element_volume_variables(elem, solution) for elem in self.grid.elements
        ]

    def advance_time_level(
        self, solution: Optional[Sequence[PrimaryVariables]] = None
    ) -> None:
        """Stores the volume variables of a solution as previous time level.

        Parameters:
            solution: ``default=None``

                The converged solution of the time step. If not given, the volume
                variables of the last successful evaluation are used.

        Raises:
            ValueError: If no solution is given and nothing was evaluated yet.

        """
        if solution is not None:
            self.prev_vol_vars = self.compute_volume_variables(solution)
        elif self.cur_vol_vars is not None:
            self.prev_vol_vars = self.cur_vol_vars
        else:
            raise ValueError("No volume variables available to advance.")

    def _element_context(
        self,
        elem: ElementGeometry,
        solution: Sequence[PrimaryVariables],
        vol_vars: list[list],
    ) -> tuple[np.ndarray, list, list, Optional[list]]:
        idx = elem.global_indices()
        pvs = [solution[g] for g in idx]
        cur = vol_vars[elem.element_idx]
        prev = None
        if self.prev_vol_vars is not None:
            prev = self.prev_vol_vars[elem.element_idx]
        return idx, pvs, cur, prev

    def _dofs(self, idx: np.ndarray) -> np.ndarray:
        return (idx[:, None] * self.num_eq + np.arange(self.num_eq)).ravel()

    def evaluate(
        self, solution: Sequence[PrimaryVariables], dt: Optional[float] = None
    ) -> np.ndarray:
        """Evaluates the global residual.

        Parameters:
            solution: Primary variables of all vertices.
            dt: ``default=None``

                Time step size, None for stationary problems.

        Raises:
            AssemblyError: If a constraint solver failed. :attr:`residual` and
                :attr:`cur_vol_vars` keep the values of the last successful
                evaluation.

        Returns:
            The residual, ``shape=(num_vertices * num_eq,)``.

        """
        vol_vars = self.compute_volume_variables(solution)
        residual = np.zeros(self.num_dofs)
        dirichlet = np.zeros(self.num_dofs, dtype=bool)
        dirichlet_values = np.zeros(self.num_dofs)
        lr = self.model.local_residual

        for elem in self.grid.elements:
            idx, pvs, cur, prev = self._element_context(elem, solution, vol_vars)
            local = lr.eval(elem, cur, pvs, prev, dt).ravel()
            mask = lr.dirichlet_mask().ravel()
            dofs = self._dofs(idx)
            residual[dofs[~mask]] += local[~mask]
            dirichlet[dofs[mask]] = True
            dirichlet_values[dofs[mask]] = local[mask]

        residual[dirichlet] = dirichlet_values[dirichlet]
        self.cur_vol_vars = vol_vars
        self.residual = residual
        return residual

    @time_logger(sections=module_sections)
    def assemble(
        self, solution: Sequence[PrimaryVariables], dt: Optional[float] = None
    ) -> tuple[sps.csr_matrix, np.ndarray]:
        """Assembles the global Jacobian and residual.

        Parameters:
            solution: Primary variables of all vertices.
            dt: ``default=None``

                Time step size, None for stationary problems.

        Raises:
            AssemblyError: If a constraint solver failed, also for a perturbed state
                of the numeric differentiation. The stored system is then unchanged.

        Returns:
            The Jacobian in CSR format and the residual.

        """
        vol_vars = self.compute_volume_variables(solution)
        residual = np.zeros(self.num_dofs)
        dirichlet = np.zeros(self.num_dofs, dtype=bool)
        dirichlet_values = np.zeros(self.num_dofs)
        dirichlet_rows: dict[int, tuple[np.ndarray, np.ndarray]] = {}
        rows: list[np.ndarray] = []
        cols: list[np.ndarray] = []
        data: list[np.ndarray] = []

        for elem in self.grid.elements:
            idx, pvs, cur, prev = self._element_context(elem, solution, vol_vars)
            try:
                local_res, local_jac = self.local_jacobian.assemble(
                    elem, pvs, cur, prev, dt
                )
            except ConstraintSolverError as err:
                raise AssemblyError(
                    f"Jacobian of element {elem.element_idx} failed: {err}",
                    elem.element_idx,
                    err.num_iter,
                    err.residual,
                ) from err

            local = local_res.ravel()
            mask = self.model.local_residual.dirichlet_mask().ravel()
            dofs = self._dofs(idx)

            residual[dofs[~mask]] += local[~mask]
            dirichlet[dofs[mask]] = True
            dirichlet_values[dofs[mask]] = local[mask]

            free = np.flatnonzero(~mask)
            r, c = np.meshgrid(dofs[free], dofs, indexing="ij")
            rows.append(r.ravel())
            cols.append(c.ravel())
            data.append(local_jac[free].ravel())
            for loc in np.flatnonzero(mask):
                dirichlet_rows[int(dofs[loc])] = (dofs, local_jac[loc])

        # Dirichlet rows are replaced, not summed over the elements
        row_arr = np.concatenate(rows) if rows else np.zeros(0, dtype=int)
        col_arr = np.concatenate(cols) if cols else np.zeros(0, dtype=int)
        data_arr = np.concatenate(data) if data else np.zeros(0)
        keep = ~dirichlet[row_arr]
        row_parts = [row_arr[keep]]
        col_parts = [col_arr[keep]]
        data_parts = [data_arr[keep]]
        for dof, (dofs, values) in dirichlet_rows.items():
            row_parts.append(np.full(dofs.size, dof))
            col_parts.append(dofs)
            data_parts.append(values)
        jacobian = sps.coo_matrix(
            (
                np.concatenate(data_parts),
                (np.concatenate(row_parts), np.concatenate(col_parts)),
            ),
            shape=(self.num_dofs, self.num_dofs),
        ).tocsr()

        residual[dirichlet] = dirichlet_values[dirichlet]
        self.cur_vol_vars = vol_vars
        self.residual = residual
        self.jacobian = jacobian
        logger.debug(
            f"Assembled system with {self.num_dofs} dofs and {jacobian.nnz} nonzeros."
        )
        return jacobian, residual

    def update_phase_presence(self, solution: Sequence[PrimaryVariables]) -> bool:
        """Applies the phase switch of the model to every vertex.

        The criteria of a vertex are checked with its volume variables in the first
        element containing it, computed from ``solution``. After a switch, the volume
        variables of the last evaluation are discarded.

        Parameters:
            solution: Primary variables of all vertices, modified in place.

        Returns:
            True if the phase presence of any vertex changed.

        """
        phase_switch = getattr(self.model, "phase_switch", None)
        if phase_switch is None:
            return False
        vol_vars = self.compute_volume_variables(solution)
        switched = False
        for vertex, (elem_idx, local_idx) in enumerate(self._vertex_owner):
            vv = vol_vars[elem_idx][local_idx]
            switched |= phase_switch.update(solution[vertex], vv, vertex)
        if switched:
            self.cur_vol_vars = None
        return switched

    def total_storage(self, solution: Sequence[PrimaryVariables]) -> np.ndarray:
        """Integral of the storage term over the domain, per equation."""
        vol_vars = self.compute_volume_variables(solution)
        lr = self.model.local_residual
        total = np.zeros(self.num_eq)
        for elem in self.grid.elements:
            idx, pvs, cur, _ = self._element_context(elem, solution, vol_vars)
            lr.bind(elem, cur, pvs)
            for scv in elem.scvs:
                storage = np.zeros(self.num_eq)
                lr.compute_storage(storage, scv.local_idx, False)
                total += storage * scv.volume
        return total
