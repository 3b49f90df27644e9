"""Finite difference Jacobian of an element-local residual."""

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from porebox.grids.box_geometry import ElementGeometry
from porebox.models.primary_variables import PrimaryVariables
from porebox.utils.logging import time_logger

__all__ = ["LocalJacobian"]

module_sections = ["numerics"]


class LocalJacobian:
    """Computes the derivatives of the local residual of an element with respect to
    the primary variables of all its vertices by numeric differentiation.

    For every primary variable of every sub-control volume, the volume variables of
    that sub-control volume are recomputed with the perturbed value and the local
    residual is re-evaluated.

    Parameters:
        model: Model providing the local residual, the problem and volume variables.
        params: ``default=None``

            Parameters. ``'numeric_difference_method'`` is ``1`` for forward
            (default), ``0`` for central and ``-1`` for backward differences.
            ``'base_epsilon'`` (default ``1e-8``) scales the perturbation.

    Raises:
        ValueError: If the difference method is not one of ``-1, 0, 1``.

    """

    def __init__(self, model: Any, params: Optional[dict] = None) -> None:
        if params is None:
            params = {}
        self.model = model
        self.local_residual = model.local_residual

        self.numeric_difference_method: int = int(
            params.get("numeric_difference_method", 1)
        )
        if self.numeric_difference_method not in (-1, 0, 1):
            raise ValueError(
                "Numeric difference method must be -1, 0 or 1, got"
                + f" {self.numeric_difference_method}."
            )
        self.base_epsilon: float = float(params.get("base_epsilon", 1e-8))

    def numeric_epsilon(self, value: float) -> float:
        """Perturbation of a primary variable, ``base_epsilon * (|value| + 1)``."""
        return self.base_epsilon * (abs(value) + 1.0)

    @time_logger(sections=module_sections)
    def assemble(
        self,
        elem_geom: ElementGeometry,
        primary_variables: Sequence[PrimaryVariables],
        cur_vol_vars: Sequence,
        prev_vol_vars: Optional[Sequence] = None,
        dt: Optional[float] = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Evaluates the local residual and its Jacobian.

        Parameters:
            elem_geom: Geometry of the element.
            primary_variables: Primary variables per sub-control volume.
            cur_vol_vars: Volume variables computed from ``primary_variables``.
            prev_vol_vars: ``default=None``

                Volume variables of the previous time level.
            dt: ``default=None``

                Time step size, None for stationary problems.

        Raises:
            ConstraintSolverError: If the volume variables of a perturbed state
                could not be computed.

        Returns:
            The local residual of shape ``(num_scv, num_eq)`` and the Jacobian of its
            flattened version with respect to the flattened primary variables,
            ``shape=(num_scv * num_eq, num_scv * num_eq)``.

        """
        lr = self.local_residual
        residual = lr.eval(
            elem_geom, cur_vol_vars, primary_variables, prev_vol_vars, dt
        ).copy()
        num_eq = lr.num_eq
        n = elem_geom.num_scv * num_eq
        jac = np.zeros((n, n))

        method = self.numeric_difference_method
        for scv_idx in range(elem_geom.num_scv):
            for pv_idx in range(num_eq):
                eps = self.numeric_epsilon(primary_variables[scv_idx][pv_idx])
                delta = 0.0
                if method >= 0:
                    r_plus = self._perturbed_residual(
                        elem_geom,
                        primary_variables,
                        cur_vol_vars,
                        prev_vol_vars,
                        dt,
                        scv_idx,
                        pv_idx,
                        eps,
                    )
                    delta += eps
                else:
                    r_plus = residual
                if method <= 0:
                    r_minus = self._perturbed_residual(
                        elem_geom,
                        primary_variables,
                        cur_vol_vars,
                        prev_vol_vars,
                        dt,
                        scv_idx,
                        pv_idx,
                        -eps,
                    )
                    delta += eps
                else:
                    r_minus = residual
                jac[:, scv_idx * num_eq + pv_idx] = ((r_plus - r_minus) / delta).ravel()

        # The perturbed evaluations overwrote the stored residual
        lr.residual = residual
        return residual, jac

    def _perturbed_residual(
        self,
        elem_geom: ElementGeometry,
        primary_variables: Sequence[PrimaryVariables],
        cur_vol_vars: Sequence,
        prev_vol_vars: Optional[Sequence],
        dt: Optional[float],
        scv_idx: int,
        pv_idx: int,
        delta: float,
    ) -> np.ndarray:
        pv = primary_variables[scv_idx].copy()
        pv[pv_idx] += delta
        vol_vars = self.model.make_volume_variables()
        vol_vars.update(pv, self.model.problem, elem_geom, scv_idx)

        perturbed_pvs = list(primary_variables)
        perturbed_pvs[scv_idx] = pv
        perturbed_vol_vars = list(cur_vol_vars)
        perturbed_vol_vars[scv_idx] = vol_vars
        return self.local_residual.eval(
            elem_geom, perturbed_vol_vars, perturbed_pvs, prev_vol_vars, dt
        ).copy()
