"""Interface between a box model and a concrete physical problem.

A problem provides the spatial parameters (porosity, permeability, ...), the boundary
conditions and the sources. All callbacks receive the geometry of the current element
and the local index of the sub-control volume (or boundary face) in question, such that
parameters can be assigned per vertex, per element or per position.

Callbacks a model requires but a problem does not implement raise a
:obj:`NotImplementedError` naming the callback at their first invocation.

Example:
    class Column(Problem):

        def porosity(self, elem_geom, scv_idx):
            return 0.3

        def intrinsic_permeability(self, elem_geom, scv_idx):
            return 1e-12 * np.eye(1)

"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

import porebox as pb
from porebox.grids.box_geometry import ElementGeometry
from porebox.params.bc import BoundaryTypes

__all__ = ["Problem"]


class Problem:
    """Base class of problems.

    Parameters:
        params: ``default=None``

            Problem parameters. The key ``'enable_gravity'`` (default False) switches
            gravity on.

    """

    def __init__(self, params: Optional[dict] = None) -> None:
        if params is None:
            params = {}
        self.params: dict = params

        self.enable_gravity: bool = bool(params.get("enable_gravity", False))
        """Include gravity in the advective fluxes."""

    def _not_implemented(self, callback: str) -> NotImplementedError:
        return NotImplementedError(
            f"Problem {type(self).__name__} does not provide {callback}()."
        )

    # Spatial parameters

    def porosity(self, elem_geom: ElementGeometry, scv_idx: int) -> float:
        raise self._not_implemented("porosity")

    def intrinsic_permeability(
        self, elem_geom: ElementGeometry, scv_idx: int
    ) -> np.ndarray:
        """Intrinsic permeability tensor in ``[m^2]``, ``shape=(dim, dim)``."""
        raise self._not_implemented("intrinsic_permeability")

    def tortuosity(self, elem_geom: ElementGeometry, scv_idx: int) -> float:
        raise self._not_implemented("tortuosity")

    def dispersivity(self, elem_geom: ElementGeometry, scv_idx: int) -> np.ndarray:
        """Longitudinal and transversal dispersivity in ``[m]``.

        Dispersion is not included in the fluxes of the shipped models. Defaults to
        zero.

        """
        return np.zeros(2)

    def material_law_params(self, elem_geom: ElementGeometry, scv_idx: int) -> Any:
        """Parameters passed to the material law of the model. Defaults to None."""
        return None

    def temperature(self, elem_geom: ElementGeometry, scv_idx: int) -> float:
        """Temperature of isothermal problems in ``[K]``."""
        raise self._not_implemented("temperature")

    def heat_capacity_solid(self, elem_geom: ElementGeometry, scv_idx: int) -> float:
        """Volumetric heat capacity of the solid matrix in ``[J / (K m^3)]``."""
        raise self._not_implemented("heat_capacity_solid")

    def heat_conduction_params(self, elem_geom: ElementGeometry, scv_idx: int) -> Any:
        """Parameters of the effective heat conductivity of the porous medium, see
        :class:`~porebox.models.energy.SomertonParams`."""
        raise self._not_implemented("heat_conduction_params")

    def gravity(self, dim: int) -> np.ndarray:
        """Gravitational acceleration vector, pointing in negative direction of the
        last coordinate.

        Only used if :attr:`enable_gravity` is set.

        """
        g = np.zeros(dim)
        g[-1] = -pb.GRAVITY_ACCELERATION
        return g

    # Sources and boundary conditions

    def source(self, elem_geom: ElementGeometry, scv_idx: int) -> np.ndarray:
        """Source per unit volume of every equation, ``shape=(num_eq,)``.

        Positive values denote injection.

        """
        raise self._not_implemented("source")

    def boundary_types(
        self, elem_geom: ElementGeometry, scv_idx: int
    ) -> BoundaryTypes:
        """Boundary condition types of a sub-control volume touching the boundary."""
        raise self._not_implemented("boundary_types")

    def neumann(
        self, elem_geom: ElementGeometry, boundary_face_idx: int
    ) -> np.ndarray:
        """Flux per unit area over a boundary face, ``shape=(num_eq,)``.

        Positive values denote outflow.

        """
        raise self._not_implemented("neumann")

    def dirichlet(self, elem_geom: ElementGeometry, scv_idx: int) -> np.ndarray:
        """Values of the primary variables at a Dirichlet vertex,
        ``shape=(num_eq,)``."""
        raise self._not_implemented("dirichlet")
