"""
Classes representing boundary condition types of the box scheme.

In the box scheme, boundary conditions are assigned per sub-control volume on the
boundary, and per equation. Every equation of a boundary sub-control volume is either
of Neumann, outflow or Dirichlet type. Different equations of the same sub-control
volume may have different types.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

__all__ = ["BoundaryType", "BoundaryTypes"]


class BoundaryType(Enum):
    """Type of the boundary condition of a single equation."""

    none = 0
    """No boundary condition assigned (sub-control volume in the interior)."""

    neumann = 1
    """Prescribed flux, provided by the problem."""

    outflow = 2
    """Flux computed from the interior state, as for interior faces."""

    dirichlet = 3
    """Prescribed value of the primary variable, provided by the problem."""


class BoundaryTypes:
    """Class to store the boundary condition types of all equations of a sub-control
    volume.

    Initially, no equation has a boundary condition assigned.

    Attributes:
        num_eq (int): Number of equations.
        is_neu (np.ndarray boolean, size num_eq): Element i is true if equation i has
            been assigned a Neumann condition.
        is_out (np.ndarray boolean, size num_eq): Element i is true if equation i has
            been assigned an outflow condition.
        is_dir (np.ndarray boolean, size num_eq): Element i is true if equation i has
            been assigned a Dirichlet condition.
        eq_to_pv (np.ndarray int, size num_eq): For Dirichlet equations, the index of
            the primary variable which is prescribed. Defaults to the equation index.

    Example:
        # Neumann for the continuity equation, outflow for the transport equation
        bc_types = BoundaryTypes(2)
        bc_types.set_neumann(0)
        bc_types.set_outflow(1)

    """

    def __init__(self, num_eq: int) -> None:
        self.num_eq: int = num_eq
        self.is_neu: np.ndarray = np.zeros(num_eq, dtype=bool)
        self.is_out: np.ndarray = np.zeros(num_eq, dtype=bool)
        self.is_dir: np.ndarray = np.zeros(num_eq, dtype=bool)
        self.eq_to_pv: np.ndarray = np.arange(num_eq)

    def _equations(self, eq_idx: Optional[Union[int, Sequence[int]]]) -> np.ndarray:
        if eq_idx is None:
            return np.arange(self.num_eq)
        eqs = np.atleast_1d(np.asarray(eq_idx, dtype=int))
        if np.any(eqs < 0) or np.any(eqs >= self.num_eq):
            raise ValueError(
                f"Equation indices {eqs} out of range for {self.num_eq} equations."
            )
        return eqs

    def _set(self, eq_idx, bc_type: BoundaryType) -> None:
        eqs = self._equations(eq_idx)
        self.is_neu[eqs] = bc_type == BoundaryType.neumann
        self.is_out[eqs] = bc_type == BoundaryType.outflow
        self.is_dir[eqs] = bc_type == BoundaryType.dirichlet

    def set_neumann(self, eq_idx: Optional[Union[int, Sequence[int]]] = None) -> None:
        """Assign Neumann conditions to the given equations (all if None)."""
        self._set(eq_idx, BoundaryType.neumann)

    def set_outflow(self, eq_idx: Optional[Union[int, Sequence[int]]] = None) -> None:
        """Assign outflow conditions to the given equations (all if None)."""
        self._set(eq_idx, BoundaryType.outflow)

    def set_dirichlet(
        self,
        eq_idx: Optional[Union[int, Sequence[int]]] = None,
        pv_idx: Optional[int] = None,
    ) -> None:
        """Assign Dirichlet conditions to the given equations (all if None).

        Parameters:
            eq_idx: Equation indices.
            pv_idx: Index of the prescribed primary variable. Only allowed for a single
                equation. Defaults to the equation index.

        """
        eqs = self._equations(eq_idx)
        self._set(eqs, BoundaryType.dirichlet)
        if pv_idx is not None:
            if eqs.size != 1:
                raise ValueError("A primary variable index requires a single equation.")
            self.eq_to_pv[eqs[0]] = pv_idx
        else:
            self.eq_to_pv[eqs] = eqs

    def reset(self) -> None:
        """Remove all boundary conditions."""
        self._set(None, BoundaryType.none)
        self.eq_to_pv = np.arange(self.num_eq)

    def bc_type(self, eq_idx: int) -> BoundaryType:
        """The boundary condition type of an equation."""
        if self.is_neu[eq_idx]:
            return BoundaryType.neumann
        if self.is_out[eq_idx]:
            return BoundaryType.outflow
        if self.is_dir[eq_idx]:
            return BoundaryType.dirichlet
        return BoundaryType.none

    def is_neumann(self, eq_idx: int) -> bool:
        return bool(self.is_neu[eq_idx])

    def is_outflow(self, eq_idx: int) -> bool:
        return bool(self.is_out[eq_idx])

    def is_dirichlet(self, eq_idx: int) -> bool:
        return bool(self.is_dir[eq_idx])

    def has_neumann(self) -> bool:
        return bool(self.is_neu.any())

    def has_outflow(self) -> bool:
        return bool(self.is_out.any())

    def has_dirichlet(self) -> bool:
        return bool(self.is_dir.any())

    def copy(self) -> BoundaryTypes:
        """
        Create a deep copy of the boundary condition types.

        Returns:
            BoundaryTypes: A deep copy of self.

        """
        bc = BoundaryTypes(self.num_eq)
        bc.is_neu = self.is_neu.copy()
        bc.is_out = self.is_out.copy()
        bc.is_dir = self.is_dir.copy()
        bc.eq_to_pv = self.eq_to_pv.copy()
        return bc

    def __repr__(self) -> str:
        s = (
            f"Boundary condition types for {self.num_eq} equations\n"
            f"Neumann equations: {np.flatnonzero(self.is_neu)}\n"
            f"Outflow equations: {np.flatnonzero(self.is_out)}\n"
            f"Dirichlet equations: {np.flatnonzero(self.is_dir)}\n"
        )
        return s
