"""Flux variables: quantities at the integration point of a face.

Flux variables are constructed for one face of an element from the volume variables of
all sub-control volumes of the element and discarded after the flux over the face has
been computed. Quantities at the integration point are interpolated with the shape
functions of the element; gradients use the gradients of the shape functions.

The Darcy velocity over a face is split into the mobility and the remainder

.. math::

    \\mathbf{v} \\cdot \\mathbf{n} = \\lambda \\, k_{mvp}~,~
    k_{mvp} = -\\left( \\mathbf{K} (\\nabla p - \\rho \\mathbf{g}) \\right)
    \\cdot \\mathbf{n}

such that the mobility can be upwinded separately. The face normals are scaled with the
face area, hence ``kmvp_normal`` is already integrated over the face.

"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from porebox.grids.box_geometry import BoundaryFace, ElementGeometry
from porebox.models.problem import Problem
from porebox.models.unit_basis import MassBasis, MoleBasis
from porebox.models.volume_variables import (
    OnePTwoCVolumeVariables,
    PvsVolumeVariables,
)
from porebox.utils.averaging import harmonic_mean

__all__ = [
    "OnePTwoCFluxVariables",
    "OnePTwoCBoundaryVariables",
    "PvsFluxVariables",
]


def _gravity(problem: Problem, dim: int) -> np.ndarray:
    if problem.enable_gravity:
        return np.asarray(problem.gravity(dim), dtype=float)
    return np.zeros(dim)


class _OnePTwoCIntegrationPoint:
    """Interpolation of the 1p2c quantities at an integration point.

    Sets the pressure gradient, the mass density used for gravity, the interpolated
    basis quantity (density or molar density) and the gradients of the basis fractions
    of all components.

    """

    def _interpolate(
        self,
        shape_value: np.ndarray,
        grad: np.ndarray,
        elem_vol_vars: Sequence[OnePTwoCVolumeVariables],
        basis: Union[MassBasis, MoleBasis],
        phase_idx: int,
    ) -> None:
        fluid_states = [vv.fluid_state for vv in elem_vol_vars]
        ncomp = fluid_states[0].num_components

        pressures = np.array([fs.pressure[phase_idx] for fs in fluid_states])
        densities = np.array([fs.density[phase_idx] for fs in fluid_states])
        quantities = np.array([basis.quantity(fs, phase_idx) for fs in fluid_states])
        fractions = np.array(
            [
                [basis.fraction(fs, phase_idx, k) for k in range(ncomp)]
                for fs in fluid_states
            ]
        )

        self.pressure_grad: np.ndarray = pressures @ grad
        """Gradient of the pressure at the integration point."""

        self.density_at_ip: float = float(shape_value @ densities)
        """Mass density at the integration point, used for the gravity term."""

        self.quantity_at_ip: float = float(shape_value @ quantities)
        """Mass or molar density at the integration point, depending on the basis."""

        self.fraction_grad: np.ndarray = fractions.T @ grad
        """Gradients of the mass or mole fractions, ``shape=(num_components, dim)``."""


class OnePTwoCFluxVariables(_OnePTwoCIntegrationPoint):
    """Flux variables of an interior face of the 1p2c model.

    Parameters:
        problem: Provides intrinsic permeabilities and gravity.
        elem_geom: Geometry of the element.
        face_idx: Index of the face in the element.
        elem_vol_vars: Volume variables of all sub-control volumes of the element.
        basis: Unit basis of the balance equations.
        phase_idx: ``default=0``

            Index of the fluid phase.

    """

    def __init__(
        self,
        problem: Problem,
        elem_geom: ElementGeometry,
        face_idx: int,
        elem_vol_vars: Sequence[OnePTwoCVolumeVariables],
        basis: Union[MassBasis, MoleBasis],
        phase_idx: int = 0,
    ) -> None:
        face = elem_geom.faces[face_idx]
        self.face_idx: int = face_idx
        self.normal: np.ndarray = face.normal
        self._interpolate(face.shape_value, face.grad, elem_vol_vars, basis, phase_idx)

        K_i = problem.intrinsic_permeability(elem_geom, face.i)
        K_j = problem.intrinsic_permeability(elem_geom, face.j)
        K = harmonic_mean(K_i, K_j)
        g = _gravity(problem, elem_geom.dim)

        self.kmvp_normal: float = -float(
            (K @ (self.pressure_grad - self.density_at_ip * g)) @ face.normal
        )
        """Normal component of ``-K (grad p - rho g)``, integrated over the face."""

        if self.kmvp_normal < 0:
            self.upstream_idx: int = face.j
            self.downstream_idx: int = face.i
        else:
            self.upstream_idx = face.i
            self.downstream_idx = face.j

        vv_i = elem_vol_vars[face.i]
        vv_j = elem_vol_vars[face.j]
        self.porous_diff_coeff: float = float(
            harmonic_mean(
                vv_i.porosity * vv_i.tortuosity * vv_i.diff_coeff,
                vv_j.porosity * vv_j.tortuosity * vv_j.diff_coeff,
            )
        )
        """Harmonic mean of the effective diffusion coefficients of both sides."""


class OnePTwoCBoundaryVariables(_OnePTwoCIntegrationPoint):
    """Flux variables of a boundary face of the 1p2c model, used for outflow
    conditions.

    All quantities are computed from the volume variables inside the element. The
    permeability and the diffusion coefficient are those of the sub-control volume
    the boundary face belongs to.

    Parameters:
        problem: Provides intrinsic permeabilities and gravity.
        elem_geom: Geometry of the element.
        boundary_face_idx: Index of the boundary face in the element.
        elem_vol_vars: Volume variables of all sub-control volumes of the element.
        basis: Unit basis of the balance equations.
        phase_idx: ``default=0``

            Index of the fluid phase.

    """

    def __init__(
        self,
        problem: Problem,
        elem_geom: ElementGeometry,
        boundary_face_idx: int,
        elem_vol_vars: Sequence[OnePTwoCVolumeVariables],
        basis: Union[MassBasis, MoleBasis],
        phase_idx: int = 0,
    ) -> None:
        bface: BoundaryFace = elem_geom.boundary_faces[boundary_face_idx]
        self.boundary_face_idx: int = boundary_face_idx
        self.scv_idx: int = bface.scv_idx
        self.normal: np.ndarray = bface.normal
        self._interpolate(
            bface.shape_value, bface.grad, elem_vol_vars, basis, phase_idx
        )

        K = np.asarray(problem.intrinsic_permeability(elem_geom, bface.scv_idx))
        g = _gravity(problem, elem_geom.dim)
        self.kmvp_normal: float = -float(
            (K @ (self.pressure_grad - self.density_at_ip * g)) @ bface.normal
        )

        vv = elem_vol_vars[bface.scv_idx]
        self.porous_diff_coeff: float = vv.porosity * vv.tortuosity * vv.diff_coeff


class PvsFluxVariables:
    """Flux variables of an interior face of the PVS model.

    Upstream and downstream sub-control volumes are determined per phase.

    Parameters:
        problem: Provides intrinsic permeabilities and gravity.
        elem_geom: Geometry of the element.
        face_idx: Index of the face in the element.
        elem_vol_vars: Volume variables of all sub-control volumes of the element.

    """

    def __init__(
        self,
        problem: Problem,
        elem_geom: ElementGeometry,
        face_idx: int,
        elem_vol_vars: Sequence[PvsVolumeVariables],
    ) -> None:
        face = elem_geom.faces[face_idx]
        self.face_idx: int = face_idx
        self.face = face
        nphase = elem_vol_vars[0].num_phases

        K = harmonic_mean(
            problem.intrinsic_permeability(elem_geom, face.i),
            problem.intrinsic_permeability(elem_geom, face.j),
        )
        g = _gravity(problem, elem_geom.dim)

        self.kmvp_normal: np.ndarray = np.zeros(nphase)
        self.upstream_idx: np.ndarray = np.zeros(nphase, dtype=int)
        self.downstream_idx: np.ndarray = np.zeros(nphase, dtype=int)
        self.pressure_grad: np.ndarray = np.zeros((nphase, elem_geom.dim))

        for j in range(nphase):
            pressures = np.array([vv.fluid_state.pressure[j] for vv in elem_vol_vars])
            densities = np.array([vv.fluid_state.density[j] for vv in elem_vol_vars])
            self.pressure_grad[j] = pressures @ face.grad
            rho = float(face.shape_value @ densities)
            self.kmvp_normal[j] = -float(
                (K @ (self.pressure_grad[j] - rho * g)) @ face.normal
            )
            if self.kmvp_normal[j] < 0:
                self.upstream_idx[j], self.downstream_idx[j] = face.j, face.i
            else:
                self.upstream_idx[j], self.downstream_idx[j] = face.i, face.j
