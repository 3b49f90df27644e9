"""Element-local residuals of the box models.

The local residual of an element is an array of shape ``(num_scv, num_eq)``, holding
for every sub-control volume of the element and every balance equation the
contributions of that element to the discrete balance

.. math::

    \\frac{S(u^{n+1}) - S(u^n)}{\\Delta t} |V|
    + \\sum_{f} F_f(u^{n+1}) - q |V| = 0

where :math:`S` is the storage, :math:`F_f` the flux over face :math:`f` leaving the
sub-control volume and :math:`q` the source. A flux over an interior face is added to
the residual of the inner sub-control volume ``i`` and subtracted from the residual of
the outer one ``j``.

Boundary conditions are evaluated after the interior terms: Neumann fluxes and outflow
fluxes are added to the flagged equations, Dirichlet equations are replaced by the
difference of the primary variable and the prescribed value.

Derived classes implement :meth:`BoxLocalResidual.compute_storage`,
:meth:`BoxLocalResidual.compute_flux` and, if outflow boundaries are supported,
:meth:`BoxLocalResidual.compute_outflow_values`.

"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

import porebox as pb
from porebox.grids.box_geometry import ElementGeometry
from porebox.models.energy import IsothermalEnergyModule
from porebox.models.flux_variables import (
    OnePTwoCBoundaryVariables,
    OnePTwoCFluxVariables,
    PvsFluxVariables,
)
from porebox.models.primary_variables import PrimaryVariables
from porebox.models.problem import Problem
from porebox.models.unit_basis import MassBasis, MoleBasis
from porebox.params.bc import BoundaryTypes
from porebox.utils.logging import time_logger

__all__ = ["BoxLocalResidual", "OnePTwoCLocalResidual", "PvsLocalResidual"]

module_sections = ["models"]


def _upwind_weight(params: dict) -> float:
    """Upwind weight from the model parameters, falling back to the ``[numerics]``
    section of ``porebox.cfg`` and finally to full upwinding."""
    if "upwind_weight" in params:
        weight = float(params["upwind_weight"])
    else:
        section = pb.config.get(pb.NUMERICS, {})
        weight = float(section.get("upwind_weight", 1.0))
    if not 0.0 <= weight <= 1.0:
        raise ValueError(f"Upwind weight must be in [0, 1], got {weight}.")
    return weight


class BoxLocalResidual:
    """Base class of local residuals.

    The residual is evaluated for one element at a time. The element context
    (geometry, volume variables of both time levels, primary variables and boundary
    types) is set by :meth:`bind`, which is called by :meth:`eval`.

    Parameters:
        problem: The problem providing sources and boundary conditions.
        num_eq: Number of equations per sub-control volume.
        params: ``default=None``

            Model parameters. The key ``'upwind_weight'`` sets the weight of the
            upstream side in the advective fluxes.

    Raises:
        ValueError: If the upwind weight is not in ``[0, 1]``.

    """

    def __init__(
        self, problem: Problem, num_eq: int, params: Optional[dict] = None
    ) -> None:
        if params is None:
            params = {}
        self.problem: Problem = problem
        self.num_eq: int = num_eq
        self.params: dict = params

        self.upwind_weight: float = _upwind_weight(params)
        """Weight of the upstream side in the advective fluxes, 1 for full upwinding.
        """

        self.residual: np.ndarray = np.zeros((0, num_eq))
        """Result of the last successful :meth:`eval`, ``shape=(num_scv, num_eq)``."""

        self.elem_geom: ElementGeometry
        self.cur_vol_vars: Sequence
        self.prev_vol_vars: Optional[Sequence] = None
        self.primary_variables: Sequence[PrimaryVariables]
        self.bc_types: list[BoundaryTypes] = []

    def bind(
        self,
        elem_geom: ElementGeometry,
        cur_vol_vars: Sequence,
        primary_variables: Sequence[PrimaryVariables],
        prev_vol_vars: Optional[Sequence] = None,
    ) -> None:
        """Sets the element context and queries the boundary types of the boundary
        sub-control volumes.

        Parameters:
            elem_geom: Geometry of the element.
            cur_vol_vars: Volume variables of the current time level, per
                sub-control volume.
            primary_variables: Primary variables per sub-control volume.
            prev_vol_vars: ``default=None``

                Volume variables of the previous time level. Only required for
                transient evaluations.

        """
        self.elem_geom = elem_geom
        self.cur_vol_vars = cur_vol_vars
        self.prev_vol_vars = prev_vol_vars
        self.primary_variables = primary_variables

        self.bc_types = [BoundaryTypes(self.num_eq) for _ in range(elem_geom.num_scv)]
        for scv_idx in elem_geom.boundary_scvs():
            self.bc_types[scv_idx] = self.problem.boundary_types(elem_geom, scv_idx)

    def dirichlet_mask(self) -> np.ndarray:
        """Boolean array of shape ``(num_scv, num_eq)``, true for equations of the
        bound element replaced by Dirichlet conditions."""
        return np.array([bc.is_dir for bc in self.bc_types], dtype=bool).reshape(
            (-1, self.num_eq)
        )

    @time_logger(sections=module_sections)
    def eval(
        self,
        elem_geom: ElementGeometry,
        cur_vol_vars: Sequence,
        primary_variables: Sequence[PrimaryVariables],
        prev_vol_vars: Optional[Sequence] = None,
        dt: Optional[float] = None,
    ) -> np.ndarray:
        """Evaluates the local residual of an element.

        Parameters:
            elem_geom: Geometry of the element.
            cur_vol_vars: Volume variables of the current time level.
            primary_variables: Primary variables per sub-control volume.
            prev_vol_vars: ``default=None``

                Volume variables of the previous time level.
            dt: ``default=None``

                Time step size. If None, the storage term is omitted (stationary
                problem).

        Returns:
            The residual, which is also stored in :attr:`residual`.

        """
        self.bind(elem_geom, cur_vol_vars, primary_variables, prev_vol_vars)

        # Fresh buffer, a failing evaluation does not touch the last result
        residual = np.zeros((elem_geom.num_scv, self.num_eq))
        self.eval_fluxes(residual)
        self.eval_volume_terms(residual, dt)
        self.eval_boundary(residual)

        self.residual = residual
        return residual

    def eval_fluxes(self, residual: np.ndarray) -> None:
        """Adds the fluxes over all interior faces of the bound element."""
        for face_idx, face in enumerate(self.elem_geom.faces):
            flux = np.zeros(self.num_eq)
            self.compute_flux(flux, face_idx)
            residual[face.i] += flux
            residual[face.j] -= flux

    def eval_volume_terms(self, residual: np.ndarray, dt: Optional[float]) -> None:
        """Adds storage and source terms of all sub-control volumes."""
        for scv in self.elem_geom.scvs:
            if dt is not None:
                if self.prev_vol_vars is None:
                    raise ValueError(
                        "Transient evaluation requires previous volume variables."
                    )
                cur = np.zeros(self.num_eq)
                prev = np.zeros(self.num_eq)
                self.compute_storage(cur, scv.local_idx, False)
                self.compute_storage(prev, scv.local_idx, True)
                residual[scv.local_idx] += (cur - prev) * scv.volume / dt

            source = np.zeros(self.num_eq)
            self.compute_source(source, scv.local_idx)
            residual[scv.local_idx] -= source * scv.volume

    def eval_boundary(self, residual: Optional[np.ndarray] = None) -> np.ndarray:
        """Evaluates the boundary conditions of the bound element.

        Neumann and outflow conditions are evaluated per boundary face, Dirichlet
        conditions per sub-control volume, after the fluxes.

        Parameters:
            residual: ``default=None``

                Residual to which the boundary contributions are applied. A zero
                residual if not given.

        Returns:
            The residual with the boundary contributions applied.

        """
        if residual is None:
            residual = np.zeros((self.elem_geom.num_scv, self.num_eq))
        if any(bc.has_neumann() for bc in self.bc_types):
            self.eval_neumann(residual)
        if any(bc.has_outflow() for bc in self.bc_types):
            self.eval_outflow(residual)
        if any(bc.has_dirichlet() for bc in self.bc_types):
            self.eval_dirichlet(residual)
        return residual

    def eval_neumann(self, residual: np.ndarray) -> None:
        for bf_idx, bface in enumerate(self.elem_geom.boundary_faces):
            bc = self.bc_types[bface.scv_idx]
            if not bc.has_neumann():
                continue
            values = np.asarray(self.problem.neumann(self.elem_geom, bf_idx))
            residual[bface.scv_idx, bc.is_neu] += values[bc.is_neu] * bface.area

    def eval_outflow(self, residual: np.ndarray) -> None:
        for bf_idx, bface in enumerate(self.elem_geom.boundary_faces):
            bc = self.bc_types[bface.scv_idx]
            if not bc.has_outflow():
                continue
            values = np.zeros(self.num_eq)
            self.compute_outflow_values(values, bf_idx)
            residual[bface.scv_idx, bc.is_out] += values[bc.is_out]

    def eval_dirichlet(self, residual: np.ndarray) -> None:
        for scv_idx, bc in enumerate(self.bc_types):
            if not bc.has_dirichlet():
                continue
            values = np.asarray(self.problem.dirichlet(self.elem_geom, scv_idx))
            pv = self.primary_variables[scv_idx]
            for eq_idx in np.flatnonzero(bc.is_dir):
                pv_idx = bc.eq_to_pv[eq_idx]
                residual[scv_idx, eq_idx] = pv[pv_idx] - values[pv_idx]

    def compute_storage(
        self, result: np.ndarray, scv_idx: int, use_prev_sol: bool
    ) -> None:
        """Stores the amount of the conserved quantities per unit volume of a
        sub-control volume in ``result``."""
        raise NotImplementedError

    def compute_flux(self, result: np.ndarray, face_idx: int) -> None:
        """Stores the fluxes over an interior face from ``i`` to ``j`` in ``result``."""
        raise NotImplementedError

    def compute_source(self, result: np.ndarray, scv_idx: int) -> None:
        """Stores the source per unit volume of a sub-control volume in ``result``."""
        result[:] = self.problem.source(self.elem_geom, scv_idx)

    def compute_outflow_values(
        self, result: np.ndarray, boundary_face_idx: int
    ) -> None:
        """Stores the fluxes over a boundary face with outflow conditions in
        ``result``."""
        raise NotImplementedError(
            f"{type(self).__name__} does not support outflow boundary conditions."
        )

    def _vol_vars(self, use_prev_sol: bool) -> Sequence:
        if use_prev_sol:
            if self.prev_vol_vars is None:
                raise ValueError("No previous volume variables bound.")
            return self.prev_vol_vars
        return self.cur_vol_vars


class OnePTwoCLocalResidual(BoxLocalResidual):
    """Local residual of the single-phase two-component model.

    Equation ``conti_eq_idx = 0`` is the total mass (or mole) balance, equation
    ``trans_eq_idx = 1`` the balance of component 1. Whether masses or moles are
    balanced is decided by the unit basis.

    Parameters:
        problem: The problem.
        basis: Unit basis of the balance equations.
        phase_idx: ``default=0``

            Index of the fluid phase in the fluid system.
        params: ``default=None``

            Model parameters, see :class:`BoxLocalResidual`.

    """

    conti_eq_idx: int = 0
    trans_eq_idx: int = 1
    comp1_idx: int = 1

    def __init__(
        self,
        problem: Problem,
        basis: Union[MassBasis, MoleBasis],
        phase_idx: int = 0,
        params: Optional[dict] = None,
    ) -> None:
        super().__init__(problem, 2, params)
        self.basis: Union[MassBasis, MoleBasis] = basis
        self.phase_idx: int = phase_idx

    def compute_storage(
        self, result: np.ndarray, scv_idx: int, use_prev_sol: bool
    ) -> None:
        vv = self._vol_vars(use_prev_sol)[scv_idx]
        fs = vv.fluid_state
        j = self.phase_idx
        result[self.conti_eq_idx] = self.basis.quantity(fs, j) * vv.porosity
        result[self.trans_eq_idx] = (
            self.basis.concentration(fs, j, self.comp1_idx) * vv.porosity
        )

    def compute_flux(self, result: np.ndarray, face_idx: int) -> None:
        flux_vars = OnePTwoCFluxVariables(
            self.problem,
            self.elem_geom,
            face_idx,
            self.cur_vol_vars,
            self.basis,
            self.phase_idx,
        )
        result[:] = 0.0
        self.compute_advective_flux(result, flux_vars)
        self.compute_diffusive_flux(result, flux_vars)
        self.compute_dispersive_flux(result, flux_vars)

    def _advective_terms(self, vv) -> tuple[float, float]:
        fs = vv.fluid_state
        j = self.phase_idx
        quantity = self.basis.quantity(fs, j)
        fraction = self.basis.fraction(fs, j, self.comp1_idx)
        mu = fs.viscosity[j]
        return quantity / mu, quantity * fraction / mu

    def compute_advective_flux(
        self, result: np.ndarray, flux_vars: OnePTwoCFluxVariables
    ) -> None:
        """Adds the upwinded advective fluxes of both equations."""
        w = self.upwind_weight
        up = self._advective_terms(self.cur_vol_vars[flux_vars.upstream_idx])
        dn = self._advective_terms(self.cur_vol_vars[flux_vars.downstream_idx])
        kmvp = flux_vars.kmvp_normal
        result[self.conti_eq_idx] += kmvp * (w * up[0] + (1.0 - w) * dn[0])
        result[self.trans_eq_idx] += kmvp * (w * up[1] + (1.0 - w) * dn[1])

    def compute_diffusive_flux(
        self,
        result: np.ndarray,
        flux_vars: Union[OnePTwoCFluxVariables, OnePTwoCBoundaryVariables],
    ) -> None:
        """Adds the Fickian flux of component 1 to the transport equation."""
        grad = flux_vars.fraction_grad[self.comp1_idx]
        result[self.trans_eq_idx] -= (
            flux_vars.porous_diff_coeff
            * flux_vars.quantity_at_ip
            * float(np.dot(grad, flux_vars.normal))
        )

    def compute_dispersive_flux(
        self,
        result: np.ndarray,
        flux_vars: Union[OnePTwoCFluxVariables, OnePTwoCBoundaryVariables],
    ) -> None:
        """Hook for a dispersive flux driven by the fraction gradient.

        No dispersion tensor is provided by the material laws, hence nothing is added.

        """

    def compute_outflow_values(
        self, result: np.ndarray, boundary_face_idx: int
    ) -> None:
        bvars = OnePTwoCBoundaryVariables(
            self.problem,
            self.elem_geom,
            boundary_face_idx,
            self.cur_vol_vars,
            self.basis,
            self.phase_idx,
        )
        # Interior state on both sides, the upwind weight has no effect
        conti, trans = self._advective_terms(self.cur_vol_vars[bvars.scv_idx])
        result[self.conti_eq_idx] += bvars.kmvp_normal * conti
        result[self.trans_eq_idx] += bvars.kmvp_normal * trans
        self.compute_diffusive_flux(result, bvars)
        self.compute_dispersive_flux(result, bvars)


class PvsLocalResidual(BoxLocalResidual):
    """Local residual of the primary-variable-switching model.

    Equation ``conti0_eq_idx + k`` is the balance of component ``k`` summed over all
    phases. If the energy module is not isothermal, the energy balance is the last
    equation.

    Parameters:
        problem: The problem.
        num_components: Number of components of the fluid system.
        basis: ``default=None``

            Unit basis of the balance equations. Moles if not given.
        energy_module: ``default=None``

            Energy module. Isothermal if not given.
        params: ``default=None``

            Model parameters, see :class:`BoxLocalResidual`.

    """

    conti0_eq_idx: int = 0

    def __init__(
        self,
        problem: Problem,
        num_components: int,
        basis: Optional[Union[MassBasis, MoleBasis]] = None,
        energy_module: Optional[IsothermalEnergyModule] = None,
        params: Optional[dict] = None,
    ) -> None:
        if energy_module is None:
            energy_module = IsothermalEnergyModule()
        super().__init__(problem, num_components + energy_module.num_eq, params)
        self.num_components: int = num_components
        self.basis: Union[MassBasis, MoleBasis] = (
            MoleBasis() if basis is None else basis
        )
        self.energy_module: IsothermalEnergyModule = energy_module

    def compute_storage(
        self, result: np.ndarray, scv_idx: int, use_prev_sol: bool
    ) -> None:
        vv = self._vol_vars(use_prev_sol)[scv_idx]
        fs = vv.fluid_state
        result[:] = 0.0
        for j in range(fs.num_phases):
            pore_fraction = vv.porosity * fs.saturation[j]
            for k in range(self.num_components):
                result[self.conti0_eq_idx + k] += (
                    pore_fraction * self.basis.concentration(fs, j, k)
                )
        self.energy_module.add_storage(result, vv)

    def compute_flux(self, result: np.ndarray, face_idx: int) -> None:
        flux_vars = PvsFluxVariables(
            self.problem, self.elem_geom, face_idx, self.cur_vol_vars
        )
        result[:] = 0.0
        self.compute_advective_flux(result, flux_vars)
        self.energy_module.add_conductive_flux(
            result, flux_vars.face, self.cur_vol_vars
        )

    def compute_advective_flux(
        self, result: np.ndarray, flux_vars: PvsFluxVariables
    ) -> None:
        """Adds the upwinded advective fluxes of all components in all phases."""
        w = self.upwind_weight
        for j in range(len(flux_vars.kmvp_normal)):
            up = self.cur_vol_vars[flux_vars.upstream_idx[j]]
            dn = self.cur_vol_vars[flux_vars.downstream_idx[j]]
            kmvp = flux_vars.kmvp_normal[j]
            for k in range(self.num_components):
                term_up = self._component_term(up, j, k)
                term_dn = self._component_term(dn, j, k)
                result[self.conti0_eq_idx + k] += kmvp * (
                    w * term_up + (1.0 - w) * term_dn
                )
            self.energy_module.add_advective_flux(result, kmvp, up, dn, j, w)

    def _component_term(self, vv, phase_idx: int, comp_idx: int) -> float:
        fs = vv.fluid_state
        return (
            self.basis.concentration(fs, phase_idx, comp_idx) * vv.mobility[phase_idx]
        )
