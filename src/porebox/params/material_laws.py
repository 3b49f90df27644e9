"""Material laws relating the saturations of a fluid state to capillary pressures and
relative permeabilities.

A material law is a stateless strategy object. Its parameters are given per control
volume by the problem (see
:meth:`~porebox.models.problem.Problem.material_law_params`), such that heterogeneous
media can be represented using one law with different parameter objects.

The capillary pressures are returned per phase. Only differences between capillary
pressures are meaningful: The pressure of phase ``j`` is
``p_j = p_0 + (pc_j - pc_0)``. The two-phase laws assign zero to the wetting phase and
the capillary pressure ``p_n - p_w`` to the non-wetting phase.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from porebox.compositional.fluid_state import CompositionalFluidState

__all__ = [
    "MaterialLaw",
    "NullMaterialLaw",
    "TwoPhaseParams",
    "LinearMaterialParams",
    "LinearMaterial",
    "BrooksCoreyParams",
    "BrooksCorey",
    "VanGenuchtenParams",
    "VanGenuchten",
]


class MaterialLaw:
    """Base class of material laws.

    Both methods raise a :obj:`NotImplementedError`, signalling a set-up error at the
    first evaluation if a model requires a material law which was not provided.

    """

    def capillary_pressures(
        self, fluid_state: CompositionalFluidState, params: Any
    ) -> np.ndarray:
        """Capillary pressure of every phase in ``[Pa]``, ``shape=(num_phases,)``."""
        raise NotImplementedError(
            f"Material law {type(self).__name__} does not implement"
            + " capillary_pressures()."
        )

    def relative_permeabilities(
        self, fluid_state: CompositionalFluidState, params: Any
    ) -> np.ndarray:
        """Relative permeability of every phase, ``shape=(num_phases,)``."""
        raise NotImplementedError(
            f"Material law {type(self).__name__} does not implement"
            + " relative_permeabilities()."
        )


class NullMaterialLaw(MaterialLaw):
    """Material law without capillarity, and relative permeabilities equal to the
    saturations (clipped to ``[0, 1]``).

    Applicable to any number of phases. The parameters are ignored.

    """

    def capillary_pressures(
        self, fluid_state: CompositionalFluidState, params: Any = None
    ) -> np.ndarray:
        return np.zeros(fluid_state.num_phases)

    def relative_permeabilities(
        self, fluid_state: CompositionalFluidState, params: Any = None
    ) -> np.ndarray:
        return np.clip(fluid_state.saturation, 0.0, 1.0)


@dataclass(frozen=True, kw_only=True)
class TwoPhaseParams:
    """Parameters shared by all two-phase material laws."""

    wetting_phase_idx: int = 0
    """Index of the wetting phase. The other phase of the two is non-wetting."""

    residual_saturation_w: float = 0.0
    """Residual saturation of the wetting phase."""

    residual_saturation_n: float = 0.0
    """Residual saturation of the non-wetting phase."""

    @property
    def nonwetting_phase_idx(self) -> int:
        return 1 - self.wetting_phase_idx


@dataclass(frozen=True, kw_only=True)
class LinearMaterialParams(TwoPhaseParams):
    """Parameters of :class:`LinearMaterial`."""

    entry_pc: float = 0.0
    """Capillary pressure at full effective wetting saturation."""

    max_pc: float = 0.0
    """Capillary pressure at zero effective wetting saturation."""


@dataclass(frozen=True, kw_only=True)
class BrooksCoreyParams(TwoPhaseParams):
    """Parameters of :class:`BrooksCorey`."""

    entry_pressure: float = 1e4
    """Entry pressure :math:`p_e` in ``[Pa]``."""

    lambda_: float = 2.0
    """Pore size distribution index :math:`\\lambda`."""

    low_se_threshold: float = 0.01
    """Effective saturation below which the capillary pressure is extrapolated
    linearly."""


@dataclass(frozen=True, kw_only=True)
class VanGenuchtenParams(TwoPhaseParams):
    """Parameters of :class:`VanGenuchten`."""

    alpha: float = 1e-4
    """Shape parameter :math:`\\alpha` in ``[1 / Pa]``."""

    n: float = 2.0
    """Shape parameter :math:`n`. It holds :math:`m = 1 - 1/n`."""

    low_se_threshold: float = 0.01
    """Effective saturation below which the capillary pressure is extrapolated
    linearly."""

    @property
    def m(self) -> float:
        return 1.0 - 1.0 / self.n


class _TwoPhaseMaterialLaw(MaterialLaw):
    """Base for two-phase laws formulated in terms of the effective wetting saturation.

    Derived classes implement :meth:`pc` and its derivative :meth:`dpc_dse`, and
    :meth:`krw`, :meth:`krn`.

    """

    def effective_saturation(
        self, fluid_state: CompositionalFluidState, params: TwoPhaseParams
    ) -> float:
        """Effective wetting saturation, clipped to ``[0, 1]``."""
        if fluid_state.num_phases != 2:
            raise ValueError(
                f"{type(self).__name__} requires a two-phase fluid state,"
                + f" got {fluid_state.num_phases} phases."
            )
        sw = fluid_state.saturation[params.wetting_phase_idx]
        swr = params.residual_saturation_w
        snr = params.residual_saturation_n
        se = (sw - swr) / (1.0 - swr - snr)
        return float(np.clip(se, 0.0, 1.0))

    def pc(self, se: float, params: Any) -> float:
        raise NotImplementedError

    def dpc_dse(self, se: float, params: Any) -> float:
        raise NotImplementedError

    def krw(self, se: float, params: Any) -> float:
        raise NotImplementedError

    def krn(self, se: float, params: Any) -> float:
        raise NotImplementedError

    def _regularized_pc(self, se: float, params: Any) -> float:
        threshold = getattr(params, "low_se_threshold", 0.0)
        if se < threshold:
            # Linear extrapolation, the law itself diverges for se -> 0
            return self.pc(threshold, params) + self.dpc_dse(threshold, params) * (
                se - threshold
            )
        return self.pc(se, params)

    def capillary_pressures(
        self, fluid_state: CompositionalFluidState, params: TwoPhaseParams
    ) -> np.ndarray:
        se = self.effective_saturation(fluid_state, params)
        pc = np.zeros(2)
        pc[params.nonwetting_phase_idx] = self._regularized_pc(se, params)
        return pc

    def relative_permeabilities(
        self, fluid_state: CompositionalFluidState, params: TwoPhaseParams
    ) -> np.ndarray:
        se = self.effective_saturation(fluid_state, params)
        kr = np.zeros(2)
        kr[params.wetting_phase_idx] = self.krw(se, params)
        kr[params.nonwetting_phase_idx] = self.krn(se, params)
        return kr


class LinearMaterial(_TwoPhaseMaterialLaw):
    """Capillary pressure linear in the effective saturation, and linear relative
    permeabilities."""

    def pc(self, se: float, params: LinearMaterialParams) -> float:
        return params.entry_pc + (1.0 - se) * (params.max_pc - params.entry_pc)

    def dpc_dse(self, se: float, params: LinearMaterialParams) -> float:
        return params.entry_pc - params.max_pc

    def krw(self, se: float, params: LinearMaterialParams) -> float:
        return se

    def krn(self, se: float, params: LinearMaterialParams) -> float:
        return 1.0 - se


class BrooksCorey(_TwoPhaseMaterialLaw):
    """Brooks-Corey law with Burdine relative permeabilities.

    .. math::

        p_c = p_e S_e^{-1/\\lambda}~,~
        k_{rw} = S_e^{(2 + 3\\lambda)/\\lambda}~,~
        k_{rn} = (1 - S_e)^2 (1 - S_e^{(2 + \\lambda)/\\lambda})

    """

    def pc(self, se: float, params: BrooksCoreyParams) -> float:
        return params.entry_pressure * se ** (-1.0 / params.lambda_)

    def dpc_dse(self, se: float, params: BrooksCoreyParams) -> float:
        lam = params.lambda_
        return -params.entry_pressure / lam * se ** (-1.0 / lam - 1.0)

    def krw(self, se: float, params: BrooksCoreyParams) -> float:
        lam = params.lambda_
        return se ** ((2.0 + 3.0 * lam) / lam)

    def krn(self, se: float, params: BrooksCoreyParams) -> float:
        lam = params.lambda_
        return (1.0 - se) ** 2 * (1.0 - se ** ((2.0 + lam) / lam))


class VanGenuchten(_TwoPhaseMaterialLaw):
    """Van Genuchten law with Mualem relative permeabilities.

    .. math::

        p_c = \\frac{1}{\\alpha} (S_e^{-1/m} - 1)^{1/n}~,~
        k_{rw} = \\sqrt{S_e} (1 - (1 - S_e^{1/m})^m)^2~,~
        k_{rn} = (1 - S_e)^{1/3} (1 - S_e^{1/m})^{2m}

    """

    def pc(self, se: float, params: VanGenuchtenParams) -> float:
        m = params.m
        return (se ** (-1.0 / m) - 1.0) ** (1.0 / params.n) / params.alpha

    def dpc_dse(self, se: float, params: VanGenuchtenParams) -> float:
        m, n = params.m, params.n
        inner = se ** (-1.0 / m) - 1.0
        return (
            -1.0
            / (params.alpha * n * m)
            * inner ** (1.0 / n - 1.0)
            * se ** (-1.0 / m - 1.0)
        )

    def krw(self, se: float, params: VanGenuchtenParams) -> float:
        m = params.m
        return np.sqrt(se) * (1.0 - (1.0 - se ** (1.0 / m)) ** m) ** 2

    def krn(self, se: float, params: VanGenuchtenParams) -> float:
        m = params.m
        return (1.0 - se) ** (1.0 / 3.0) * (1.0 - se ** (1.0 / m)) ** (2.0 * m)
