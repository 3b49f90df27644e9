"""This module contains the interface of fluid systems and two fluid systems shipped
with PoreBox.

A fluid system is a stateless collection of constitutive relations of a fluid mixture:
Given a :class:`~porebox.compositional.fluid_state.CompositionalFluidState`, it computes
densities, viscosities, enthalpies, fugacity coefficients and diffusion coefficients of
the phases. Values which are expensive and only depend on pressure and temperature can
be stored in a :class:`ParameterCache`, which is owned by the caller (usually the
volume variables of a control volume).

1. :class:`H2ON2FluidSystem`: A liquid and a gas phase of water and nitrogen, modelled
   as an ideal mixture (Raoult's law for water, Henry's law for nitrogen, ideal gas).
2. :class:`TracerFluidSystem`: A single liquid phase consisting of a solvent and a
   dissolved tracer, whose density depends linearly on the tracer mass fraction.

"""

from __future__ import annotations

import abc
from typing import Callable

import numpy as np

from ._core import R_IDEAL_MOL, T_REF, PhysicalState
from .fluid_state import CompositionalFluidState

__all__ = [
    "ParameterCache",
    "FluidSystem",
    "H2ON2FluidSystem",
    "TracerFluidSystem",
]


class ParameterCache:
    """Storage for quantities of a fluid system which depend only on the pressure and
    temperature of a phase.

    Cached values of a phase are invalidated as soon as :meth:`update_phase` detects a
    change in pressure or temperature of that phase.

    Parameters:
        num_phases: Number of phases of the fluid system.

    """

    def __init__(self, num_phases: int) -> None:
        self._pressure: np.ndarray = np.full(num_phases, np.nan)
        self._temperature: np.ndarray = np.full(num_phases, np.nan)
        self._values: list[dict[str, float]] = [dict() for _ in range(num_phases)]

    def update_phase(
        self, fluid_state: CompositionalFluidState, phase_idx: int
    ) -> None:
        """Invalidates the cached values of a phase if its pressure or temperature
        changed since the last update."""
        p = fluid_state.pressure[phase_idx]
        T = fluid_state.temperature[phase_idx]
        if p != self._pressure[phase_idx] or T != self._temperature[phase_idx]:
            self._pressure[phase_idx] = p
            self._temperature[phase_idx] = T
            self._values[phase_idx].clear()

    def update_all(self, fluid_state: CompositionalFluidState) -> None:
        """Calls :meth:`update_phase` for all phases."""
        for phase_idx in range(len(self._values)):
            self.update_phase(fluid_state, phase_idx)

    def lookup(self, phase_idx: int, key: str, compute: Callable[[], float]) -> float:
        """Returns a cached value, computing and storing it if it is not present.

        Parameters:
            phase_idx: Phase to which the value belongs.
            key: Name of the value.
            compute: Callable computing the value, called only on cache misses.

        """
        values = self._values[phase_idx]
        if key not in values:
            values[key] = float(compute())
        return values[key]


class FluidSystem(abc.ABC):
    """Abstract base class of fluid systems.

    Derived classes must declare the number of phases and components and implement the
    constitutive relations. Enthalpies, diffusion coefficients and thermal
    conductivities are only required by some models and raise a
    :obj:`NotImplementedError` by default.

    """

    num_phases: int = 0
    """Number of phases of the fluid system."""

    num_components: int = 0
    """Number of components of the fluid system."""

    phase_names: tuple[str, ...] = ()
    """Names of the phases, in the order of the phase indices."""

    component_names: tuple[str, ...] = ()
    """Names of the components, in the order of the component indices."""

    def phase_state(self, phase_idx: int) -> PhysicalState:
        """Physical state of a phase. Defaults to liquid-like."""
        return PhysicalState.liquid

    @abc.abstractmethod
    def molar_mass(self, comp_idx: int) -> float:
        """Molar mass of a component in ``[kg / mol]``."""

    def is_ideal_mixture(self, phase_idx: int) -> bool:
        """Indicates whether the fugacity coefficients of a phase are independent of
        its composition.

        If so, the constraint solvers do not need to iterate. Defaults to False.

        """
        return False

    @abc.abstractmethod
    def fugacity_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_idx: int,
    ) -> float:
        """Fugacity coefficient :math:`\\phi` of a component in a phase."""

    @abc.abstractmethod
    def density(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        """Mass density of a phase in ``[kg / m^3]``."""

    @abc.abstractmethod
    def viscosity(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        """Dynamic viscosity of a phase in ``[Pa s]``."""

    def enthalpy(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        """Specific enthalpy of a phase in ``[J / kg]``."""
        raise NotImplementedError(
            f"Fluid system {type(self).__name__} does not implement enthalpy()."
        )

    def binary_diffusion_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_i: int,
        comp_j: int,
    ) -> float:
        """Binary diffusion coefficient of two components in a phase in
        ``[m^2 / s]``."""
        raise NotImplementedError(
            f"Fluid system {type(self).__name__} does not implement"
            + " binary_diffusion_coefficient()."
        )


class H2ON2FluidSystem(FluidSystem):
    """A two-phase fluid system of water and nitrogen.

    The liquid phase (index 0) is an ideal solution: Water follows Raoult's law, with
    fugacity coefficient :math:`p_{sat}(T) / p`, and nitrogen follows Henry's law,
    with fugacity coefficient :math:`H(T) / p`. The gas phase (index 1) is an ideal gas
    mixture with fugacity coefficients equal to 1.

    Given the composition of the liquid, the equilibrium gas composition hence follows
    in closed form: :math:`y_{H2O} = x_{H2O} p_{sat} / p`,
    :math:`y_{N2} = x_{N2} H / p`.

    Parameters:
        liquid_viscosity: ``default=1e-3``

            Constant dynamic viscosity of the liquid.
        gas_viscosity: ``default=1.8e-5``

            Constant dynamic viscosity of the gas.
        liquid_compressibility: ``default=4.5e-10``

            Isothermal compressibility of pure water in ``[1 / Pa]``.

    """

    num_phases = 2
    num_components = 2
    phase_names = ("liquid", "gas")
    component_names = ("H2O", "N2")

    liquid_phase_idx: int = 0
    gas_phase_idx: int = 1
    h2o_idx: int = 0
    n2_idx: int = 1

    _molar_masses = (18.01528e-3, 28.0134e-3)

    rho_water_ref: float = 998.2
    """Density of pure water at :attr:`p_water_ref`, in ``[kg / m^3]``."""

    p_water_ref: float = 1e5

    henry_ref: float = 8.65e9
    """Henry coefficient of nitrogen in water at 298.15 K, in ``[Pa]``."""

    henry_temperature_coefficient: float = 1300.0
    """Van't Hoff coefficient of the Henry coefficient, in ``[K]``."""

    cp_liquid: float = 4184.0
    cp_vapor: float = 1996.0
    cp_nitrogen: float = 1040.0
    latent_heat: float = 2.501e6
    """Heat capacities in ``[J / kg K]`` and latent heat of water in ``[J / kg]``."""

    def __init__(
        self,
        liquid_viscosity: float = 1e-3,
        gas_viscosity: float = 1.8e-5,
        liquid_compressibility: float = 4.5e-10,
    ) -> None:
        self.liquid_viscosity: float = liquid_viscosity
        self.gas_viscosity: float = gas_viscosity
        self.liquid_compressibility: float = liquid_compressibility

    def phase_state(self, phase_idx: int) -> PhysicalState:
        if phase_idx == self.gas_phase_idx:
            return PhysicalState.gas
        return PhysicalState.liquid

    def molar_mass(self, comp_idx: int) -> float:
        return self._molar_masses[comp_idx]

    def is_ideal_mixture(self, phase_idx: int) -> bool:
        return True

    @staticmethod
    def vapor_pressure(T: float) -> float:
        """Saturation vapor pressure of water in ``[Pa]`` (Magnus-Tetens
        correlation)."""
        return 610.78 * np.exp(17.27 * (T - 273.15) / (T - 35.85))

    def henry(self, T: float) -> float:
        """Henry coefficient of nitrogen in water in ``[Pa]``."""
        return self.henry_ref * np.exp(
            -self.henry_temperature_coefficient * (1.0 / T - 1.0 / 298.15)
        )

    def fugacity_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_idx: int,
    ) -> float:
        if self.phase_state(phase_idx) == PhysicalState.gas:
            return 1.0

        T = fluid_state.temperature[phase_idx]
        p = fluid_state.pressure[phase_idx]
        if comp_idx == self.h2o_idx:
            p_sat = param_cache.lookup(
                phase_idx, "vapor_pressure", lambda: self.vapor_pressure(T)
            )
            return p_sat / p
        H = param_cache.lookup(phase_idx, "henry", lambda: self.henry(T))
        return H / p

    def density(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        p = fluid_state.pressure[phase_idx]
        M = fluid_state.average_molar_mass(phase_idx)
        if self.phase_state(phase_idx) == PhysicalState.gas:
            T = fluid_state.temperature[phase_idx]
            return p * M / (R_IDEAL_MOL * T)

        # The molar density of the liquid is the one of pure water. The dissolved
        # nitrogen changes only the mean molar mass.
        rho_w = self.rho_water_ref * np.exp(
            self.liquid_compressibility * (p - self.p_water_ref)
        )
        return rho_w / self._molar_masses[self.h2o_idx] * M

    def viscosity(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        if self.phase_state(phase_idx) == PhysicalState.gas:
            return self.gas_viscosity
        return self.liquid_viscosity

    def enthalpy(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        dT = fluid_state.temperature[phase_idx] - T_REF
        if self.phase_state(phase_idx) == PhysicalState.liquid:
            return self.cp_liquid * dT

        X_h2o = fluid_state.mass_fraction(phase_idx, self.h2o_idx)
        X_n2 = fluid_state.mass_fraction(phase_idx, self.n2_idx)
        h_vapor = self.latent_heat + self.cp_vapor * dT
        return X_h2o * h_vapor + X_n2 * self.cp_nitrogen * dT

    def binary_diffusion_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_i: int,
        comp_j: int,
    ) -> float:
        if self.phase_state(phase_idx) == PhysicalState.liquid:
            return 2.0e-9

        T = fluid_state.temperature[phase_idx]
        p = fluid_state.pressure[phase_idx]
        # Fuller-type scaling of a reference value at 273.15 K and 1 bar
        return 2.15e-5 * (T / 273.15) ** 1.75 * (1e5 / p)


class TracerFluidSystem(FluidSystem):
    """A single liquid phase consisting of a solvent (component 0) and a dissolved
    tracer (component 1).

    The density depends linearly on the tracer mass fraction :math:`X`,
    :math:`\\rho = \\rho_0 (1 + \\beta X)`, all other properties are constant.

    Parameters:
        molar_masses: ``default=(18.01528e-3, 58.44e-3)``

            Molar masses of solvent and tracer. The defaults are water and NaCl.
        reference_density: ``default=1000.0``

            Density of the pure solvent.
        density_coefficient: ``default=0.0``

            Coefficient :math:`\\beta` of the tracer mass fraction in the density.
        viscosity: ``default=1e-3``

            Dynamic viscosity.
        diffusion_coefficient: ``default=1e-9``

            Binary diffusion coefficient of the tracer in the solvent.

    """

    num_phases = 1
    num_components = 2
    phase_names = ("liquid",)
    component_names = ("solvent", "tracer")

    heat_capacity: float = 4184.0

    def __init__(
        self,
        molar_masses: tuple[float, float] = (18.01528e-3, 58.44e-3),
        reference_density: float = 1000.0,
        density_coefficient: float = 0.0,
        viscosity: float = 1e-3,
        diffusion_coefficient: float = 1e-9,
    ) -> None:
        self._molar_masses: tuple[float, float] = molar_masses
        self.reference_density: float = reference_density
        self.density_coefficient: float = density_coefficient
        self.constant_viscosity: float = viscosity
        self.diffusion_coefficient: float = diffusion_coefficient

    def molar_mass(self, comp_idx: int) -> float:
        return self._molar_masses[comp_idx]

    def is_ideal_mixture(self, phase_idx: int) -> bool:
        return True

    def fugacity_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_idx: int,
    ) -> float:
        return 1.0

    def density(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        X = fluid_state.mass_fraction(phase_idx, 1)
        return self.reference_density * (1.0 + self.density_coefficient * X)

    def viscosity(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        return self.constant_viscosity

    def enthalpy(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
    ) -> float:
        return self.heat_capacity * (fluid_state.temperature[phase_idx] - T_REF)

    def binary_diffusion_coefficient(
        self,
        fluid_state: CompositionalFluidState,
        param_cache: ParameterCache,
        phase_idx: int,
        comp_i: int,
        comp_j: int,
    ) -> float:
        return self.diffusion_coefficient
