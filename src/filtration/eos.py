"""
Gas-liquid equilibrium relations.

The gas phase is an ideal gas,

    ρ₁ = (M / R T) ⋅P

and the liquid follows a logarithmic compressibility relation,

    ρ₂ = ρ₀ / (1 - β ⋅log₁₀((P_ref + P) / (P_ref + P_atm)))

Given the mass of each phase per unit cell volume (ρ̂₁, ρ̂₂), the cell pressure P
and gas saturation s satisfy

    s = ρ̂₁ / ρ₁(P),    ρ₂ = ρ̂₂ / (1 - s)

and P is found by bisection on the residual

    R(P) = (ρ₂ - ρ₀) / ρ₂ - β ⋅log₁₀((P_ref + P) / (P_ref + P_atm))
"""

import logging
import math
import typing

import attrs
import numba
import numpy as np

from filtration.constants import c
from filtration.types import FloatOrArray, TwoDimensionalGrid


__all__ = [
    "BisectionResult",
    "bisect",
    "compute_gas_density",
    "compute_liquid_density",
    "compute_equilibrium_residual",
    "find_equilibrium_pressure",
    "solve_equilibrium_grid",
    "EquationOfState",
]

logger = logging.getLogger(__name__)


@attrs.frozen(slots=True)
class BisectionResult:
    """Outcome of a bisection search."""

    root: float
    """Last midpoint evaluated. The root estimate, whether or not the search converged."""
    iterations: int
    """Number of iterations performed."""
    converged: bool
    """Whether the bracket shrank below tolerance or an exact zero was hit."""


def _brackets_root(left_value: float, right_value: float) -> bool:
    if math.isnan(left_value) or math.isnan(right_value):
        return False
    if left_value == 0 or right_value == 0:
        return True
    return (left_value < 0) != (right_value < 0)


def bisect(
    func: typing.Callable[[float], float],
    left: float,
    right: float,
    max_iterations: int = 50,
    tolerance: float = 1e-6,
) -> BisectionResult:
    """
    Finds a root of `func` in [left, right] by bisection.

    The search stops when the bracket width relative to the midpoint drops below
    `tolerance`, or when `func` is exactly zero at the midpoint. The half of the
    bracket kept is the one across which `func` changes sign, so both increasing
    and decreasing functions are handled.

    If `func` does not change sign over the bracket, the midpoint simply walks
    towards one end and the search reports `converged=False` once the bracket is
    narrow. The same holds after `max_iterations`. The last midpoint is returned
    either way; no exception is raised.

    :param func: Scalar function whose root is sought.
    :param left: Lower end of the bracket.
    :param right: Upper end of the bracket.
    :param max_iterations: Iteration cap.
    :param tolerance: Relative bracket width at which the search stops.
    :return: `BisectionResult` holding the root estimate.
    """
    left_value = func(left)
    bracketed = _brackets_root(left_value, func(right))
    mid = left
    for iteration in range(1, max_iterations + 1):
        mid = left + (right - left) / 2
        if abs(right - left) < tolerance * abs(mid):
            return BisectionResult(root=mid, iterations=iteration, converged=bracketed)

        value = func(mid)
        if value == 0:
            return BisectionResult(root=mid, iterations=iteration, converged=True)
        if math.isnan(value):
            return BisectionResult(root=mid, iterations=iteration, converged=False)

        if (value < 0) == (left_value < 0):
            left, left_value = mid, value
        else:
            right = mid
    return BisectionResult(root=mid, iterations=max_iterations, converged=False)


@numba.njit(cache=True)
def compute_gas_density(
    pressure: FloatOrArray, molar_mass: float, gas_constant: float, temperature: float
) -> FloatOrArray:
    """
    Ideal gas density, ρ₁ = (M / R T) ⋅P.

    :param pressure: Pressure (Pa).
    :param molar_mass: Molar mass of the gas (kg/mol).
    :param gas_constant: Universal gas constant (J/(mol·K)).
    :param temperature: Temperature (K).
    :return: Gas density (kg/m³).
    """
    return molar_mass / gas_constant / temperature * pressure


@numba.njit(cache=True)
def compute_liquid_density(
    pressure: FloatOrArray,
    reference_density: float,
    compressibility_coefficient: float,
    reference_pressure: float,
    atmospheric_pressure: float,
) -> FloatOrArray:
    """
    Liquid density from the logarithmic compressibility relation.

    :param pressure: Pressure (Pa).
    :param reference_density: Liquid density at atmospheric pressure, ρ₀ (kg/m³).
    :param compressibility_coefficient: Compressibility coefficient β.
    :param reference_pressure: High reference pressure P_ref (Pa).
    :param atmospheric_pressure: Atmospheric pressure P_atm (Pa).
    :return: Liquid density (kg/m³).
    """
    return reference_density / (
        1
        - compressibility_coefficient
        * np.log10((reference_pressure + pressure) / (reference_pressure + atmospheric_pressure))
    )


@numba.njit(cache=True, error_model="numpy")
def compute_equilibrium_residual(
    pressure: float,
    gas_mass_density: float,
    liquid_mass_density: float,
    molar_mass: float,
    gas_constant: float,
    temperature: float,
    reference_density: float,
    compressibility_coefficient: float,
    reference_pressure: float,
    atmospheric_pressure: float,
) -> float:
    """
    Residual of the liquid compressibility relation at `pressure`.

    Division by zero (s = 1) and logarithms of non-positive numbers yield inf/NaN
    instead of raising.
    """
    gas_density = molar_mass / gas_constant / temperature * pressure
    gas_saturation = gas_mass_density / gas_density
    liquid_density = liquid_mass_density / (1 - gas_saturation)
    return (liquid_density - reference_density) / liquid_density - (
        compressibility_coefficient
        * np.log10((reference_pressure + pressure) / (reference_pressure + atmospheric_pressure))
    )


@numba.njit(cache=True, error_model="numpy")
def find_equilibrium_pressure(
    gas_mass_density: float,
    liquid_mass_density: float,
    left: float,
    right: float,
    max_iterations: int,
    tolerance: float,
    molar_mass: float,
    gas_constant: float,
    temperature: float,
    reference_density: float,
    compressibility_coefficient: float,
    reference_pressure: float,
    atmospheric_pressure: float,
) -> typing.Tuple[float, float, bool]:
    """
    Bisection on the equilibrium residual of a single cell.

    Follows the same stopping rules as `bisect`, compiled for use inside grid sweeps.

    :return: Tuple of (pressure, gas saturation, converged).
    """
    left_value = compute_equilibrium_residual(
        left,
        gas_mass_density,
        liquid_mass_density,
        molar_mass,
        gas_constant,
        temperature,
        reference_density,
        compressibility_coefficient,
        reference_pressure,
        atmospheric_pressure,
    )
    right_value = compute_equilibrium_residual(
        right,
        gas_mass_density,
        liquid_mass_density,
        molar_mass,
        gas_constant,
        temperature,
        reference_density,
        compressibility_coefficient,
        reference_pressure,
        atmospheric_pressure,
    )
    if np.isnan(left_value) or np.isnan(right_value):
        bracketed = False
    elif left_value == 0 or right_value == 0:
        bracketed = True
    else:
        bracketed = (left_value < 0) != (right_value < 0)

    mid = left
    converged = False
    for _ in range(max_iterations):
        mid = left + (right - left) / 2
        if abs(right - left) < tolerance * abs(mid):
            converged = bracketed
            break

        value = compute_equilibrium_residual(
            mid,
            gas_mass_density,
            liquid_mass_density,
            molar_mass,
            gas_constant,
            temperature,
            reference_density,
            compressibility_coefficient,
            reference_pressure,
            atmospheric_pressure,
        )
        if value == 0:
            converged = True
            break
        if np.isnan(value):
            break

        if (value < 0) == (left_value < 0):
            left = mid
            left_value = value
        else:
            right = mid

    gas_density = molar_mass / gas_constant / temperature * mid
    return mid, gas_mass_density / gas_density, converged


@numba.njit(cache=True, error_model="numpy")
def solve_equilibrium_grid(
    gas_mass_density_grid: TwoDimensionalGrid,
    liquid_mass_density_grid: TwoDimensionalGrid,
    pressure_grid: TwoDimensionalGrid,
    saturation_grid: TwoDimensionalGrid,
    left: float,
    right: float,
    max_iterations: int,
    tolerance: float,
    molar_mass: float,
    gas_constant: float,
    temperature: float,
    reference_density: float,
    compressibility_coefficient: float,
    reference_pressure: float,
    atmospheric_pressure: float,
) -> int:
    """
    Solves the equilibrium for every cell of the grid, boundary cells included.

    Writes pressure and gas saturation in place.

    :return: Number of cells for which bisection did not converge.
    """
    cell_count_x, cell_count_y = pressure_grid.shape
    non_converged = 0
    for j in range(cell_count_y):
        for i in range(cell_count_x):
            pressure, saturation, converged = find_equilibrium_pressure(
                gas_mass_density_grid[i, j],
                liquid_mass_density_grid[i, j],
                left,
                right,
                max_iterations,
                tolerance,
                molar_mass,
                gas_constant,
                temperature,
                reference_density,
                compressibility_coefficient,
                reference_pressure,
                atmospheric_pressure,
            )
            pressure_grid[i, j] = pressure
            saturation_grid[i, j] = saturation
            if not converged:
                non_converged += 1
    return non_converged


@attrs.frozen(slots=True)
class EquationOfState:
    """
    Pressure-saturation equilibrium between an ideal gas and a weakly compressible liquid.

    Parameters default to the values of the active `Constants`.
    """

    molar_mass: float = attrs.field(factory=lambda: c.GAS_MOLAR_MASS)
    """Molar mass of the gas, M (kg/mol)."""
    gas_constant: float = attrs.field(factory=lambda: c.GAS_CONSTANT)
    """Universal gas constant, R (J/(mol·K))."""
    temperature: float = attrs.field(factory=lambda: c.TEMPERATURE)
    """System temperature, T (K)."""
    reference_density: float = attrs.field(
        factory=lambda: c.LIQUID_REFERENCE_DENSITY
    )
    """Liquid density at atmospheric pressure, ρ₀ (kg/m³)."""
    compressibility_coefficient: float = attrs.field(
        factory=lambda: c.LIQUID_COMPRESSIBILITY_COEFFICIENT
    )
    """Logarithmic compressibility coefficient, β."""
    reference_pressure: float = attrs.field(
        factory=lambda: c.LIQUID_REFERENCE_PRESSURE
    )
    """High reference pressure of the liquid relation, P_ref (Pa)."""
    atmospheric_pressure: float = attrs.field(factory=lambda: c.ATMOSPHERIC_PRESSURE)
    """Atmospheric pressure, P_atm (Pa)."""

    @property
    def _gas_parameters(self) -> typing.Tuple[float, float, float]:
        return (self.molar_mass, self.gas_constant, self.temperature)

    @property
    def _liquid_parameters(self) -> typing.Tuple[float, float, float, float]:
        return (
            self.reference_density,
            self.compressibility_coefficient,
            self.reference_pressure,
            self.atmospheric_pressure,
        )

    def gas_density(self, pressure: FloatOrArray) -> FloatOrArray:
        """Ideal gas density at `pressure` (kg/m³)."""
        return compute_gas_density(pressure, *self._gas_parameters)

    def liquid_density(self, pressure: FloatOrArray) -> FloatOrArray:
        """Liquid density at `pressure` (kg/m³)."""
        return compute_liquid_density(pressure, *self._liquid_parameters)

    def liquid_mass_density(
        self, pressure: FloatOrArray, saturation: FloatOrArray
    ) -> FloatOrArray:
        """
        Liquid mass per unit cell volume, ρ̂₂ = (1 - s) ⋅ρ₂(P).

        Inverse of the equilibrium relation for the liquid phase. Used to set up
        initial conditions.

        :param pressure: Pressure (Pa).
        :param saturation: Gas saturation (fraction).
        """
        return (1 - saturation) * self.liquid_density(pressure)

    def residual(
        self, pressure: float, gas_mass_density: float, liquid_mass_density: float
    ) -> float:
        """Equilibrium residual R(P) for the given phase mass densities."""
        return compute_equilibrium_residual(
            pressure,
            gas_mass_density,
            liquid_mass_density,
            *self._gas_parameters,
            *self._liquid_parameters,
        )

    def find_pressure(
        self,
        gas_mass_density: float,
        liquid_mass_density: float,
        cell_volume: typing.Optional[float] = None,
        left: typing.Optional[float] = None,
        right: typing.Optional[float] = None,
        max_iterations: typing.Optional[int] = None,
        tolerance: typing.Optional[float] = None,
    ) -> typing.Tuple[float, float]:
        """
        Finds the pressure and gas saturation of a cell holding the given phase masses.

        Non-convergence is silent: the last bisection midpoint is returned.
        Use `solve` to get the convergence flag.

        :param gas_mass_density: Gas mass per unit cell volume, ρ̂₁ (kg/m³).
        :param liquid_mass_density: Liquid mass per unit cell volume, ρ̂₂ (kg/m³).
        :param cell_volume: Cell volume. Mass densities are already per unit volume,
            so it does not enter the result.
        :param left: Lower end of the pressure bracket (Pa).
        :param right: Upper end of the pressure bracket (Pa).
        :param max_iterations: Bisection iteration cap.
        :param tolerance: Relative bracket width at which bisection stops.
        :return: Tuple of (pressure, gas saturation).
        """
        pressure, saturation, _ = self.solve(
            gas_mass_density,
            liquid_mass_density,
            left=left,
            right=right,
            max_iterations=max_iterations,
            tolerance=tolerance,
        )
        return pressure, saturation

    def solve(
        self,
        gas_mass_density: float,
        liquid_mass_density: float,
        left: typing.Optional[float] = None,
        right: typing.Optional[float] = None,
        max_iterations: typing.Optional[int] = None,
        tolerance: typing.Optional[float] = None,
    ) -> typing.Tuple[float, float, bool]:
        """
        Same as `find_pressure`, also returning whether bisection converged.

        :return: Tuple of (pressure, gas saturation, converged).
        """
        pressure, saturation, converged = find_equilibrium_pressure(
            float(gas_mass_density),
            float(liquid_mass_density),
            float(c.MIN_BISECTION_PRESSURE if left is None else left),
            float(c.MAX_BISECTION_PRESSURE if right is None else right),
            int(c.BISECTION_MAX_ITERATIONS if max_iterations is None else max_iterations),
            float(c.BISECTION_TOLERANCE if tolerance is None else tolerance),
            *self._gas_parameters,
            *self._liquid_parameters,
        )
        return float(pressure), float(saturation), bool(converged)

    def solve_grid(
        self,
        gas_mass_density_grid: TwoDimensionalGrid,
        liquid_mass_density_grid: TwoDimensionalGrid,
        pressure_grid: TwoDimensionalGrid,
        saturation_grid: TwoDimensionalGrid,
        left: float,
        right: float,
        max_iterations: int,
        tolerance: float,
    ) -> int:
        """
        Solves the equilibrium on every cell, writing pressure and saturation in place.

        :return: Number of cells for which bisection did not converge.
        """
        return solve_equilibrium_grid(
            gas_mass_density_grid,
            liquid_mass_density_grid,
            pressure_grid,
            saturation_grid,
            float(left),
            float(right),
            int(max_iterations),
            float(tolerance),
            *self._gas_parameters,
            *self._liquid_parameters,
        )
