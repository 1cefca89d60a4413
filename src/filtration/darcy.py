"""Phase velocities from Darcy's law."""

import typing

import numba
import numpy as np

from filtration.errors import ComputationError
from filtration.stencil import get_stencil
from filtration.types import (
    FloatOrArray,
    FluidPhase,
    RelativeMobilityFunc,
    TwoDimensionalGrid,
)


__all__ = [
    "gas_relative_mobility",
    "liquid_relative_mobility",
    "get_relative_mobility_func",
    "get_mobility_saturation_grid",
    "compute_relative_mobility_grid",
    "compute_darcy_velocity",
]


def gas_relative_mobility(saturation: FloatOrArray) -> FloatOrArray:
    """Relative mobility of the gas phase, f₁(s) = s²."""
    return saturation**2


def liquid_relative_mobility(saturation: FloatOrArray) -> FloatOrArray:
    """Relative mobility of the liquid phase, f₂(s) = (1 - s)²."""
    return (1 - saturation) ** 2


_RELATIVE_MOBILITY_FUNCS = {
    FluidPhase.GAS: gas_relative_mobility,
    FluidPhase.LIQUID: liquid_relative_mobility,
}


def get_relative_mobility_func(phase: FluidPhase) -> RelativeMobilityFunc:
    """Returns the relative mobility function of `phase`."""
    return _RELATIVE_MOBILITY_FUNCS[phase]


def get_mobility_saturation_grid(
    saturation_grid: TwoDimensionalGrid, phase: FluidPhase
) -> TwoDimensionalGrid:
    """
    Returns the saturation argument handed to the relative mobility function of `phase`.

    The gas phase receives the gas saturation `s` as is. The liquid phase receives
    `s - 1` (not `1 - s`). Since f₂(s - 1) = (2 - s)², this is not the same
    as evaluating f₂ at the liquid saturation.
    """
    if phase is FluidPhase.GAS:
        return saturation_grid
    return saturation_grid - 1


def compute_relative_mobility_grid(
    saturation_grid: TwoDimensionalGrid,
    phase: FluidPhase,
    relative_mobility_func: typing.Optional[RelativeMobilityFunc] = None,
) -> TwoDimensionalGrid:
    """
    Evaluates the relative mobility of `phase` over the whole grid.

    :param saturation_grid: Gas saturation grid.
    :param phase: The phase whose mobility is computed.
    :param relative_mobility_func: Custom mobility function. Defaults to the phase's own.
    :return: Grid of relative mobilities, same shape and dtype as `saturation_grid`.
    """
    func = relative_mobility_func or get_relative_mobility_func(phase)
    mobility_grid = func(get_mobility_saturation_grid(saturation_grid, phase))
    return np.asarray(mobility_grid, dtype=saturation_grid.dtype)


def compute_darcy_velocity(
    next_velocity_x_grid: TwoDimensionalGrid,
    next_velocity_y_grid: TwoDimensionalGrid,
    pressure_grid: TwoDimensionalGrid,
    relative_mobility_grid: TwoDimensionalGrid,
    permeability: float,
    viscosity: float,
    cell_size_x: float,
    cell_size_y: float,
) -> None:
    """
    Computes the velocity of one phase on interior cells using Darcy's law

        v⃗ = -(K / μ) ⋅f(s) ⋅∇P

    with centered pressure differences. Boundary cells are left untouched.

    :param next_velocity_x_grid: Grid receiving the x-velocity (modified in place).
    :param next_velocity_y_grid: Grid receiving the y-velocity (modified in place).
    :param pressure_grid: Pressure grid, with ghost cells already set.
    :param relative_mobility_grid: Relative mobility f(s) of the phase per cell.
    :param permeability: Absolute permeability (K).
    :param viscosity: Dynamic viscosity of the phase (μ).
    :param cell_size_x: Grid spacing along x (Δx).
    :param cell_size_y: Grid spacing along y (Δy).
    """
    cell_count_x, cell_count_y = pressure_grid.shape
    if cell_count_x < 3 or cell_count_y < 3:
        raise ComputationError(
            f"Grid of shape {pressure_grid.shape} has no interior cells to update."
        )
    _compute_darcy_velocity(
        next_velocity_x_grid,
        next_velocity_y_grid,
        pressure_grid,
        relative_mobility_grid,
        permeability,
        viscosity,
        cell_size_x,
        cell_size_y,
    )


@numba.njit(cache=True)
def _compute_darcy_velocity(
    next_velocity_x_grid: TwoDimensionalGrid,
    next_velocity_y_grid: TwoDimensionalGrid,
    pressure_grid: TwoDimensionalGrid,
    relative_mobility_grid: TwoDimensionalGrid,
    permeability: float,
    viscosity: float,
    cell_size_x: float,
    cell_size_y: float,
) -> None:
    cell_count_x, cell_count_y = pressure_grid.shape
    for j in range(1, cell_count_y - 1):
        for i in range(1, cell_count_x - 1):
            Pc, Pn, Ps, Pw, Pe = get_stencil(pressure_grid, i, j)
            mobility = permeability / viscosity * relative_mobility_grid[i, j]

            next_velocity_x_grid[i, j] = -mobility * (Pe - Pw) / (2 * cell_size_x)
            next_velocity_y_grid[i, j] = -mobility * (Pn - Ps) / (2 * cell_size_y)
