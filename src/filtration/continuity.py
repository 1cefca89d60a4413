"""Explicit centered update of the phase continuity equation."""

import numba

from filtration.errors import ComputationError
from filtration.stencil import get_stencil
from filtration.types import TwoDimensionalGrid


__all__ = ["evolve_density"]


def evolve_density(
    next_density_grid: TwoDimensionalGrid,
    density_grid: TwoDimensionalGrid,
    velocity_x_grid: TwoDimensionalGrid,
    velocity_y_grid: TwoDimensionalGrid,
    porosity: float,
    cell_size_x: float,
    cell_size_y: float,
    time_step_size: float,
) -> None:
    """
    Advances the mass density of one phase by one time step.

    Discretizes the continuity equation

        φ ⋅∂ρ/∂t + div(ρv⃗) = 0

    expanded with the product rule,

        ∂ρ/∂t = -(u ∂ρ/∂x + v ∂ρ/∂y + ρ ∂u/∂x + ρ ∂v/∂y) / φ

    using centered differences in space and a forward Euler step in time.
    The scheme is not upwinded and performs no CFL check, so it is only
    conditionally stable: keeping `time_step_size` small enough is the caller's job.

    Only interior cells of `next_density_grid` are written. Boundary cells keep
    whatever value they hold.

    :param next_density_grid: Grid receiving the updated density (modified in place).
    :param density_grid: Density at the current time step.
    :param velocity_x_grid: x-velocity (u) at the current time step.
    :param velocity_y_grid: y-velocity (v) at the current time step.
    :param porosity: Porosity of the medium (φ).
    :param cell_size_x: Grid spacing along x (Δx).
    :param cell_size_y: Grid spacing along y (Δy).
    :param time_step_size: Time step size (Δt).
    """
    cell_count_x, cell_count_y = density_grid.shape
    if cell_count_x < 3 or cell_count_y < 3:
        raise ComputationError(
            f"Grid of shape {density_grid.shape} has no interior cells to update."
        )
    _evolve_density(
        next_density_grid,
        density_grid,
        velocity_x_grid,
        velocity_y_grid,
        porosity,
        cell_size_x,
        cell_size_y,
        time_step_size,
    )


@numba.njit(cache=True)
def _evolve_density(
    next_density_grid: TwoDimensionalGrid,
    density_grid: TwoDimensionalGrid,
    velocity_x_grid: TwoDimensionalGrid,
    velocity_y_grid: TwoDimensionalGrid,
    porosity: float,
    cell_size_x: float,
    cell_size_y: float,
    time_step_size: float,
) -> None:
    cell_count_x, cell_count_y = density_grid.shape
    for j in range(1, cell_count_y - 1):
        for i in range(1, cell_count_x - 1):
            ρc, ρn, ρs, ρw, ρe = get_stencil(density_grid, i, j)
            uc, un, us, uw, ue = get_stencil(velocity_x_grid, i, j)
            vc, vn, vs, vw, ve = get_stencil(velocity_y_grid, i, j)

            next_density_grid[i, j] = ρc - time_step_size / porosity * (
                uc * (ρe - ρw) / (2 * cell_size_x)
                + vc * (ρn - ρs) / (2 * cell_size_y)
                + ρc * (ue - uw) / (2 * cell_size_x)
                + ρc * (vn - vs) / (2 * cell_size_y)
            )
