"""
Five-point stencil access for centered differences.

Neighbours are named by compass direction, with x increasing to the east
and y increasing to the north:

    NW--N--NE
        |
    W---C---E
        |
    SW--S--SE
"""

import typing

import numba

from filtration.types import TwoDimensionalGrid


__all__ = ["Stencil", "get_stencil"]


class Stencil(typing.NamedTuple):
    """Values of a grid at a cell and its four direct neighbours."""

    center: float
    north: float
    south: float
    west: float
    east: float


@numba.njit(inline="always", cache=True)
def get_stencil(
    grid: TwoDimensionalGrid, i: int, j: int
) -> typing.Tuple[float, float, float, float, float]:
    """
    Returns the (center, north, south, west, east) values of `grid` around cell (i, j).

    No bounds checking is done. The caller guarantees that (i, j) is an interior
    cell, i.e. 1 <= i <= nx - 2 and 1 <= j <= ny - 2.

    :param grid: 2D grid indexed [i, j] -> (x, y).
    :param i: Cell index along x.
    :param j: Cell index along y.
    :return: Tuple of (center, north, south, west, east) values.
    """
    center = grid[i, j]
    north = grid[i, j + 1]
    south = grid[i, j - 1]
    west = grid[i - 1, j]
    east = grid[i + 1, j]
    return center, north, south, west, east
