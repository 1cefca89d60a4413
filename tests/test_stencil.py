"""
Tests for the five-point stencil.
"""

import numpy as np

from filtration import Stencil, get_stencil


class TestGetStencil:
    """Orientation of the stencil: x grows east, y grows north."""

    def test_orientation(self):
        grid = np.arange(20, dtype=np.float64).reshape(5, 4)

        stencil = Stencil(*get_stencil(grid, 2, 1))

        assert stencil.center == grid[2, 1]
        assert stencil.north == grid[2, 2]
        assert stencil.south == grid[2, 0]
        assert stencil.west == grid[1, 1]
        assert stencil.east == grid[3, 1]

    def test_linear_field_differences(self):
        """Centered differences of a linear field recover its slopes."""
        i, j = np.meshgrid(np.arange(6), np.arange(5), indexing="ij")
        grid = (3.0 * i - 2.0 * j).astype(np.float64)

        for ci in range(1, 5):
            for cj in range(1, 4):
                center, north, south, west, east = get_stencil(grid, ci, cj)
                assert (east - west) / 2 == 3.0
                assert (north - south) / 2 == -2.0
                assert center == grid[ci, cj]
