"""
Tests for ghost-cell boundary conditions.
"""

import numpy as np
import pytest

from filtration import (
    Boundary,
    BoundaryEnforcer,
    BoundarySegment,
    DirichletBoundary,
    GridBoundaryCondition,
    NoFlowBoundary,
    Span,
    ValidationError,
    build_pressure_boundary_conditions,
    get_boundary_indices,
    get_neighbor_indices,
    get_split_index,
)


INLET_PRESSURE = 1e6
OUTLET_PRESSURE = 1e5


@pytest.fixture
def pressure_grid(rng):
    return rng.uniform(1e5, 1e6, size=(10, 8))


class TestIndices:
    """Ghost cell and neighbour index helpers."""

    @pytest.mark.parametrize(
        "direction, expected",
        [
            (Boundary.LEFT, (slice(1, 2), slice(0, 8))),
            (Boundary.RIGHT, (slice(-2, -1), slice(0, 8))),
            (Boundary.FRONT, (slice(0, 10), slice(1, 2))),
            (Boundary.BACK, (slice(0, 10), slice(-2, -1))),
        ],
    )
    def test_neighbor_indices(self, direction, expected):
        boundary_indices = get_boundary_indices(direction, (10, 8))
        assert get_neighbor_indices(boundary_indices, direction) == expected

    @pytest.mark.parametrize("cell_count", [4, 7, 10, 40, 41])
    def test_split_partitions_edge(self, cell_count):
        """Lower and upper halves cover the edge with no gap or overlap."""
        lower = get_boundary_indices(Boundary.FRONT, (cell_count, 5), Span.LOWER)[0]
        upper = get_boundary_indices(Boundary.FRONT, (cell_count, 5), Span.UPPER)[0]

        covered = np.zeros(cell_count, dtype=int)
        covered[lower] += 1
        covered[upper] += 1

        assert np.all(covered == 1)
        assert lower.stop == upper.start == get_split_index(cell_count)

    def test_split_index_even(self):
        assert get_split_index(40) == 20


class TestConditions:
    """Mirror and copy identities."""

    def test_no_flow_copies_neighbor(self, pressure_grid):
        indices = get_boundary_indices(Boundary.LEFT, pressure_grid.shape)

        NoFlowBoundary().apply(
            grid=pressure_grid, boundary_indices=indices, direction=Boundary.LEFT
        )

        np.testing.assert_array_equal(pressure_grid[0, :], pressure_grid[1, :])

    def test_dirichlet_mirror(self, pressure_grid):
        indices = get_boundary_indices(Boundary.BACK, pressure_grid.shape)

        DirichletBoundary(value=OUTLET_PRESSURE).apply(
            grid=pressure_grid, boundary_indices=indices, direction=Boundary.BACK
        )

        np.testing.assert_allclose(
            pressure_grid[:, -1] + pressure_grid[:, -2], 2 * OUTLET_PRESSURE, rtol=1e-15
        )

    def test_dirichlet_zero_is_antisymmetric(self, rng):
        grid = rng.uniform(-1.0, 1.0, size=(6, 6))
        indices = get_boundary_indices(Boundary.RIGHT, grid.shape)

        DirichletBoundary().apply(
            grid=grid, boundary_indices=indices, direction=Boundary.RIGHT
        )

        np.testing.assert_array_equal(grid[-1, :], -grid[-2, :])

    def test_segments_apply_in_order(self):
        grid = np.arange(16, dtype=np.float64).reshape(4, 4)
        condition = GridBoundaryCondition(
            segments=[
                BoundarySegment(Boundary.FRONT, DirichletBoundary(value=100.0)),
                BoundarySegment(Boundary.LEFT, NoFlowBoundary()),
            ]
        )

        condition.apply(grid)

        assert isinstance(condition.segments, tuple)
        # The left edge was applied last, so it owns the corner
        assert grid[0, 0] == grid[1, 0]

    def test_rejects_non_2d_grid(self):
        condition = GridBoundaryCondition(
            segments=[BoundarySegment(Boundary.LEFT, NoFlowBoundary())]
        )
        with pytest.raises(ValidationError):
            condition.apply(np.zeros((2, 4, 4)))


class TestPressureBoundaryConditions:
    """Inlet/outlet pressure conditions."""

    def test_identities(self, pressure_grid):
        nx, ny = pressure_grid.shape
        split = get_split_index(nx)

        build_pressure_boundary_conditions(INLET_PRESSURE, OUTLET_PRESSURE).apply(
            pressure_grid
        )

        # Left and right walls are applied after the inlet and outlet, so check
        # the edge rows away from the corners.
        np.testing.assert_allclose(
            pressure_grid[1:split, 0] + pressure_grid[1:split, 1],
            2 * INLET_PRESSURE,
            rtol=1e-15,
        )
        np.testing.assert_allclose(
            pressure_grid[1:-1, -1] + pressure_grid[1:-1, -2],
            2 * OUTLET_PRESSURE,
            rtol=1e-15,
        )
        np.testing.assert_array_equal(pressure_grid[0, :], pressure_grid[1, :])
        np.testing.assert_array_equal(pressure_grid[-1, :], pressure_grid[-2, :])
        np.testing.assert_array_equal(
            pressure_grid[split:, 0], pressure_grid[split:, 1]
        )

    def test_interior_untouched(self, pressure_grid):
        interior = pressure_grid[1:-1, 1:-1].copy()

        build_pressure_boundary_conditions(INLET_PRESSURE, OUTLET_PRESSURE).apply(
            pressure_grid
        )

        np.testing.assert_array_equal(pressure_grid[1:-1, 1:-1], interior)


class TestBoundaryEnforcer:
    """Enforcer of the inlet/outlet setup."""

    def test_velocity_identities(self, rng):
        enforcer = BoundaryEnforcer.from_pressures(INLET_PRESSURE, OUTLET_PRESSURE)
        velocity_x = rng.uniform(-1.0, 1.0, size=(10, 8))
        velocity_y = rng.uniform(-1.0, 1.0, size=(10, 8))
        split = get_split_index(10)

        enforcer.apply_velocity(velocity_x, velocity_y)

        np.testing.assert_array_equal(velocity_x[0, :], -velocity_x[1, :])
        np.testing.assert_array_equal(velocity_x[-1, :], -velocity_x[-2, :])
        np.testing.assert_array_equal(velocity_y[split:, 0], -velocity_y[split:, 1])
        np.testing.assert_array_equal(velocity_y[:split, 0], velocity_y[:split, 1])
        np.testing.assert_array_equal(velocity_y[:, -1], velocity_y[:, -2])

    def test_apply_pressure(self, pressure_grid):
        enforcer = BoundaryEnforcer.from_pressures(INLET_PRESSURE, OUTLET_PRESSURE)
        expected = pressure_grid.copy()
        build_pressure_boundary_conditions(INLET_PRESSURE, OUTLET_PRESSURE).apply(
            expected
        )

        enforcer.apply_pressure(pressure_grid)

        np.testing.assert_array_equal(pressure_grid, expected)
