"""Ghost-cell boundary conditions for 2D grids."""

import enum
import typing

import attrs
from typing_extensions import Self

from filtration.errors import ValidationError
from filtration.types import TwoDimensionalGrid


__all__ = [
    "Boundary",
    "Span",
    "get_split_index",
    "get_boundary_indices",
    "get_neighbor_indices",
    "BoundaryCondition",
    "NoFlowBoundary",
    "DirichletBoundary",
    "BoundarySegment",
    "GridBoundaryCondition",
    "BoundaryEnforcer",
    "build_pressure_boundary_conditions",
    "build_velocity_boundary_conditions",
]


class Boundary(enum.Enum):
    """Enumeration of the edges of a 2D grid."""

    LEFT = "left"
    """The negative X direction (x = 0, west face)."""
    RIGHT = "right"
    """The positive X direction (x = x_max, east face)."""
    FRONT = "front"
    """The negative Y direction (y = 0, south face)."""
    BACK = "back"
    """The positive Y direction (y = y_max, north face)."""


class Span(enum.Enum):
    """Portion of an edge covered by a boundary segment."""

    ALL = "all"
    """The whole edge."""
    LOWER = "lower"
    """Indices [0, n // 2) along the edge."""
    UPPER = "upper"
    """Indices [n // 2, n) along the edge."""


def get_split_index(cell_count: int) -> int:
    """
    Index splitting an edge of `cell_count` cells into its lower and upper halves.

    The lower half is [0, split) and the upper half is [split, cell_count), so the
    two partition the edge with no gap or overlap.
    """
    return cell_count // 2


def _get_span_slice(span: Span, cell_count: int) -> slice:
    split = get_split_index(cell_count)
    if span is Span.LOWER:
        return slice(0, split)
    if span is Span.UPPER:
        return slice(split, cell_count)
    return slice(0, cell_count)


def get_boundary_indices(
    direction: Boundary, grid_shape: typing.Tuple[int, int], span: Span = Span.ALL
) -> typing.Tuple[slice, slice]:
    """
    Get the indices of the ghost cells of an edge of a 2D grid.

    :param direction: The edge.
    :param grid_shape: Shape (nx, ny) of the grid, ghost cells included.
    :param span: Portion of the edge to cover.
    :return: Tuple of slice indices selecting the ghost cells.
    """
    cell_count_x, cell_count_y = grid_shape
    if direction is Boundary.LEFT:
        return (slice(0, 1), _get_span_slice(span, cell_count_y))
    if direction is Boundary.RIGHT:
        return (slice(cell_count_x - 1, cell_count_x), _get_span_slice(span, cell_count_y))
    if direction is Boundary.FRONT:
        return (_get_span_slice(span, cell_count_x), slice(0, 1))
    if direction is Boundary.BACK:
        return (_get_span_slice(span, cell_count_x), slice(cell_count_y - 1, cell_count_y))
    raise ValidationError(f"Unsupported boundary direction: {direction}")


def get_neighbor_indices(
    boundary_indices: typing.Tuple[slice, slice], direction: Boundary
) -> typing.Tuple[slice, slice]:
    """
    Get the indices of the interior cells adjacent to boundary ghost cells.

    Example usage:
    ```python
    # For left boundary (x=0 ghost cells)
    boundary_slice = (slice(0, 1), slice(None))
    neighbor_slice = get_neighbor_indices(boundary_slice, Boundary.LEFT)
    # Returns: (slice(1, 2), slice(None))  # x=1 interior cells
    ```

    :param boundary_indices: Slice indices defining the boundary region
    :param direction: The boundary direction
    :return: Tuple of slice indices for the neighbouring interior cells
    """
    neighbor_indices = list(boundary_indices)
    if direction is Boundary.LEFT:
        neighbor_indices[0] = slice(1, 2)
    elif direction is Boundary.RIGHT:
        neighbor_indices[0] = slice(-2, -1)
    elif direction is Boundary.FRONT:
        neighbor_indices[1] = slice(1, 2)
    elif direction is Boundary.BACK:
        neighbor_indices[1] = slice(-2, -1)
    return tuple(neighbor_indices)  # type: ignore[return-value]


class BoundaryCondition:
    """
    Base class for ghost-cell boundary conditions.

    Each boundary condition type must implement an 'apply' method that receives
    the full grid, the ghost cell indices and the direction of the edge.
    """

    def apply(
        self,
        *,
        grid: TwoDimensionalGrid,
        boundary_indices: typing.Tuple[slice, slice],
        direction: Boundary,
    ) -> None:
        """
        Apply the boundary condition to the specified grid region, in place.

        :param grid: The full grid (including ghost cells)
        :param boundary_indices: Slice indices defining the boundary region
        :param direction: The boundary direction
        """
        raise NotImplementedError


@attrs.frozen
class NoFlowBoundary(BoundaryCondition):
    """
    Zero normal gradient (Neumann) boundary.

    Ghost cells copy the adjacent interior cells, so the centered difference
    across the edge vanishes.

    Example usage:
    ```python
    pressure_grid = np.full((42, 42), 1e5)
    indices = get_boundary_indices(Boundary.LEFT, pressure_grid.shape)
    NoFlowBoundary().apply(grid=pressure_grid, boundary_indices=indices, direction=Boundary.LEFT)
    # pressure_grid[0, :] == pressure_grid[1, :]
    ```
    """

    def apply(
        self,
        *,
        grid: TwoDimensionalGrid,
        boundary_indices: typing.Tuple[slice, slice],
        direction: Boundary,
    ) -> None:
        neighbor_indices = get_neighbor_indices(boundary_indices, direction)
        grid[boundary_indices] = grid[neighbor_indices]


@attrs.frozen
class DirichletBoundary(BoundaryCondition):
    """
    Fixed value (Dirichlet) boundary realized by ghost-cell mirroring.

    Ghost cells are set to `2 ⋅value - interior`, so the average of a ghost cell
    and its interior neighbour, i.e. the value on the edge itself, equals `value`.
    With `value=0` this is the antisymmetric mirror `ghost = -interior`.
    """

    value: float = 0.0
    """The value enforced on the edge."""

    def apply(
        self,
        *,
        grid: TwoDimensionalGrid,
        boundary_indices: typing.Tuple[slice, slice],
        direction: Boundary,
    ) -> None:
        neighbor_indices = get_neighbor_indices(boundary_indices, direction)
        grid[boundary_indices] = 2 * self.value - grid[neighbor_indices]


@attrs.frozen
class BoundarySegment:
    """A boundary condition applied on (part of) one edge."""

    direction: Boundary
    """The edge the segment lies on."""
    condition: BoundaryCondition
    """The condition enforced on the segment."""
    span: Span = Span.ALL
    """Portion of the edge covered."""

    def apply(self, grid: TwoDimensionalGrid) -> None:
        boundary_indices = get_boundary_indices(
            self.direction, grid.shape, span=self.span  # type: ignore[arg-type]
        )
        self.condition.apply(
            grid=grid, boundary_indices=boundary_indices, direction=self.direction
        )


@attrs.frozen
class GridBoundaryCondition:
    """
    Ordered boundary segments for one grid.

    Segments are applied in order, so where two segments share a corner cell the
    later one wins.
    """

    segments: typing.Tuple[BoundarySegment, ...] = attrs.field(converter=tuple)

    def apply(self, grid: TwoDimensionalGrid) -> None:
        """Overwrite the ghost cells of `grid` in place."""
        if grid.ndim != 2:
            raise ValidationError(
                f"Boundary conditions apply to 2D grids only, got a {grid.ndim}D grid."
            )
        for segment in self.segments:
            segment.apply(grid)


def build_pressure_boundary_conditions(
    inlet_pressure: float, outlet_pressure: float
) -> GridBoundaryCondition:
    """
    Pressure boundary conditions of the inlet/outlet filtration setup.

    - P = Pin at y = 0 on the lower half of x (inlet)
    - P = Pout at y = y_max (outlet)
    - ∂P/∂x = 0 at x = 0 and x = x_max (walls)
    - ∂P/∂y = 0 at y = 0 on the upper half of x (wall)

    :param inlet_pressure: Pressure at the inlet (Pa).
    :param outlet_pressure: Pressure at the outlet (Pa).
    """
    return GridBoundaryCondition(
        segments=(
            BoundarySegment(
                Boundary.FRONT, DirichletBoundary(value=inlet_pressure), Span.LOWER
            ),
            BoundarySegment(Boundary.BACK, DirichletBoundary(value=outlet_pressure)),
            BoundarySegment(Boundary.RIGHT, NoFlowBoundary()),
            BoundarySegment(Boundary.LEFT, NoFlowBoundary()),
            BoundarySegment(Boundary.FRONT, NoFlowBoundary(), Span.UPPER),
        )
    )


def build_velocity_boundary_conditions() -> typing.Tuple[
    GridBoundaryCondition, GridBoundaryCondition
]:
    """
    Velocity boundary conditions of the inlet/outlet filtration setup.

    - u = 0 at x = 0 and x = x_max (walls)
    - v = 0 at y = 0 on the upper half of x (wall)
    - ∂v/∂y = 0 at y = y_max (outlet)
    - ∂v/∂y = 0 at y = 0 on the lower half of x (inlet)

    :return: Tuple of conditions for the x-velocity (u) and y-velocity (v) grids.
    """
    velocity_x_conditions = GridBoundaryCondition(
        segments=(
            BoundarySegment(Boundary.LEFT, DirichletBoundary(value=0.0)),
            BoundarySegment(Boundary.RIGHT, DirichletBoundary(value=0.0)),
        )
    )
    velocity_y_conditions = GridBoundaryCondition(
        segments=(
            BoundarySegment(Boundary.FRONT, DirichletBoundary(value=0.0), Span.UPPER),
            BoundarySegment(Boundary.BACK, NoFlowBoundary()),
            BoundarySegment(Boundary.FRONT, NoFlowBoundary(), Span.LOWER),
        )
    )
    return velocity_x_conditions, velocity_y_conditions


@attrs.frozen
class BoundaryEnforcer:
    """Applies pressure and velocity boundary conditions after interior updates."""

    pressure: GridBoundaryCondition
    """Conditions for the pressure grid."""
    velocity_x: GridBoundaryCondition
    """Conditions for the x-velocity grid of each phase."""
    velocity_y: GridBoundaryCondition
    """Conditions for the y-velocity grid of each phase."""

    @classmethod
    def from_pressures(cls, inlet_pressure: float, outlet_pressure: float) -> Self:
        """Build the enforcer of the inlet/outlet filtration setup."""
        velocity_x, velocity_y = build_velocity_boundary_conditions()
        return cls(
            pressure=build_pressure_boundary_conditions(
                inlet_pressure=inlet_pressure, outlet_pressure=outlet_pressure
            ),
            velocity_x=velocity_x,
            velocity_y=velocity_y,
        )

    def apply_pressure(self, pressure_grid: TwoDimensionalGrid) -> None:
        """Overwrite the ghost cells of the pressure grid in place."""
        self.pressure.apply(pressure_grid)

    def apply_velocity(
        self, velocity_x_grid: TwoDimensionalGrid, velocity_y_grid: TwoDimensionalGrid
    ) -> None:
        """Overwrite the ghost cells of one phase's velocity grids in place."""
        self.velocity_x.apply(velocity_x_grid)
        self.velocity_y.apply(velocity_y_grid)
