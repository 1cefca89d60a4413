"""Simulation state grids."""

import typing

import attrs
import numpy as np
from typing_extensions import Self

from filtration._precision import get_dtype
from filtration.boundary_conditions import BoundaryEnforcer
from filtration.config import SimulationConfig
from filtration.eos import EquationOfState
from filtration.errors import ValidationError
from filtration.types import (
    FluidPhase,
    PhaseDimensions,
    ThreeDimensionalGrid,
    TwoDimensionalGrid,
    TwoDimensions,
)


__all__ = [
    "PHASE_COUNT",
    "FieldSet",
    "build_uniform_grid",
    "build_initial_fields",
]

PHASE_COUNT = 2
"""Number of fluid phases. Index 0 is gas, index 1 is liquid."""


def build_uniform_grid(
    grid_shape: typing.Union[TwoDimensions, PhaseDimensions],
    value: float = 0.0,
) -> np.ndarray:
    """
    Constructs a uniform grid with the specified value.

    :param grid_shape: Shape of the grid.
    :param value: Value to fill the grid with.
    :return: Numpy array of the current precision.
    """
    return np.full(grid_shape, fill_value=value, dtype=get_dtype(), order="C")


@attrs.define(eq=False)
class FieldSet:
    """
    The state of the simulation: phase velocities and densities, pressure and saturation.

    Phase-indexed grids have shape (2, nx, ny), all others (nx, ny).
    """

    velocity_x: ThreeDimensionalGrid
    """Horizontal velocity (u) of each phase."""
    velocity_y: ThreeDimensionalGrid
    """Vertical velocity (v) of each phase."""
    density: ThreeDimensionalGrid
    """Mass per unit cell volume (ρ̂) of each phase."""
    pressure: TwoDimensionalGrid
    """Pressure shared by both phases (local mechanical equilibrium)."""
    saturation: TwoDimensionalGrid
    """Gas saturation. The liquid occupies the remaining 1 - s of the pore volume."""

    def __attrs_post_init__(self) -> None:
        if self.pressure.ndim != 2:
            raise ValidationError(
                f"Pressure grid must be 2D, got shape {self.pressure.shape}."
            )
        grid_shape = self.pressure.shape
        if self.saturation.shape != grid_shape:
            raise ValidationError(
                f"Saturation grid shape {self.saturation.shape} does not match "
                f"pressure grid shape {grid_shape}."
            )
        phase_shape = (PHASE_COUNT, *grid_shape)
        for name in ("velocity_x", "velocity_y", "density"):
            grid = getattr(self, name)
            if grid.shape != phase_shape:
                raise ValidationError(
                    f"`{name}` grid must have shape {phase_shape}, got {grid.shape}."
                )

    @property
    def grid_shape(self) -> TwoDimensions:
        """Shape (nx, ny) shared by all grids."""
        return self.pressure.shape  # type: ignore[return-value]

    def phase_view(
        self, phase: FluidPhase
    ) -> typing.Tuple[TwoDimensionalGrid, TwoDimensionalGrid, TwoDimensionalGrid]:
        """
        Views of the grids of one phase.

        :return: Tuple of (u, v, density) 2D views. Writing to them writes to this FieldSet.
        """
        k = phase.index
        return self.velocity_x[k], self.velocity_y[k], self.density[k]

    def __iter__(self) -> typing.Iterator[np.ndarray]:
        yield self.velocity_x
        yield self.velocity_y
        yield self.density
        yield self.pressure
        yield self.saturation

    def copy(self) -> Self:
        """Deep copy of all grids."""
        return type(self)(*(grid.copy() for grid in self))

    def allclose(self, other: "FieldSet", rtol: float = 0.0, atol: float = 0.0) -> bool:
        """
        Whether all grids of `other` match this FieldSet's within tolerance.

        Exact comparison by default. NaNs compare equal.
        """
        if self.grid_shape != other.grid_shape:
            return False
        return all(
            np.allclose(mine, theirs, rtol=rtol, atol=atol, equal_nan=True)
            for mine, theirs in zip(self, other)
        )

    @classmethod
    def uniform(
        cls,
        grid_shape: TwoDimensions,
        pressure: float = 0.0,
        saturation: float = 0.0,
        density: float = 0.0,
    ) -> Self:
        """Builds a FieldSet with zero velocities and uniform values elsewhere."""
        phase_shape = (PHASE_COUNT, *grid_shape)
        return cls(
            velocity_x=build_uniform_grid(phase_shape, value=0.0),
            velocity_y=build_uniform_grid(phase_shape, value=0.0),
            density=build_uniform_grid(phase_shape, value=density),
            pressure=build_uniform_grid(grid_shape, value=pressure),
            saturation=build_uniform_grid(grid_shape, value=saturation),
        )


def build_initial_fields(
    grid_shape: TwoDimensions,
    config: SimulationConfig,
    eos: typing.Optional[EquationOfState] = None,
    boundary_enforcer: typing.Optional[BoundaryEnforcer] = None,
) -> FieldSet:
    """
    Builds the initial state of the inlet/outlet filtration setup.

    - velocities are zero,
    - pressure is uniform with the pressure boundary conditions applied,
    - gas saturation is uniform,
    - gas mass density is the ideal gas density at the (uniform) initial pressure,
    - liquid mass density follows from the boundary-adjusted pressure and the
      saturation through the inverse equilibrium relation.

    The gas mass density is that of a cell fully filled with gas, so the first
    equilibrium solve raises the pressure until the gas fits in its saturation.

    :param grid_shape: Number of cells (nx, ny), ghost cells included.
    :param config: Simulation configuration.
    :param eos: Equation of state. Built from `config.constants` if not given.
    :param boundary_enforcer: Boundary conditions. Built from the config pressures if not given.
    :return: The initial `FieldSet`.
    """
    if len(grid_shape) != 2 or min(grid_shape) < 3:
        raise ValidationError(
            f"Grid shape must be 2D with at least 3 cells per direction, got {grid_shape}."
        )
    if eos is None:
        with config.constants():
            eos = EquationOfState()
    if boundary_enforcer is None:
        boundary_enforcer = BoundaryEnforcer.from_pressures(
            inlet_pressure=config.inlet_pressure,
            outlet_pressure=config.outlet_pressure,
        )

    initial_pressure = config.get_initial_pressure()
    fields = FieldSet.uniform(
        grid_shape,
        pressure=initial_pressure,
        saturation=config.initial_saturation,
        density=eos.gas_density(initial_pressure),
    )
    boundary_enforcer.apply_pressure(fields.pressure)
    fields.density[FluidPhase.LIQUID.index] = eos.liquid_mass_density(
        fields.pressure, fields.saturation
    )
    return fields
