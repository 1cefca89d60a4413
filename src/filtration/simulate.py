"""Run the two-phase filtration time loop on a 2-Dimensional grid."""

import logging
import typing

import attrs
import numpy as np

from filtration.boundary_conditions import BoundaryEnforcer
from filtration.config import SimulationConfig
from filtration.continuity import evolve_density
from filtration.darcy import compute_darcy_velocity, compute_relative_mobility_grid
from filtration.eos import EquationOfState
from filtration.errors import (
    ComputationError,
    FiltrationError,
    SimulationError,
    ValidationError,
)
from filtration.fields import FieldSet
from filtration.types import FluidPhase


__all__ = ["StepResult", "TimeStepper", "run"]

logger = logging.getLogger(__name__)


INVALID_STATE_ERROR = """
Invalid simulation state after time step {step} in the `{grid}` grid at the following indices:
{indices}
This indicates a likely issue with the simulation setup or numerical stability.

Potential causes include:
1. Time step size too large for the explicit centered continuity update.
2. Inlet/outlet pressures driving velocities too high for the grid spacing.
3. Equilibrium pressures falling outside the bisection bracket.

Suggested actions:
- Use smaller time steps, checking `max_cfl` of the step results.
- Widen the bisection bracket if non-converged cells were reported.

Simulation aborted to avoid propagation of unphysical results.
"""


@attrs.frozen(slots=True)
class StepResult:
    """Result from executing one time step of the simulation."""

    step: int
    """Number of time steps completed."""
    time: float
    """Simulation time reached (s)."""
    fields: FieldSet
    """
    The authoritative state after the step.

    This is one of the stepper's buffers, so it is overwritten two steps later.
    Copy it to keep it.
    """
    non_converged_cells: int
    """Number of cells whose equilibrium solve did not converge."""
    max_cfl: float
    """Largest |u|⋅Δt/Δx + |v|⋅Δt/Δy over interior cells and both phases. Diagnostic only."""


def compute_max_cfl(fields: FieldSet, config: SimulationConfig) -> float:
    """Largest Courant number of the interior velocities of both phases."""
    velocity_x = fields.velocity_x[:, 1:-1, 1:-1]
    velocity_y = fields.velocity_y[:, 1:-1, 1:-1]
    courant_grid = np.abs(velocity_x) * (
        config.time_step_size / config.cell_size_x
    ) + np.abs(velocity_y) * (config.time_step_size / config.cell_size_y)
    return float(np.max(courant_grid))


def _find_invalid_indices(mask: np.ndarray) -> typing.List[typing.Tuple[int, ...]]:
    return [tuple(int(i) for i in index) for index in np.argwhere(mask)[:10]]


def validate_fields(fields: FieldSet, step: int, saturation_tolerance: float) -> None:
    """
    Checks that the state is physical.

    :raises SimulationError: If any grid holds non-finite values, any density is
        negative or saturation leaves [0, 1] by more than `saturation_tolerance`.
    """
    checks = (
        ("velocity_x", ~np.isfinite(fields.velocity_x)),
        ("velocity_y", ~np.isfinite(fields.velocity_y)),
        ("density", ~np.isfinite(fields.density) | (fields.density < 0)),
        ("pressure", ~np.isfinite(fields.pressure)),
        (
            "saturation",
            ~np.isfinite(fields.saturation)
            | (fields.saturation < -saturation_tolerance)
            | (fields.saturation > 1 + saturation_tolerance),
        ),
    )
    for name, mask in checks:
        if np.any(mask):
            raise SimulationError(
                INVALID_STATE_ERROR.format(
                    step=step, grid=name, indices=_find_invalid_indices(mask)
                )
            )


def log_progress(
    step: int,
    step_size: float,
    time_elapsed: float,
    total_time: float,
    is_last_step: bool = False,
    interval: int = 10,
) -> None:
    """Logs the simulation progress at specified intervals."""
    if step <= 1 or step % interval == 0 or is_last_step:
        percent_complete = (time_elapsed / total_time) * 100.0 if total_time else 100.0
        logger.info(
            f"Time Step {step} with Δt = {step_size:.4e}s - "
            f"({percent_complete:.2f}%) - "
            f"Elapsed Time: {time_elapsed:.4e}s / {total_time:.4e}s"
        )


class TimeStepper:
    """
    Advances a `FieldSet` with the staggered update

    1. continuity for both phases (interior cells),
    2. equilibrium pressure and saturation (every cell),
    3. pressure boundary conditions,
    4. Darcy velocities for both phases (interior cells),
    5. velocity boundary conditions,

    and swaps its two buffers after each step.

    The stepper owns two copies of the initial state. Each step reads the current
    buffer and writes the other one, then the roles are swapped by toggling an
    index. Grids are never copied between steps.
    """

    def __init__(
        self,
        config: SimulationConfig,
        fields: FieldSet,
        eos: typing.Optional[EquationOfState] = None,
        boundary_enforcer: typing.Optional[BoundaryEnforcer] = None,
    ) -> None:
        """
        :param config: Simulation configuration.
        :param fields: Initial state. It is copied, so the caller's grids are never modified.
        :param eos: Equation of state. Built from `config.constants` if not given.
        :param boundary_enforcer: Boundary conditions. Built from the config pressures if not given.
        """
        cell_count_x, cell_count_y = fields.grid_shape
        if cell_count_x < 3 or cell_count_y < 3:
            raise ComputationError(
                f"Grid of shape {fields.grid_shape} has no interior cells to update."
            )
        if eos is None:
            with config.constants():
                eos = EquationOfState()
        if boundary_enforcer is None:
            boundary_enforcer = BoundaryEnforcer.from_pressures(
                inlet_pressure=config.inlet_pressure,
                outlet_pressure=config.outlet_pressure,
            )
        self.config = config
        self.eos = eos
        self.boundary_enforcer = boundary_enforcer
        self._buffers = (fields.copy(), fields.copy())
        self._current_index = 0
        self.step_count = 0

    @property
    def current(self) -> FieldSet:
        """The authoritative state."""
        return self._buffers[self._current_index]

    @property
    def next(self) -> FieldSet:
        """The buffer written by the next step."""
        return self._buffers[1 - self._current_index]

    @property
    def time(self) -> float:
        """Simulation time reached (s)."""
        return self.step_count * self.config.time_step_size

    def _evolve_densities(self, current: FieldSet, next_: FieldSet) -> None:
        config = self.config
        for phase in FluidPhase:
            velocity_x_grid, velocity_y_grid, density_grid = current.phase_view(phase)
            evolve_density(
                next_density_grid=next_.density[phase.index],
                density_grid=density_grid,
                velocity_x_grid=velocity_x_grid,
                velocity_y_grid=velocity_y_grid,
                porosity=config.porosity,
                cell_size_x=config.cell_size_x,
                cell_size_y=config.cell_size_y,
                time_step_size=config.time_step_size,
            )

    def _solve_equilibrium(self, next_: FieldSet) -> int:
        config = self.config
        return self.eos.solve_grid(
            gas_mass_density_grid=next_.density[FluidPhase.GAS.index],
            liquid_mass_density_grid=next_.density[FluidPhase.LIQUID.index],
            pressure_grid=next_.pressure,
            saturation_grid=next_.saturation,
            left=config.min_bisection_pressure,
            right=config.max_bisection_pressure,
            max_iterations=config.bisection_max_iterations,
            tolerance=config.bisection_tolerance,
        )

    def _compute_velocities(self, next_: FieldSet) -> None:
        config = self.config
        for phase in FluidPhase:
            velocity_x_grid, velocity_y_grid, _ = next_.phase_view(phase)
            relative_mobility_grid = compute_relative_mobility_grid(
                next_.saturation, phase
            )
            compute_darcy_velocity(
                next_velocity_x_grid=velocity_x_grid,
                next_velocity_y_grid=velocity_y_grid,
                pressure_grid=next_.pressure,
                relative_mobility_grid=relative_mobility_grid,
                permeability=config.permeability,
                viscosity=config.get_viscosity(phase),
                cell_size_x=config.cell_size_x,
                cell_size_y=config.cell_size_y,
            )

    def step(self) -> StepResult:
        """
        Executes one time step and swaps the buffers.

        :return: `StepResult` holding the new authoritative state.
        """
        current, next_ = self.current, self.next
        new_step = self.step_count + 1

        logger.debug("Evolving phase densities (continuity)...")
        self._evolve_densities(current, next_)

        logger.debug("Solving equilibrium pressure and saturation...")
        non_converged_cells = self._solve_equilibrium(next_)
        if non_converged_cells:
            logger.warning(
                f"Equilibrium solve did not converge in {non_converged_cells} cell(s) "
                f"at time step {new_step}. Pressures there are the last bisection midpoints."
            )

        logger.debug("Applying pressure boundary conditions...")
        self.boundary_enforcer.apply_pressure(next_.pressure)

        logger.debug("Computing phase velocities (Darcy)...")
        self._compute_velocities(next_)

        logger.debug("Applying velocity boundary conditions...")
        for phase in FluidPhase:
            velocity_x_grid, velocity_y_grid, _ = next_.phase_view(phase)
            self.boundary_enforcer.apply_velocity(velocity_x_grid, velocity_y_grid)

        self._current_index = 1 - self._current_index
        self.step_count = new_step

        if self.config.validate_state:
            validate_fields(
                next_,
                step=new_step,
                saturation_tolerance=self.config.constants.SATURATION_TOLERANCE,
            )
        return StepResult(
            step=new_step,
            time=self.time,
            fields=next_,
            non_converged_cells=non_converged_cells,
            max_cfl=compute_max_cfl(next_, self.config),
        )

    def iterate(self, num_of_time_steps: int) -> typing.Generator[StepResult, None, None]:
        """
        Runs `num_of_time_steps` time steps, yielding the result of each.

        The step count is checked here, before any step runs.

        :param num_of_time_steps: Number of time steps to run.
        :return: Generator of the `StepResult` of every time step.
        """
        if num_of_time_steps < 0:
            raise ValidationError("Number of time steps must be non-negative.")
        return self._iterate(num_of_time_steps)

    def _iterate(
        self, num_of_time_steps: int
    ) -> typing.Generator[StepResult, None, None]:
        config = self.config
        total_time = num_of_time_steps * config.time_step_size
        logger.info("Starting filtration simulation...")
        logger.debug(f"Grid dimensions: {self.current.grid_shape}")
        logger.debug(f"Cell dimensions: ({config.cell_size_x}, {config.cell_size_y})")
        logger.debug(f"Time step size: {config.time_step_size} seconds")
        logger.debug(f"Number of time steps: {num_of_time_steps}")
        logger.debug(
            f"Inlet/outlet pressures: {config.inlet_pressure} / {config.outlet_pressure} Pa"
        )
        logger.debug(
            f"Porosity: {config.porosity}, permeability: {config.permeability} m², "
            f"viscosities (gas, liquid): ({config.get_viscosity(FluidPhase.GAS)}, "
            f"{config.get_viscosity(FluidPhase.LIQUID)}) Pa·s"
        )

        for local_step in range(1, num_of_time_steps + 1):
            try:
                result = self.step()
            except FiltrationError:
                raise
            except Exception as exc:
                raise SimulationError(
                    f"Simulation failed at time step {self.step_count + 1} due to error: {exc}"
                ) from exc

            log_progress(
                step=local_step,
                step_size=config.time_step_size,
                time_elapsed=local_step * config.time_step_size,
                total_time=total_time,
                is_last_step=local_step == num_of_time_steps,
                interval=config.log_interval,
            )
            yield result

        logger.info(
            f"Simulation completed successfully after {num_of_time_steps} time steps"
        )

    def run(self, num_of_time_steps: int) -> FieldSet:
        """
        Runs `num_of_time_steps` time steps.

        :return: The authoritative state, one of the stepper's own buffers.
        """
        for _ in self.iterate(num_of_time_steps):
            pass
        return self.current


def run(
    config: SimulationConfig,
    fields: FieldSet,
    num_of_time_steps: int,
    eos: typing.Optional[EquationOfState] = None,
    boundary_enforcer: typing.Optional[BoundaryEnforcer] = None,
) -> FieldSet:
    """
    Runs a two-phase filtration simulation from `fields`.

    :param config: Simulation configuration.
    :param fields: Initial state. Left unmodified.
    :param num_of_time_steps: Number of time steps to run.
    :param eos: Equation of state. Built from `config.constants` if not given.
    :param boundary_enforcer: Boundary conditions. Built from the config pressures if not given.
    :return: The final state.
    """
    stepper = TimeStepper(
        config=config, fields=fields, eos=eos, boundary_enforcer=boundary_enforcer
    )
    return stepper.run(num_of_time_steps)
