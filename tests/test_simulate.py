"""
Tests for the double-buffered time stepper.
"""

import logging

import attrs
import numpy as np
import pytest

from filtration import (
    Boundary,
    BoundaryEnforcer,
    BoundarySegment,
    ComputationError,
    DirichletBoundary,
    EquationOfState,
    FieldSet,
    FluidPhase,
    GridBoundaryCondition,
    NoFlowBoundary,
    SimulationConfig,
    SimulationError,
    TimeStepper,
    ValidationError,
    build_initial_fields,
    get_split_index,
    run,
)


def _closed_boundary_enforcer():
    """No flow through any edge."""
    edges = (Boundary.LEFT, Boundary.RIGHT, Boundary.FRONT, Boundary.BACK)
    return BoundaryEnforcer(
        pressure=GridBoundaryCondition(
            segments=[BoundarySegment(edge, NoFlowBoundary()) for edge in edges]
        ),
        velocity_x=GridBoundaryCondition(
            segments=[BoundarySegment(edge, DirichletBoundary()) for edge in edges]
        ),
        velocity_y=GridBoundaryCondition(
            segments=[BoundarySegment(edge, DirichletBoundary()) for edge in edges]
        ),
    )


class TestTimeStepper:
    """Buffer handling and step bookkeeping."""

    def test_zero_steps_round_trip(self, config, small_fields):
        result = run(config, small_fields, 0)

        assert result is not small_fields
        assert result.allclose(small_fields)

    def test_input_fields_not_modified(self, config, small_fields):
        original = small_fields.copy()

        run(config, small_fields, 3)

        assert small_fields.allclose(original)

    def test_buffers_swap_without_copy(self, config, small_fields):
        stepper = TimeStepper(config, small_fields)
        first, second = stepper.current, stepper.next
        first_pressure = first.pressure

        result = stepper.step()

        assert result.fields is second
        assert stepper.current is second
        assert stepper.next is first

        stepper.step()

        assert stepper.current is first
        # Grids are written in place, never reallocated
        assert stepper.current.pressure is first_pressure

    def test_step_results(self, config, small_fields):
        stepper = TimeStepper(config, small_fields)

        results = list(stepper.iterate(3))

        assert [result.step for result in results] == [1, 2, 3]
        assert results[-1].time == pytest.approx(3 * config.time_step_size)
        assert all(result.non_converged_cells == 0 for result in results)
        assert all(np.isfinite(result.max_cfl) for result in results)
        assert results[-1].fields is stepper.current
        assert stepper.step_count == 3

    def test_run_returns_current_buffer(self, config, small_fields):
        stepper = TimeStepper(config, small_fields)

        result = stepper.run(2)

        assert result is stepper.current

    def test_first_step_drives_inflow(self, config, small_fields):
        stepper = TimeStepper(config, small_fields)
        split = get_split_index(small_fields.grid_shape[0])

        result = stepper.step()

        for phase in FluidPhase:
            _, velocity_y, _ = result.fields.phase_view(phase)
            assert np.all(velocity_y[1:split, 1] > 0)
        assert result.max_cfl > 0

    def test_closed_domain_at_rest_is_fixed_point(self, config, small_fields):
        stepper = TimeStepper(
            config, small_fields, boundary_enforcer=_closed_boundary_enforcer()
        )

        result = stepper.run(5)

        np.testing.assert_array_equal(
            result.density[:, 1:-1, 1:-1], small_fields.density[:, 1:-1, 1:-1]
        )
        assert np.all(result.velocity_x == 0.0)
        assert np.all(result.velocity_y == 0.0)
        assert np.all(result.pressure == result.pressure[1, 1])

    def test_grid_without_interior_raises(self, config):
        fields = FieldSet.uniform((2, 5), pressure=1e5, saturation=0.5)
        with pytest.raises(ComputationError):
            TimeStepper(config, fields)

    def test_negative_step_count_rejected(self, config, small_fields):
        with pytest.raises(ValidationError):
            TimeStepper(config, small_fields).run(-1)

    def test_iterate_rejects_negative_step_count_eagerly(self, config, small_fields):
        stepper = TimeStepper(config, small_fields)

        # Raised on the call itself, before the generator is consumed
        with pytest.raises(ValidationError):
            stepper.iterate(-1)
        assert stepper.step_count == 0

    def test_liquid_viscosity_override_scales_liquid_velocities(
        self, config, small_fields
    ):
        base = TimeStepper(config, small_fields).step().fields
        viscous = TimeStepper(
            attrs.evolve(config, liquid_viscosity=2 * config.viscosity),
            small_fields,
        ).step().fields

        liquid, gas = FluidPhase.LIQUID.index, FluidPhase.GAS.index
        assert np.any(base.velocity_y[liquid] != 0.0)
        np.testing.assert_allclose(
            viscous.velocity_x[liquid], 0.5 * base.velocity_x[liquid], rtol=1e-12
        )
        np.testing.assert_allclose(
            viscous.velocity_y[liquid], 0.5 * base.velocity_y[liquid], rtol=1e-12
        )
        np.testing.assert_array_equal(viscous.velocity_x[gas], base.velocity_x[gas])
        np.testing.assert_array_equal(viscous.velocity_y[gas], base.velocity_y[gas])
        np.testing.assert_array_equal(viscous.pressure, base.pressure)


class TestDiagnostics:
    """Logging and optional state validation."""

    def test_logs_progress(self, config, small_fields, caplog):
        config = attrs.evolve(config, log_interval=2)

        with caplog.at_level(logging.INFO, logger="filtration.simulate"):
            run(config, small_fields, 3)

        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith("Time Step 1 ") for message in messages)
        assert any(message.startswith("Time Step 2 ") for message in messages)
        assert any(message.startswith("Time Step 3 ") for message in messages)

    def test_warns_on_non_converged_cells(self, config, small_fields, caplog):
        config = attrs.evolve(config, bisection_max_iterations=2)
        stepper = TimeStepper(config, small_fields)

        with caplog.at_level(logging.WARNING, logger="filtration.simulate"):
            result = stepper.step()

        cell_count_x, cell_count_y = small_fields.grid_shape
        assert result.non_converged_cells == cell_count_x * cell_count_y
        assert any(record.levelno == logging.WARNING for record in caplog.records)

    def test_validation_catches_negative_density(self, config, small_fields):
        small_fields.density[FluidPhase.GAS.index, 2, 2] = -1.0
        stepper = TimeStepper(
            attrs.evolve(config, validate_state=True),
            small_fields,
            boundary_enforcer=_closed_boundary_enforcer(),
        )

        with pytest.raises(SimulationError, match="density"):
            stepper.step()

    def test_validation_is_opt_in(self, config, small_fields):
        small_fields.density[FluidPhase.GAS.index, 2, 2] = -1.0
        stepper = TimeStepper(
            config, small_fields, boundary_enforcer=_closed_boundary_enforcer()
        )

        result = stepper.step()

        assert result.fields.density[FluidPhase.GAS.index, 2, 2] == -1.0


class TestInletOutletScenario:
    """40x40 grid driven from P_in = 1e6 Pa to P_out = 1e5 Pa for 100 steps."""

    @pytest.fixture(scope="class")
    def scenario(self):
        config = SimulationConfig(
            cell_size_x=0.05,
            cell_size_y=0.05,
            time_step_size=1e-3,
            porosity=0.7,
            permeability=1e-12,
            viscosity=18e-6,
            inlet_pressure=1e6,
            outlet_pressure=1e5,
            initial_saturation=0.75,
        )
        initial = build_initial_fields((40, 40), config, eos=EquationOfState())
        return initial, run(config, initial, 100)

    def test_state_is_finite(self, scenario):
        _, final = scenario
        for grid in final:
            assert np.all(np.isfinite(grid))

    def test_saturation_within_bounds(self, scenario):
        _, final = scenario
        tolerance = 1e-6
        assert np.all(final.saturation >= -tolerance)
        assert np.all(final.saturation <= 1 + tolerance)

    def test_pressure_falls_from_inlet_to_outlet(self, scenario):
        """
        Compares the inlet row, mid-domain and outlet row of each inlet column.

        The centered explicit scheme leaves the profile along y oscillating
        behind the inlet (column 5 reads roughly 1.81e6, 1.87e5, 8.78e5, 2.27e5
        over its first cells), so the column is not monotone cell by cell.
        """
        _, final = scenario
        cell_count_x, cell_count_y = final.grid_shape
        split = get_split_index(cell_count_x)
        pressure = final.pressure

        for i in range(1, split):
            assert pressure[i, 1] > pressure[i, cell_count_y // 2]
            assert pressure[i, cell_count_y // 2] > pressure[i, -2]
        assert pressure[1:split, 1].mean() > pressure[1:-1, -2].mean()

    def test_liquid_enters_through_inlet(self, scenario):
        initial, final = scenario
        liquid_index = FluidPhase.LIQUID.index

        initial_mass = initial.density[liquid_index, 1:-1, 1:-1].sum()
        final_mass = final.density[liquid_index, 1:-1, 1:-1].sum()

        assert final_mass > initial_mass
