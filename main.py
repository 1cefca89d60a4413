import logging
import typing

import numpy as np

import filtration

logger = logging.getLogger(__name__)


def example() -> filtration.FieldSet:
    grid_shape = typing.cast(filtration.TwoDimensions, (40, 40))
    config = filtration.SimulationConfig(
        cell_size_x=0.05,  # m
        cell_size_y=0.05,  # m
        time_step_size=1e-3,  # s
        porosity=0.7,
        permeability=1e-12,  # m²
        viscosity=18e-6,  # Pa·s, shared by both phases
        inlet_pressure=1e6,  # Pa
        outlet_pressure=1e5,  # Pa
        initial_saturation=0.75,
        log_interval=20,
    )
    fields = filtration.build_initial_fields(grid_shape, config)

    stepper = filtration.TimeStepper(config, fields)
    max_cfl = 0.0
    non_converged_cells = 0
    for result in stepper.iterate(100):
        max_cfl = max(max_cfl, result.max_cfl)
        non_converged_cells += result.non_converged_cells

    final = stepper.current
    split = filtration.get_split_index(grid_shape[0])
    logger.info(f"Largest CFL number: {max_cfl:.4f}")
    logger.info(f"Non-converged equilibrium solves: {non_converged_cells}")
    logger.info(
        f"Pressure range: {final.pressure[1:-1, 1:-1].min():.4e} - "
        f"{final.pressure[1:-1, 1:-1].max():.4e} Pa"
    )
    logger.info(
        f"Gas saturation range: {final.saturation.min():.4f} - "
        f"{final.saturation.max():.4f}"
    )
    logger.info(
        f"Mean inlet-side pressure: {np.mean(final.pressure[1:split, 1]):.4e} Pa, "
        f"mean outlet-side pressure: {np.mean(final.pressure[1:-1, -2]):.4e} Pa"
    )
    return final


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    example()
