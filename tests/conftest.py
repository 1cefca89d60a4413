"""
Shared pytest fixtures for the test suite.
"""

import numpy as np
import pytest

from filtration import EquationOfState, SimulationConfig, build_initial_fields


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def config():
    """Configuration of the 40x40 inlet/outlet scenario."""
    return SimulationConfig(
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


@pytest.fixture
def eos():
    return EquationOfState()


# =============================================================================
# Fields
# =============================================================================

@pytest.fixture
def small_fields(config, eos):
    """Initial state on a small grid, cheap enough for step-level tests."""
    return build_initial_fields((8, 6), config, eos=eos)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
