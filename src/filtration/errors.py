class FiltrationError(Exception):
    """Base class for all filtration-related errors."""

    pass


class ValidationError(FiltrationError, ValueError):
    """Raised when input data fails validation checks."""

    pass


class ComputationError(FiltrationError):
    """Raised when there is an error during numerical computations."""

    pass


class SimulationError(FiltrationError):
    """Raised when the simulation state becomes unphysical during a run."""

    pass
