import typing

import attrs

from filtration.constants import Constants
from filtration.errors import ValidationError
from filtration.types import FluidPhase

__all__ = ["SimulationConfig"]


def _positive(instance: typing.Any, attribute: "attrs.Attribute", value: float) -> None:
    if not value > 0:
        raise ValidationError(f"`{attribute.name}` must be positive, got {value!r}.")


def _optional_positive(
    instance: typing.Any, attribute: "attrs.Attribute", value: typing.Optional[float]
) -> None:
    if value is not None:
        _positive(instance, attribute, value)


def _fraction(instance: typing.Any, attribute: "attrs.Attribute", value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValidationError(
            f"`{attribute.name}` must lie within [0, 1], got {value!r}."
        )


def _porosity(instance: typing.Any, attribute: "attrs.Attribute", value: float) -> None:
    if not 0.0 < value <= 1.0:
        raise ValidationError(f"`porosity` must lie within (0, 1], got {value!r}.")


def _from_constants(name: str) -> typing.Any:
    return attrs.Factory(lambda self: getattr(self.constants, name), takes_self=True)


@attrs.frozen
class SimulationConfig:
    """Physical and numerical parameters of a two-phase filtration run."""

    constants: Constants = attrs.field(factory=Constants)
    """Physical constants used in the simulation. Also supplies the solver defaults below."""
    cell_size_x: float = attrs.field(default=0.05, validator=_positive)
    """Grid spacing along x, Δx (m)."""
    cell_size_y: float = attrs.field(default=0.05, validator=_positive)
    """Grid spacing along y, Δy (m)."""
    time_step_size: float = attrs.field(default=1e-3, validator=_positive)
    """
    Time step size, Δt (s).

    The continuity update is explicit and not upwinded. No stability check is made,
    so pick Δt small relative to Δx / |v⃗| and Δy / |v⃗|.
    """
    porosity: float = attrs.field(default=0.7, validator=_porosity)
    """Porosity of the medium, φ (fraction)."""
    permeability: float = attrs.field(default=1e-12, validator=_positive)
    """Absolute (isotropic) permeability, K (m²)."""
    viscosity: float = attrs.field(default=18e-6, validator=_positive)
    """Dynamic viscosity shared by both phases, μ (Pa·s)."""
    gas_viscosity: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_positive
    )
    """Gas viscosity (Pa·s). Falls back to `viscosity` when not set."""
    liquid_viscosity: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_positive
    )
    """Liquid viscosity (Pa·s). Falls back to `viscosity` when not set."""
    inlet_pressure: float = attrs.field(default=1e6, validator=_positive)
    """Pressure at the inlet (y = 0, lower half of x), Pin (Pa)."""
    outlet_pressure: float = attrs.field(default=1e5, validator=_positive)
    """Pressure at the outlet (y = y_max), Pout (Pa)."""
    initial_pressure: typing.Optional[float] = attrs.field(
        default=None, validator=_optional_positive
    )
    """Uniform initial pressure (Pa). Defaults to `outlet_pressure`."""
    initial_saturation: float = attrs.field(default=0.75, validator=_fraction)
    """Uniform initial gas saturation (fraction)."""
    min_bisection_pressure: float = attrs.field(
        default=_from_constants("MIN_BISECTION_PRESSURE"), validator=_positive
    )
    """Lower end of the pressure bracket of the equilibrium solver (Pa)."""
    max_bisection_pressure: float = attrs.field(
        default=_from_constants("MAX_BISECTION_PRESSURE"), validator=_positive
    )
    """Upper end of the pressure bracket of the equilibrium solver (Pa)."""
    bisection_max_iterations: int = attrs.field(
        default=_from_constants("BISECTION_MAX_ITERATIONS"),
        validator=attrs.validators.and_(
            attrs.validators.instance_of(int), attrs.validators.ge(1)
        ),
    )
    """Maximum number of bisection iterations per cell and step."""
    bisection_tolerance: float = attrs.field(
        default=_from_constants("BISECTION_TOLERANCE"), validator=_positive
    )
    """Relative bracket width at which bisection stops."""
    log_interval: int = attrs.field(default=10, validator=attrs.validators.ge(1))
    """Interval (in time steps) at which to log simulation progress."""
    validate_state: bool = False
    """
    Whether to check the fields after every step and raise `SimulationError` on
    non-finite values, negative densities or saturation outside [0, 1].

    Off by default: invalid states then propagate as NaN/inf.
    """

    def __attrs_post_init__(self) -> None:
        if self.min_bisection_pressure >= self.max_bisection_pressure:
            raise ValidationError(
                "Bisection bracket is empty: "
                f"[{self.min_bisection_pressure}, {self.max_bisection_pressure}]."
            )

    def get_viscosity(self, phase: FluidPhase) -> float:
        """Dynamic viscosity of `phase` (Pa·s)."""
        if phase is FluidPhase.GAS and self.gas_viscosity is not None:
            return self.gas_viscosity
        if phase is FluidPhase.LIQUID and self.liquid_viscosity is not None:
            return self.liquid_viscosity
        return self.viscosity

    def get_initial_pressure(self) -> float:
        """Uniform initial pressure (Pa)."""
        if self.initial_pressure is None:
            return self.outlet_pressure
        return self.initial_pressure

    @property
    def cell_volume(self) -> float:
        """Volume of a cell per unit depth, Δx ⋅Δy (m²)."""
        return self.cell_size_x * self.cell_size_y
