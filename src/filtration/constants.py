"""Physical constants and numerical defaults"""

from contextvars import ContextVar
import typing

import attrs


__all__ = ["Constant", "Constants", "c", "ConstantsContext", "get_constant"]


@attrs.frozen(slots=True)
class Constant:
    """
    A constant value with optional description and unit.
    """

    value: typing.Any
    """The actual value of the constant."""

    description: typing.Optional[str] = None
    """Optional description of what this constant represents."""

    unit: typing.Optional[str] = None
    """Optional unit of measurement for this constant."""

    def __str__(self) -> str:
        return f"{self.value}{self.unit or ''}"

    def __repr__(self) -> str:
        parts = [f"value={self.value}"]
        if self.description:
            parts.append(f"description='{self.description}'")
        if self.unit:
            parts.append(f"unit='{self.unit}'")
        return f"Constant({', '.join(parts)})"


DEFAULT_CONSTANTS: typing.Dict[str, typing.Union[typing.Any, Constant]] = {
    # Ideal gas
    "GAS_MOLAR_MASS": Constant(
        value=0.029, description="Molar mass of the gas phase (air)", unit="kg/mol"
    ),
    "GAS_CONSTANT": Constant(
        value=8.314, description="Universal gas constant", unit="J/(mol·K)"
    ),
    "TEMPERATURE": Constant(
        value=298.0, description="Isothermal system temperature", unit="K"
    ),
    # Liquid compressibility relation
    "LIQUID_REFERENCE_DENSITY": Constant(
        value=616.18,
        description="Liquid density at atmospheric pressure (ρ₀)",
        unit="kg/m³",
    ),
    "ATMOSPHERIC_PRESSURE": Constant(
        value=1e5, description="Atmospheric (reference) pressure", unit="Pa"
    ),
    "LIQUID_COMPRESSIBILITY_COEFFICIENT": Constant(
        value=0.2105,
        description="Logarithmic liquid compressibility coefficient (β)",
        unit=None,
    ),
    "LIQUID_REFERENCE_PRESSURE": Constant(
        value=35e6,
        description="High reference pressure of the logarithmic liquid compressibility relation",
        unit="Pa",
    ),
    # Equilibrium solver
    "MIN_BISECTION_PRESSURE": Constant(
        value=1e4,
        description="Lower end of the pressure bracket searched by the equilibrium solver",
        unit="Pa",
    ),
    "MAX_BISECTION_PRESSURE": Constant(
        value=1e7,
        description="Upper end of the pressure bracket searched by the equilibrium solver",
        unit="Pa",
    ),
    "BISECTION_MAX_ITERATIONS": Constant(
        value=50,
        description="Maximum number of bisection iterations per cell",
        unit="iterations",
    ),
    "BISECTION_TOLERANCE": Constant(
        value=1e-6,
        description="Relative bracket width at which bisection stops",
        unit="fraction",
    ),
    # State validation
    "SATURATION_TOLERANCE": Constant(
        value=1e-6,
        description="Allowed overshoot of saturation outside [0, 1] during state validation",
        unit="fraction",
    ),
}


class Constants:
    """
    Physical constants and numerical defaults used by the simulation.

    All constants are stored in an internal dictionary and can be accessed via dot notation.
    Use attribute access for the raw value and item access for the `Constant` object.
    """

    __slots__ = ("_store",)

    def __new__(cls, **overrides: typing.Any) -> "Constants":
        instance = super().__new__(cls)
        instance._store = {}
        return instance

    def __init__(self, **overrides: typing.Any) -> None:
        """
        Initialize the constants store with default values.

        :param overrides: Constant values to use instead of the defaults.
        """
        for name, value in DEFAULT_CONSTANTS.items():
            self[name] = value
        for name, value in overrides.items():
            self[name] = value

    def __getattr__(self, name: str) -> typing.Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)

        try:
            constant = self._store[name]
            return constant.value if isinstance(constant, Constant) else constant
        except KeyError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            ) from None

    def __getitem__(self, name: str) -> Constant:
        return self._store[name]

    def __setattr__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def __setitem__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        if isinstance(value, Constant):
            self._store[name] = value
        else:
            # Keep description and unit when only the value is overridden
            existing = self._store.get(name)
            if isinstance(existing, Constant):
                self._store[name] = attrs.evolve(existing, value=value)
            else:
                self._store[name] = Constant(value=value)

    def __contains__(self, name: str) -> bool:
        return name in self._store

    def keys(self) -> typing.KeysView[str]:
        return self._store.keys()

    def items(self) -> typing.ItemsView[str, Constant]:
        return self._store.items()

    def get(self, name: str, default: typing.Any = None) -> typing.Any:
        """Get a constant's value with a default fallback."""
        constant = self._store.get(name)
        if constant is None:
            return default
        return constant.value if isinstance(constant, Constant) else constant

    def get_constant(
        self, name: str, default: typing.Optional[Constant] = None
    ) -> typing.Optional[Constant]:
        """Get a `Constant` object with a default fallback."""
        return self._store.get(name, default)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(constants={len(self._store)})"

    def __len__(self) -> int:
        return len(self._store)

    def __call__(self) -> "ConstantsContext":
        """
        Create a context manager that, within its context, makes this instance the one
        read through the global proxy `filtration.c`.

        :return: `ConstantsContext` for temporary overrides
        """
        return ConstantsContext(self)


_constants_context: ContextVar[Constants] = ContextVar(
    "constants_context", default=Constants()
)


class ConstantsContext:
    """
    Context manager for temporary global `Constants` overrides.

    The previous `Constants` instance is restored on exit.
    """

    def __init__(self, constants: Constants) -> None:
        self._new_constants = constants
        self._token = None

    def __enter__(self) -> Constants:
        self._token = _constants_context.set(self._new_constants)
        return self._new_constants

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._token is not None:
            _constants_context.reset(self._token)
            self._token = None


class _ConstantsProxy:
    """
    Proxy to the current context's `Constants` instance.

    Override the current instance using the `ConstantsContext` context manager.
    """

    @property
    def _constants(self) -> Constants:
        return _constants_context.get()

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self._constants, name)

    def __getitem__(self, name: str) -> Constant:
        return self._constants[name]


c = _ConstantsProxy()
"""Global proxy to access physical constants and numerical defaults."""


def get_constant(name: str) -> typing.Optional[Constant]:
    """Get a `Constant` object by name from the current constants.

    :param name: Name of the constant
    :return: `Constant` object or None if not found
    """
    return c._constants.get_constant(name)
