import enum
import typing

import numpy as np
from typing_extensions import TypeAlias


__all__ = [
    "TwoDimensions",
    "PhaseDimensions",
    "TwoDimensionalGrid",
    "ThreeDimensionalGrid",
    "FloatOrArray",
    "FluidPhase",
    "RelativeMobilityFunc",
]

TwoDimensions: TypeAlias = typing.Tuple[int, int]
"""2D indices"""
PhaseDimensions: TypeAlias = typing.Tuple[int, int, int]
"""Phase-indexed 2D indices (phase, x, y)"""

FloatOrArray = typing.Union[float, np.typing.NDArray[np.floating]]

TwoDimensionalGrid = np.typing.NDArray[np.floating]
"""2D grid of simulation data indexed [i, j] -> (x, y)"""
ThreeDimensionalGrid = np.typing.NDArray[np.floating]
"""Phase-indexed grid of simulation data indexed [k, i, j] -> (phase, x, y)"""


class FluidPhase(enum.Enum):
    """Enum representing the two fluid phases of the system."""

    GAS = "gas"
    LIQUID = "liquid"

    @property
    def index(self) -> int:
        """Position of the phase on the phase axis of phase-indexed grids."""
        return 0 if self is FluidPhase.GAS else 1


class RelativeMobilityFunc(typing.Protocol):
    """
    Protocol for a relative mobility function of saturation.

    Must accept both scalars and numpy arrays.
    """

    def __call__(self, saturation: FloatOrArray, /) -> FloatOrArray: ...
