from contextlib import contextmanager
from contextvars import ContextVar

import numpy as np


__all__ = ["get_dtype", "with_precision"]

_filtration_dtype: ContextVar[np.typing.DTypeLike] = ContextVar(
    "_filtration_dtype", default=np.float64
)


def get_dtype() -> np.typing.DTypeLike:
    """
    Get the data type currently used for field grids.

    Defaults to float64. The equilibrium solver works on pressures between
    1e4 and 1e7 with a relative tolerance of 1e-6, which float32 barely resolves.

    :return: The current data type.
    """
    return _filtration_dtype.get()


@contextmanager
def with_precision(dtype: np.typing.DTypeLike):
    """
    Context manager to temporarily set the data type, and hence the precision of new grids.

    :param dtype: The data type to set within the context.
    """
    token = _filtration_dtype.set(dtype)
    try:
        yield
    finally:
        _filtration_dtype.reset(token)
