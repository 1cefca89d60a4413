"""
*FILTRATION*

2D two-phase (gas-liquid) filtration through a porous medium, driven by an
inlet/outlet pressure difference.
"""

from ._precision import *  # noqa
from .errors import *  # noqa
from .constants import *  # noqa
from .types import *  # noqa
from .stencil import *  # noqa
from .eos import *  # noqa
from .continuity import *  # noqa
from .darcy import *  # noqa
from .boundary_conditions import *  # noqa
from .config import *  # noqa
from .fields import *  # noqa
from .simulate import *  # noqa
