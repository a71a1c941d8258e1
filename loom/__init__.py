"""Public API of the Loom assembler."""

from . import assembler as _assembler
from . import constants as _constants
from .assembler import compile
from .constants import *  # noqa: F401,F403
from .assembler import *  # noqa: F401,F403

__version__ = "0.3.0"

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_assembler, "__all__", [])
