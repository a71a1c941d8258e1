"""
🧶 Loom — an assembler that commits to every execution path.

source → tokens → primitive instructions → execution graph → Merkle root

| Layer                     | Purpose                                      |
<-------------------------- + -------------------------------------------- >
| **Catalog**               | Opcode bounds, defaults and macro expansions |
| **Parser**                | Tokens with positions, branch validation     |
| **Expander**              | Macros → primitive ops with cycle costs      |
| **Graph builder**         | One leaf per branch combination, padding     |
| **Merkle builder**        | Path hashing and the program commitment      |
| **Program documents**     | Portable `.loom.json`, verify, hash & diff   |
| **Logbook**               | Signed provenance of builds                  |
"""

from . import catalog as _catalog
from . import errors as _errors
from . import core as _core
from . import config as _config
from . import capabilities as _capabilities
from . import parser as _parser
from . import expander as _expander
from . import graph as _graph
from . import merkle as _merkle
from . import compiler as _compiler
from . import bitcode as _bitcode
from . import crypto as _crypto
from . import analysis as _analysis
from .cli import main, parse_args

from .catalog import *
from .errors import *
from .core import *
from .config import *
from .capabilities import *
from .parser import *
from .expander import *
from .graph import *
from .merkle import *
from .compiler import *
from .compiler import compile
from .bitcode import *
from .crypto import *
from .analysis import *

__all__ = []
for module in (
    _catalog,
    _errors,
    _core,
    _config,
    _capabilities,
    _parser,
    _expander,
    _graph,
    _merkle,
    _compiler,
    _bitcode,
    _crypto,
    _analysis,
):
    __all__.extend(getattr(module, '__all__', []))
__all__ += ['main', 'parse_args']
__all__ = list(dict.fromkeys(__all__))
