"""Error types raised while assembling Loom programs.

Every error is fatal and reported on first occurrence. Errors tied to a
source token carry its position so the message points at the offending text.
"""
from __future__ import annotations


class AssemblyError(Exception):
    """Base class for all assembly failures."""

    kind = "assembly"

    def __init__(self, message, token=None, *, line=0, column=0):
        self.message = message
        self.token = token
        if token is not None:
            line = token.line
            column = token.column
        self.line = line
        self.column = column
        super().__init__(self.describe())

    @property
    def position(self):
        return (self.line, self.column)

    def describe(self):
        if self.line:
            return f"{self.kind} error at {self.line}:{self.column}: {self.message}"
        return f"{self.kind} error: {self.message}"


class LexError(AssemblyError):
    """Unknown opcode name or malformed token."""

    kind = "lex"


class AssemblySyntaxError(AssemblyError):
    """Malformed flow-control structure."""

    kind = "syntax"


class ParameterError(AssemblyError):
    """Parameter outside the opcode's declared bounds."""

    kind = "parameter"

    def __init__(self, opcode, value, valid, token=None):
        self.opcode = opcode
        self.value = value
        self.valid = valid
        super().__init__(
            f"invalid parameter {value!r} for '{opcode}' (valid: {valid})", token
        )


class ResourceError(AssemblyError):
    """Execution path count exceeded the configured limit."""

    kind = "resource"

    def __init__(self, leaf_count, limit, token=None):
        self.leaf_count = leaf_count
        self.limit = limit
        super().__init__(
            f"program has {leaf_count} execution paths, limit is {limit}", token
        )


class HashFailure(AssemblyError):
    """The hash capability produced an unusable digest."""

    kind = "hash"



class SealedGraphError(RuntimeError):
    """An execution graph was edited after it was committed."""


__all__ = [
    "AssemblyError",
    "AssemblySyntaxError",
    "HashFailure",
    "LexError",
    "ParameterError",
    "ResourceError",
    "SealedGraphError",
]
