"""Macro expansion of assembly tokens into primitive instructions."""
from __future__ import annotations

from .catalog import FLOW, lookup
from .core import Instruction
from .errors import LexError


def expand_token(token):
    """Expand one validated token into its primitive instruction sequence.

    The parameter is checked against the catalog first. Instructions that must
    start on an aligned cycle are flagged; the padding itself is inserted by
    the graph builder, which knows each path's cycle count.
    """

    spec = lookup(token.name)
    if spec is None:
        raise LexError(f"unknown operation '{token.name}'", token)
    if spec.kind == FLOW:
        raise ValueError(f"flow-control token '{token.raw}' has no expansion")

    param = spec.check(token.param, token)
    return [
        Instruction(op, value, aligned=aligned, origin=token)
        for op, value, aligned in spec.expand(param)
    ]


def expand_tokens(tokens):
    """Expand a straight-line token sequence (no flow control)."""

    instructions = []
    for token in tokens:
        instructions.extend(expand_token(token))
    return instructions


def declared_cycles(token):
    """Cycle cost of a token before any alignment padding."""

    return sum(instr.cycles for instr in expand_token(token))


__all__ = [
    "declared_cycles",
    "expand_token",
    "expand_tokens",
]
