"""Instruction catalog: the single source of truth for opcodes.

Every assembly opcode is described by an :class:`OpSpec` holding its default
parameter, the parameters it accepts and the rule that expands it into
primitive VM operations. Validation happens here and nowhere else.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..constants import FIELD_MODULUS, HASH_ROUNDS, HASH_STATE_WIDTH
from .errors import ParameterError

PRIMITIVES = {
    "noop": 0,
    "assert": 1,
    "asserteq": 2,
    "push": 3,
    "read": 4,
    "read2": 5,
    "dup": 6,
    "dup2": 7,
    "dup4": 8,
    "pad2": 9,
    "drop": 10,
    "drop4": 11,
    "swap": 12,
    "swap2": 13,
    "swap4": 14,
    "roll4": 15,
    "roll8": 16,
    "choose": 17,
    "choose2": 18,
    "cswap2": 19,
    "add": 20,
    "mul": 21,
    "inv": 22,
    "neg": 23,
    "not": 24,
    "and": 25,
    "or": 26,
    "eq": 27,
    "cmp": 28,
    "binacc": 29,
    "rescr": 30,
}

PRIMITIVE_NAMES = {code: name for name, code in PRIMITIVES.items()}

PRIMITIVE = "primitive"
MACRO = "macro"
FLOW = "flow"
LITERAL = "literal"


@dataclass(frozen=True)
class OpSpec:
    """Static description of one assembly opcode."""

    name: str
    kind: str
    expand: Optional[Callable[[int], list]] = None
    default: Optional[int] = 1
    bounds: Optional[tuple[int, int]] = None
    choices: Optional[tuple[int, ...]] = None

    @property
    def takes_param(self) -> bool:
        return self.bounds is not None or self.choices is not None

    def describe_valid(self) -> str:
        if self.kind == LITERAL:
            return f"unsigned integer, reduced mod {FIELD_MODULUS}"
        if self.bounds is not None:
            lo, hi = self.bounds
            return f"{lo}..{hi}"
        if self.choices is not None:
            return "{" + ", ".join(str(c) for c in self.choices) + "}"
        return "no parameter"

    def check(self, param, token=None) -> Optional[int]:
        """Return the effective parameter or raise :class:`ParameterError`."""

        if self.kind == LITERAL:
            if param is None:
                raise ParameterError(self.name, None, self.describe_valid(), token)
            if param < 0:
                raise ParameterError(self.name, param, self.describe_valid(), token)
            return param % FIELD_MODULUS

        if not self.takes_param:
            if param is not None:
                raise ParameterError(self.name, param, self.describe_valid(), token)
            return None

        value = self.default if param is None else param
        if self.bounds is not None:
            lo, hi = self.bounds
            if not lo <= value <= hi:
                raise ParameterError(self.name, value, self.describe_valid(), token)
        elif value not in self.choices:
            raise ParameterError(self.name, value, self.describe_valid(), token)
        return value


def _plain(*ops) -> list:
    return [(op, None, False) for op in ops]


def _identity(op):
    return lambda _param: _plain(op)


def _by_param(table):
    return lambda param: _plain(*table[param])


def _pad(n) -> list:
    steps = _plain(*(["pad2"] * ((n + 1) // 2)))
    if n % 2:
        steps += _plain("drop")
    return steps


def _drop(n) -> list:
    return _plain(*(["drop4"] * (n // 4) + ["drop"] * (n % 4)))


def _rescue_rounds() -> list:
    # Only the first round of a hash is aligned; the rest follow back to back.
    return [("rescr", None, True)] + _plain(*(["rescr"] * (HASH_ROUNDS - 1)))


def _compare(tail):
    def expand(bits):
        steps = _plain("pad2", "pad2")
        steps.append(("push", 2 ** (bits - 1), True))
        steps += _plain(*(["cmp"] * bits))
        return steps + _plain(*tail)

    return expand


def _range_check(bits) -> list:
    steps = _plain("pad2", "drop")
    steps.append(("push", 1, True))
    steps += _plain(*(["binacc"] * bits))
    return steps + _plain("drop", "eq")


def _hash(n) -> list:
    return _pad(HASH_STATE_WIDTH - n) + _rescue_rounds() + _plain("drop4")


def _merkle_path(depth) -> list:
    steps = _plain("read2")
    for _ in range(depth):
        steps += _plain("read2", "cswap2", "pad2")
        steps += _rescue_rounds()
        steps += _plain("drop4")
    return steps


def _push(value) -> list:
    return [("push", value, True)]


def _flow(name) -> OpSpec:
    return OpSpec(name, FLOW, default=None)


CATALOG: dict[str, OpSpec] = {}


def _register(spec: OpSpec) -> None:
    CATALOG[spec.name] = spec


for _name in (
    "noop", "assert", "asserteq", "add", "mul", "inv", "neg", "not", "and", "or", "eq",
):
    _register(OpSpec(_name, PRIMITIVE, _identity(_name), default=None))

_register(OpSpec("sub", MACRO, lambda _p: _plain("neg", "add"), default=None))
_register(OpSpec("div", MACRO, lambda _p: _plain("inv", "mul"), default=None))
_register(OpSpec("push", LITERAL, _push, default=None))
_register(OpSpec("read", MACRO, _by_param({1: ["read"], 2: ["read2"]}), bounds=(1, 2)))
_register(
    OpSpec(
        "dup",
        MACRO,
        _by_param(
            {
                1: ["dup"],
                2: ["dup2"],
                3: ["dup4", "roll4", "drop"],
                4: ["dup4"],
            }
        ),
        bounds=(1, 4),
    )
)
_register(OpSpec("pad", MACRO, _pad, bounds=(1, 8)))
_register(
    OpSpec(
        "pick",
        MACRO,
        _by_param(
            {
                1: ["dup2", "drop"],
                2: ["dup4", "drop", "drop", "swap", "drop"],
                3: ["dup4", "drop", "drop", "drop"],
            }
        ),
        bounds=(1, 3),
    )
)
_register(OpSpec("drop", MACRO, _drop, bounds=(1, 8)))
_register(
    OpSpec(
        "swap",
        MACRO,
        _by_param({1: ["swap"], 2: ["swap2"], 4: ["swap4"]}),
        choices=(1, 2, 4),
    )
)
_register(
    OpSpec("roll", MACRO, _by_param({4: ["roll4"], 8: ["roll8"]}), default=4, choices=(4, 8))
)
_register(
    OpSpec("choose", MACRO, _by_param({1: ["choose"], 2: ["choose2"]}), choices=(1, 2))
)
_register(OpSpec("gt", MACRO, _compare(["drop4", "swap", "drop"]), default=128, bounds=(4, 128)))
_register(OpSpec("lt", MACRO, _compare(["drop4", "drop"]), default=128, bounds=(4, 128)))
_register(OpSpec("rc", MACRO, _range_check, default=128, bounds=(4, 128)))
_register(OpSpec("hash", MACRO, _hash, bounds=(1, 4)))
_register(OpSpec("mpath", MACRO, _merkle_path, bounds=(1, 128)))

IF_TRUE = "if.true"
ELSE = "else"
ENDIF = "endif"

for _name in (IF_TRUE, ELSE, ENDIF):
    _register(_flow(_name))

del _name


def lookup(name: str) -> Optional[OpSpec]:
    return CATALOG.get(name)


def is_flow(name: str) -> bool:
    spec = CATALOG.get(name)
    return spec is not None and spec.kind == FLOW


__all__ = [
    "CATALOG",
    "ELSE",
    "ENDIF",
    "FLOW",
    "IF_TRUE",
    "LITERAL",
    "MACRO",
    "OpSpec",
    "PRIMITIVE",
    "PRIMITIVES",
    "PRIMITIVE_NAMES",
    "is_flow",
    "lookup",
]
