"""Source parsing and flow-control validation."""
from __future__ import annotations

import logging
import re

from ..constants import FIELD_MODULUS
from .catalog import ELSE, ENDIF, FLOW, IF_TRUE, LITERAL, lookup
from .core import AssemblyToken
from .errors import AssemblySyntaxError, LexError

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\S+")
UNSIGNED_PATTERN = re.compile(r"^[0-9]+$")
LITERAL_PATTERN = re.compile(r"^(?:-?[0-9]+|0[xX][0-9a-fA-F]+)$")
COMMENT_MARKER = "#"
# Digits converted per int() call; stays under the interpreter's str->int limit.
DIGIT_CHUNK = 4000


def _parse_param(text, spec, position):
    """Decode the parameter part of a ``name.param`` token."""

    line, column, raw = position
    pattern = LITERAL_PATTERN if spec.kind == LITERAL else UNSIGNED_PATTERN
    if not pattern.match(text):
        raise LexError(
            f"malformed parameter '{text}' in '{raw}'", line=line, column=column
        )
    if spec.kind == LITERAL:
        if text[:2].lower() == "0x":
            return _reduce_digits(text[2:], 16)
        if text.startswith("-"):
            return -_reduce_digits(text[1:], 10)
        return _reduce_digits(text, 10)
    if len(text) > DIGIT_CHUNK:
        raise LexError(
            f"parameter of '{spec.name}' is too long", line=line, column=column
        )
    return int(text, 10)


def _reduce_digits(digits, base):
    """Reduce a digit string modulo the field, a chunk at a time."""

    acc = 0
    for start in range(0, len(digits), DIGIT_CHUNK):
        chunk = digits[start : start + DIGIT_CHUNK]
        acc = (acc * base ** len(chunk) + int(chunk, base)) % FIELD_MODULUS
    return acc


def _split_token(raw, index, line, column):
    spec = lookup(raw)
    if spec is not None:
        return AssemblyToken(raw, None, raw, index, line, column)

    name, sep, param_text = raw.partition(".")
    spec = lookup(name)
    if spec is None:
        raise LexError(f"unknown operation '{name}'", line=line, column=column)
    if not sep:
        return AssemblyToken(name, None, raw, index, line, column)
    if not param_text:
        raise LexError(f"missing parameter in '{raw}'", line=line, column=column)
    param = _parse_param(param_text, spec, (line, column, raw))
    return AssemblyToken(name, param, raw, index, line, column)


def tokenize(source):
    """Split source text into :class:`AssemblyToken` objects.

    Tokens are whitespace separated and ``#`` comments run to the end of the
    line. Unknown operation names raise :class:`LexError` immediately.
    """

    tokens = []
    for line_no, line in enumerate(source.splitlines(), start=1):
        code, _, _comment = line.partition(COMMENT_MARKER)
        for match in TOKEN_PATTERN.finditer(code):
            tokens.append(
                _split_token(match.group(), len(tokens), line_no, match.start() + 1)
            )
    return tokens


class _OpenBranch:
    __slots__ = ("token", "in_else", "body")

    def __init__(self, token):
        self.token = token
        self.in_else = False
        self.body = 0


def validate_structure(tokens):
    """Check ``if.true``/``else``/``endif`` nesting without building anything."""

    if not tokens:
        raise AssemblySyntaxError("program contains no instructions")

    stack: list[_OpenBranch] = []
    for token in tokens:
        spec = lookup(token.name)
        if spec.kind == FLOW:
            spec.check(token.param, token)

        if token.name == IF_TRUE:
            if stack:
                stack[-1].body += 1
            stack.append(_OpenBranch(token))
        elif token.name == ELSE:
            if not stack:
                raise AssemblySyntaxError("'else' without a preceding 'if.true'", token)
            frame = stack[-1]
            if frame.in_else:
                raise AssemblySyntaxError("duplicate 'else' in one branch", token)
            if frame.body == 0:
                raise AssemblySyntaxError("empty 'if.true' branch body", token)
            frame.in_else = True
            frame.body = 0
        elif token.name == ENDIF:
            if not stack:
                raise AssemblySyntaxError("'endif' does not close any open block", token)
            frame = stack.pop()
            if not frame.in_else:
                raise AssemblySyntaxError(
                    "'if.true' requires an 'else' branch before 'endif'", token
                )
            if frame.body == 0:
                raise AssemblySyntaxError("empty 'else' branch body", token)
        elif stack:
            stack[-1].body += 1

    if stack:
        frame = stack[-1]
        raise AssemblySyntaxError(
            f"unterminated 'if.true' ({len(stack)} block(s) still open)", frame.token
        )
    return tokens


def parse(source):
    """Tokenize ``source`` and validate its flow-control structure."""

    tokens = tokenize(source)
    validate_structure(tokens)
    logger.debug("parsed %d tokens", len(tokens))
    return tokens


__all__ = [
    "parse",
    "tokenize",
    "validate_structure",
]
