import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from loom import FIELD_MODULUS
from loom.assembler import (
    AssemblyError,
    AssemblySyntaxError,
    LexError,
    ParameterError,
    parse,
    tokenize,
)


def test_tokens_carry_positions_and_skip_comments():
    source = "push.3   # load three\n  add  dup.2\n# only a comment\nif.true"
    tokens = tokenize(source)
    assert [t.raw for t in tokens] == ["push.3", "add", "dup.2", "if.true"]
    assert [(t.line, t.column) for t in tokens] == [(1, 1), (2, 3), (2, 8), (4, 1)]
    assert [t.index for t in tokens] == [0, 1, 2, 3]
    assert tokens[0].name == "push" and tokens[0].param == 3
    assert tokens[1].param is None
    assert tokens[3].name == "if.true" and tokens[3].param is None


def test_literal_forms():
    tokens = tokenize("push.0x1f push.0 push.340282366920938463463374557953744961540")
    assert [t.param for t in tokens] == [31, 0, 3]


def test_long_literals_are_reduced_while_tokenizing():
    (decimal,) = tokenize("push." + "9" * 5000)
    assert decimal.param == (10 ** 5000 - 1) % FIELD_MODULUS
    (hexadecimal,) = tokenize("push.0x" + "f" * 5000)
    assert hexadecimal.param == (16 ** 5000 - 1) % FIELD_MODULUS
    (negative,) = tokenize("push.-" + "9" * 5000)
    assert negative.param == -decimal.param


def test_overlong_unsigned_parameter_is_lex_error():
    with pytest.raises(LexError, match="parameter of 'dup' is too long"):
        tokenize("dup." + "1" * 5000)


def test_unknown_operation_is_lex_error():
    with pytest.raises(LexError, match="unknown operation 'frob'") as info:
        tokenize("add frob")
    assert info.value.position == (1, 5)
    assert str(info.value) == "lex error at 1:5: unknown operation 'frob'"


def test_if_false_is_not_an_opcode():
    with pytest.raises(LexError, match="unknown operation 'if'"):
        tokenize("if.false")


@pytest.mark.parametrize("text", ["dup.x", "dup.-1", "dup.0x2", "push.1.2", "push.abc"])
def test_malformed_parameters(text):
    with pytest.raises(LexError, match="malformed parameter"):
        tokenize(text)


def test_missing_parameter():
    with pytest.raises(LexError, match="missing parameter"):
        tokenize("dup.")


def test_negative_push_literal_is_tokenized_but_rejected_later():
    (token,) = tokenize("push.-4")
    assert token.param == -4


@pytest.mark.parametrize(
    "source, message, position",
    [
        ("else", "'else' without a preceding 'if.true'", (1, 1)),
        ("add endif", "'endif' does not close any open block", (1, 5)),
        ("if.true else add endif", "empty 'if.true' branch body", (1, 9)),
        ("if.true add else endif", "empty 'else' branch body", (1, 18)),
        ("if.true add endif", "requires an 'else' branch", (1, 13)),
        ("if.true add else mul else neg endif", "duplicate 'else'", (1, 22)),
        ("if.true push.1", "unterminated 'if.true'", (1, 1)),
        ("add\nif.true add else\n  if.true mul", "2 block(s) still open", (3, 3)),
    ],
)
def test_structure_errors(source, message, position):
    with pytest.raises(AssemblySyntaxError, match=message) as info:
        parse(source)
    assert info.value.position == position


@pytest.mark.parametrize("source", ["", "   \n\t", "# nothing here\n"])
def test_empty_program_rejected(source):
    with pytest.raises(AssemblySyntaxError, match="no instructions") as info:
        parse(source)
    assert str(info.value) == "syntax error: program contains no instructions"


def test_flow_tokens_take_no_parameter():
    with pytest.raises(ParameterError, match="'else'"):
        parse("if.true add else.1 mul endif")


def test_nested_bodies_count_as_content():
    tokens = parse("if.true if.true add else mul endif else neg endif")
    assert len(tokens) == 9


def test_all_assembly_errors_share_a_base():
    for exc in (LexError, AssemblySyntaxError, ParameterError):
        assert issubclass(exc, AssemblyError)


def test_deep_nesting_is_validated_without_recursion():
    depth = 3000
    source = "if.true " * depth + "add " + "else mul endif " * depth
    assert len(parse(source)) == 1 + 4 * depth
