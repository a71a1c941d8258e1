import hashlib
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import loom
from loom.assembler import (
    AssemblySyntaxError,
    CompilerConfig,
    HashFailure,
    Instruction,
    LexError,
    ParameterError,
    ResourceError,
    SealedGraphError,
    compile_program,
    encode_path,
)


def sha256(data):
    return hashlib.sha256(data).digest()


def _texts(program, index):
    return [str(instr) for instr in program.instructions(index, include_padding=False)]


def test_straight_line_commitment():
    program = compile_program("push.3 push.5 add", sha256)
    assert program.leaf_count == 1
    assert _texts(program, 0) == ["push.3", "push.5", "add"]
    assert program.root == sha256(encode_path(program.path(0)))
    assert program.root_hex == program.root.hex()
    assert program.depth == 0


def test_branch_commitment():
    program = compile_program("if.true push.1 else push.0 endif", sha256)
    d0 = sha256(encode_path(program.path(0)))
    d1 = sha256(encode_path(program.path(1)))
    assert program.root == sha256(d0 + d1)
    assert program.leaf_digest(0) == d0
    assert _texts(program, 0) == ["push.1"]
    assert _texts(program, 1) == ["push.0"]


def test_compile_is_deterministic():
    source = "push.1 if.true dup.2 add else mul endif hash.1 if.true rc.8 else lt.4 endif"
    first = compile_program(source, sha256)
    second = compile_program(source, sha256)
    assert first.root == second.root
    assert first.graph.shape() == second.graph.shape()
    for i in range(first.leaf_count):
        assert first.path(i) == second.path(i)


def test_structure_does_not_depend_on_hash():
    source = "if.true push.1 else push.0 endif if.true add else neg endif"
    a = compile_program(source, "sha256")
    b = compile_program(source, "blake2s")
    assert a.root != b.root
    assert a.leaf_count == b.leaf_count == 4
    assert a.graph.shape() == b.graph.shape()
    for i in range(a.leaf_count):
        assert _texts(a, i) == _texts(b, i)


def test_hash_workers_do_not_change_the_root():
    source = "if.true add else mul endif " * 5
    serial = compile_program(source, sha256)
    threaded = compile_program(source, sha256, config=CompilerConfig(hash_workers=4))
    assert threaded.root == serial.root


def test_every_path_verifies_against_root():
    program = compile_program("if.true if.true add else mul endif else neg endif", "sha256")
    assert program.leaf_count == 4
    assert [_texts(program, i) for i in range(4)] == [["add"], ["mul"], ["neg"], ["neg"]]
    assert program.leaf_digest(2) == program.leaf_digest(3)
    for i in range(program.leaf_count):
        assert program.verify_path(i, "sha256")


def test_push_literal_wraps_to_field():
    program = compile_program(f"push.{loom.FIELD_MODULUS + 5}", sha256)
    assert _texts(program, 0) == ["push.5"]
    assert program.root == compile_program("push.5", sha256).root


def test_very_long_push_literal_is_reduced():
    program = compile_program("push." + "9" * 5000, sha256)
    expected = (10 ** 5000 - 1) % loom.FIELD_MODULUS
    assert _texts(program, 0) == [f"push.{expected}"]


def test_very_long_negative_literal_is_still_rejected():
    with pytest.raises(ParameterError):
        compile_program("push.-" + "7" * 5000, sha256)


@pytest.mark.parametrize(
    "source, error",
    [
        ("dup.5", ParameterError),
        ("push", ParameterError),
        ("push.-3", ParameterError),
        ("if.true push.1", AssemblySyntaxError),
        ("add bogus", LexError),
        ("", AssemblySyntaxError),
    ],
)
def test_compile_errors(source, error):
    with pytest.raises(error):
        compile_program(source, sha256)


def test_resource_error_from_compile():
    source = "if.true add else mul endif " * 4
    with pytest.raises(ResourceError):
        compile_program(source, sha256, config=CompilerConfig(max_paths=8))
    config = CompilerConfig(max_paths=16)
    assert compile_program(source, sha256, config=config).leaf_count == 16


def test_hash_failures():
    with pytest.raises(HashFailure):
        compile_program("add", lambda data: None)

    def broken(data):
        raise RuntimeError("device lost")

    with pytest.raises(RuntimeError, match="device lost"):
        compile_program("add", broken)


def test_compile_alias_and_config_validation():
    assert loom.compile("add", "sha256").root == compile_program("add", sha256).root
    with pytest.raises(ValueError):
        CompilerConfig(max_paths=0)
    with pytest.raises(ValueError):
        CompilerConfig(hash_workers=0)


def test_config_round_trip():
    config = CompilerConfig(max_paths=64, guard_branches=True)
    assert CompilerConfig.from_dict(config.to_dict()) == config
    assert config.with_options(max_paths=4).max_paths == 4


def test_hash_function_is_required():
    with pytest.raises(TypeError):
        compile_program("add")


def test_compiled_program_cannot_be_edited():
    program = compile_program("if.true push.1 else push.0 endif", sha256)
    root = program.root
    with pytest.raises(SealedGraphError):
        program.graph.split(1)
    with pytest.raises(SealedGraphError):
        program.graph.nodes[0].block.append(Instruction("add"))
    with pytest.raises(TypeError):
        program.tree.levels[0][0] = bytes(32)
    assert program.leaf_count == 2
    assert program.root == root
