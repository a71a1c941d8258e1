import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from loom.assembler import (
    AlignmentPolicy,
    CompilerConfig,
    ExecutionGraph,
    GraphBuilder,
    Instruction,
    ResourceError,
    SealedGraphError,
    build_graph,
    parse,
    strip_padding,
)


BRANCH = "if.true add else mul endif "


def _graph(source, config=None):
    return build_graph(parse(source), config)


def _ops(graph):
    return [[str(instr) for instr in strip_padding(path)] for path in graph.paths()]


def test_straight_line_program_is_one_path():
    graph = _graph("push.3 push.5 add")
    assert graph.leaf_count == 1
    assert graph.branch_count == 0
    assert graph.depth == 0
    assert _ops(graph) == [["push.3", "push.5", "add"]]


def test_alignment_and_trace_padding():
    graph = _graph("push.3 push.5 add")
    path = graph.path(0)
    assert [str(i) for i in path] == (
        ["push.3"] + ["noop"] * 7 + ["push.5", "add"] + ["noop"] * 6
    )
    assert len(path) == 16
    assert sum(1 for i in path if i.padding) == 13


def test_single_branch_example():
    graph = _graph("if.true push.1 else push.0 endif")
    assert graph.leaf_count == 2
    assert [[str(i) for i in path] for path in graph.paths()] == [
        ["push.1", "noop"],
        ["push.0", "noop"],
    ]


@pytest.mark.parametrize("k", range(6))
def test_sequential_branches_double_the_paths(k):
    graph = _graph("neg " + BRANCH * k)
    assert graph.leaf_count == 2 ** k
    assert graph.branch_count == 2 ** k - 1


def test_code_after_endif_reaches_every_path():
    graph = _graph("if.true push.1 else push.0 endif add")
    assert _ops(graph) == [["push.1", "add"], ["push.0", "add"]]


def test_leaf_order_is_true_side_first():
    graph = _graph("if.true add else mul endif if.true neg else not endif")
    assert _ops(graph) == [
        ["add", "neg"],
        ["add", "not"],
        ["mul", "neg"],
        ["mul", "not"],
    ]


def test_nested_branch_doubles_every_path():
    graph = _graph("if.true if.true add else mul endif else neg endif")
    assert graph.leaf_count == 4
    assert _ops(graph) == [["add"], ["mul"], ["neg"], ["neg"]]


def test_nesting_in_else_side_replicates_the_true_side():
    graph = _graph("if.true add else if.true neg else not endif endif")
    assert _ops(graph) == [["add"], ["add"], ["neg"], ["not"]]


@pytest.mark.parametrize(
    "source, k",
    [
        ("if.true if.true add else mul endif else neg endif", 2),
        ("if.true " * 3 + "add " + "else mul endif " * 3, 3),
        ("if.true add else if.true neg else if.true mul else not endif endif endif", 3),
        (BRANCH + "if.true " + BRANCH + "else neg endif " + BRANCH, 4),
    ],
)
def test_leaf_count_is_two_to_the_number_of_branches(source, k):
    graph = _graph(source)
    assert graph.leaf_count == 2 ** k
    assert len(graph.paths()) == 2 ** k


def test_balanced_nesting():
    graph = _graph(
        "if.true if.true add else mul endif else if.true neg else not endif endif"
    )
    assert _ops(graph) == [
        ["add"], ["add"], ["mul"], ["mul"], ["neg"], ["not"], ["neg"], ["not"],
    ]
    assert graph.depth == 3


def test_alignment_is_tracked_per_path():
    graph = _graph("if.true push.1 push.2 else push.0 endif push.9")
    true_path, false_path = graph.paths()
    assert true_path.index(next(i for i in true_path if i.value == 9)) == 16
    assert false_path.index(next(i for i in false_path if i.value == 9)) == 8
    assert len(true_path) == 32
    assert len(false_path) == 16


def test_hash_rounds_start_on_sixteen_cycle_boundary():
    graph = _graph("add hash.2")
    path = graph.path(0)
    first_round = next(pos for pos, instr in enumerate(path) if instr.op == "rescr")
    assert first_round == 16
    assert [i.op for i in path[16:26]] == ["rescr"] * 10


def test_trace_padding_can_be_disabled():
    config = CompilerConfig(alignment=AlignmentPolicy(pad_trace=False))
    path = _graph("push.3 push.5 add", config).path(0)
    assert len(path) == 10


@pytest.mark.parametrize(
    "cycles, expected",
    [(1, 2), (2, 4), (3, 4), (10, 16), (16, 32), (17, 32)],
)
def test_trace_length(cycles, expected):
    assert AlignmentPolicy().trace_length(cycles) == expected


def test_padding_before():
    policy = AlignmentPolicy()
    assert policy.padding_before("push", 9) == 7
    assert policy.padding_before("push", 16) == 0
    assert policy.padding_before("rescr", 3) == 13
    assert policy.padding_before("add", 5) == 0


def test_guard_branches_assert_the_condition():
    config = CompilerConfig(guard_branches=True)
    graph = _graph("if.true push.1 else push.0 endif", config)
    assert _ops(graph) == [["assert", "push.1"], ["not", "assert", "push.0"]]


def test_resource_limit_checked_at_endif():
    config = CompilerConfig(max_paths=8)
    assert _graph(BRANCH * 3, config).leaf_count == 8

    # dup.5 would fail expansion if the builder kept going after the limit.
    tokens = parse(BRANCH * 4 + "dup.5")
    with pytest.raises(ResourceError) as info:
        build_graph(tokens, config)
    assert info.value.leaf_count == 16
    assert info.value.limit == 8
    assert info.value.token.name == "endif"
    assert info.value.token.index == 19
    assert "16 execution paths, limit is 8" in str(info.value)


def test_builder_frontier_tracks_open_paths():
    builder = GraphBuilder()
    for token in parse("add " + BRANCH + BRANCH):
        builder.feed(token)
    assert len(builder.frontier) == 4
    assert builder.leaf_count == 4
    graph = builder.finish()
    assert sorted(graph.leaves()) == sorted(builder.frontier)


def test_split_refuses_branch_nodes():
    graph = ExecutionGraph()
    graph.split(0)
    with pytest.raises(ValueError, match="already a branch"):
        graph.split(0)


def test_path_index_out_of_range():
    graph = _graph("add")
    with pytest.raises(IndexError):
        graph.path(1)


def test_shape_ignores_block_contents():
    a = _graph("if.true push.1 else push.2 endif")
    b = _graph("if.true add add add else mul endif")
    assert a.shape() == b.shape() == [(1, 2), None, None]


def test_deeply_nested_program_stops_at_the_path_limit():
    depth = 1500
    source = "if.true " * depth + "add " + "else mul endif " * depth
    with pytest.raises(ResourceError) as info:
        _graph(source)
    assert info.value.leaf_count == 65536
    assert info.value.limit == 32768
    assert info.value.token.index == depth + 3


def test_deep_nesting_within_the_limit_builds_iteratively():
    depth = 12
    source = "if.true " * depth + "add " + "else mul endif " * depth
    graph = _graph(source)
    assert graph.leaf_count == 2 ** depth
    assert graph.depth == depth
    assert [str(i) for i in strip_padding(graph.path(0))] == ["add"]
    assert [str(i) for i in strip_padding(graph.path(1))] == ["mul"]
    assert [str(i) for i in strip_padding(graph.path(2 ** depth - 1))] == ["mul"]


def test_built_graph_is_sealed():
    graph = _graph("if.true push.1 else push.0 endif")
    assert graph.sealed
    with pytest.raises(SealedGraphError):
        graph.split(1)
    with pytest.raises(SealedGraphError):
        graph.new_node(0)
    with pytest.raises(SealedGraphError):
        graph.nodes[1].block.append(Instruction("add"))
    assert isinstance(graph.nodes[1].block.instructions, tuple)
    assert graph.leaf_count == 2


def test_paths_follow_the_cached_leaf_order():
    graph = _graph(BRANCH * 3)
    assert graph.paths() == [graph.path(i) for i in range(8)]
    leaves = graph.leaves()
    leaves.reverse()
    assert graph.leaves() != leaves
    assert graph.leaves() is not graph.leaves()
