"""Construction of execution-path graphs from flow-annotated token streams."""
from __future__ import annotations

import logging

from .catalog import ELSE, ENDIF, IF_TRUE
from .config import DEFAULT_CONFIG
from .core import ExecutionGraph, Instruction, noop_padding
from .errors import AssemblySyntaxError, ResourceError
from .expander import expand_token

logger = logging.getLogger(__name__)


class _BranchFrame:
    """Bookkeeping for one open ``if.true`` construct."""

    __slots__ = ("token", "false_heads", "true_ends")

    def __init__(self, token, false_heads):
        self.token = token
        self.false_heads = false_heads
        self.true_ends = None


class GraphBuilder:
    """Single-pass builder of an :class:`ExecutionGraph`.

    The builder keeps a *frontier*: the leaves that currently receive code.
    Outside of any branch it holds one leaf per execution path built so far,
    so straight-line code following an ``endif`` is appended to every path.
    Open branches live on an explicit stack of frames.

    Every ``if.true`` doubles every path, including the paths waiting on the
    other side of enclosing branches, so a program with ``k`` branch
    constructs always has ``2**k`` leaves. A side without the nested construct
    simply appears once per choice made inside it.
    """

    def __init__(self, config=None):
        self.config = config or DEFAULT_CONFIG
        self.graph = ExecutionGraph()
        self.frontier = [self.graph.root]
        self.stack: list[_BranchFrame] = []
        self.leaf_count = 1

    # -- code emission ----------------------------------------------------

    def append(self, instructions):
        """Append ``instructions`` to every path in the frontier."""

        for index in self.frontier:
            self._emit(self.graph.nodes[index], instructions)

    def _emit(self, node, instructions):
        policy = self.config.alignment
        for instr in instructions:
            if instr.aligned:
                pad = policy.padding_before(instr.op, node.path_cycles)
                if pad:
                    node.block.extend(noop_padding(pad))
                    node.path_cycles += pad
            node.block.append(instr)
            node.path_cycles += instr.cycles

    # -- flow control -------------------------------------------------------

    def _fork(self, indices):
        """Split every node in ``indices``; return the true and false sides."""

        true_sides = []
        false_sides = []
        for index in indices:
            true_side, false_side = self.graph.split(index)
            true_sides.append(true_side.index)
            false_sides.append(false_side.index)
        return true_sides, false_sides

    def open_branch(self, token):
        if self.leaf_count <= self.config.max_paths:
            self.leaf_count *= 2
        if self.leaf_count > self.config.max_paths:
            # Past the limit nothing more is materialised and the count is
            # frozen at the branch that tripped it; the next endif reports it.
            self.stack.append(_BranchFrame(token, list(self.frontier)))
            return

        # Each construct is one more branch choice for every path, so paths
        # on the far side of enclosing branches are forked as well.
        for frame in self.stack:
            if frame.true_ends is None:
                true_sides, false_sides = self._fork(frame.false_heads)
                frame.false_heads = true_sides + false_sides
            else:
                true_sides, false_sides = self._fork(frame.true_ends)
                frame.true_ends = true_sides + false_sides

        true_heads, false_heads = self._fork(self.frontier)
        self.stack.append(_BranchFrame(token, false_heads))
        self.frontier = true_heads
        if self.config.guard_branches:
            self.append([Instruction("assert", origin=token)])

    def switch_branch(self, token):
        if not self.stack or self.stack[-1].true_ends is not None:
            raise AssemblySyntaxError("'else' without a preceding 'if.true'", token)
        frame = self.stack[-1]
        frame.true_ends = self.frontier
        self.frontier = list(frame.false_heads)
        if self.config.guard_branches and self.leaf_count <= self.config.max_paths:
            self.append(
                [Instruction("not", origin=token), Instruction("assert", origin=token)]
            )

    def close_branch(self, token):
        if not self.stack or self.stack[-1].true_ends is None:
            raise AssemblySyntaxError("'endif' does not close any open block", token)
        frame = self.stack.pop()
        logger.debug(
            "closed branch at %d:%d, %d paths", token.line, token.column, self.leaf_count
        )
        if self.leaf_count > self.config.max_paths:
            raise ResourceError(self.leaf_count, self.config.max_paths, token)
        self.frontier = frame.true_ends + self.frontier

    # -- driver -------------------------------------------------------------

    def feed(self, token):
        if token.name == IF_TRUE:
            self.open_branch(token)
        elif token.name == ELSE:
            self.switch_branch(token)
        elif token.name == ENDIF:
            self.close_branch(token)
        else:
            self.append(expand_token(token))

    def finish(self):
        """Pad every path to its trace length and return the graph."""

        if self.stack:
            raise AssemblySyntaxError("unterminated 'if.true'", self.stack[-1].token)
        policy = self.config.alignment
        for index in self.graph.leaves():
            node = self.graph.nodes[index]
            extra = policy.trace_length(node.path_cycles) - node.path_cycles
            if extra:
                node.block.extend(noop_padding(extra))
                node.path_cycles += extra
        self.graph.seal()
        logger.debug(
            "built execution graph: %d nodes, %d paths, depth %d",
            len(self.graph.nodes),
            self.leaf_count,
            self.graph.depth,
        )
        return self.graph


def build_graph(tokens, config=None):
    """Build the execution graph for a validated token sequence."""

    builder = GraphBuilder(config)
    for token in tokens:
        builder.feed(token)
    return builder.finish()


__all__ = [
    "GraphBuilder",
    "build_graph",
]
