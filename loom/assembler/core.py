"""Core data structures for the Loom assembler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .catalog import PRIMITIVES
from .errors import SealedGraphError


@dataclass(frozen=True)
class AssemblyToken:
    """A parsed ``name[.param]`` token with its source position."""

    name: str
    param: Optional[int]
    raw: str
    index: int = 0
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class Instruction:
    """A primitive VM operation with an optional field element immediate."""

    op: str
    value: Optional[int] = None
    cycles: int = 1
    padding: bool = False
    aligned: bool = False
    origin: Optional[AssemblyToken] = None

    @property
    def code(self) -> int:
        return PRIMITIVES[self.op]

    def __str__(self) -> str:
        if self.value is None:
            return self.op
        return f"{self.op}.{self.value}"


def noop_padding(count: int) -> list[Instruction]:
    return [Instruction("noop", padding=True) for _ in range(count)]


class Block:
    """Straight-line sequence of instructions with no internal branching."""

    def __init__(self, instructions: Iterable[Instruction] | None = None):
        self.instructions: list[Instruction] = list(instructions or [])

    def append(self, instruction: Instruction) -> None:
        self._check_open()
        self.instructions.append(instruction)

    def extend(self, instructions: Iterable[Instruction]) -> None:
        self._check_open()
        self.instructions.extend(instructions)

    def seal(self) -> None:
        self.instructions = tuple(self.instructions)

    def _check_open(self) -> None:
        if isinstance(self.instructions, tuple):
            raise SealedGraphError("cannot modify a block of a sealed execution graph")

    @property
    def cycles(self) -> int:
        return sum(instr.cycles for instr in self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return "Block(" + " ".join(map(str, self.instructions)) + ")"


class ExecutionNode:
    """Arena entry: a block of code followed by an optional two-way branch.

    A node without children is a leaf. A node with children is a branch whose
    ``children`` tuple holds the arena indices of the true and false sides.
    """

    def __init__(self, index: int, parent: Optional[int] = None, depth: int = 0):
        self.index = index
        self.parent = parent
        self.depth = depth
        self.block = Block()
        self.children: Optional[tuple[int, int]] = None
        # Cycle count of the path from the root to the end of this block.
        self.path_cycles = 0

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        kind = "Leaf" if self.is_leaf else f"Branch{self.children}"
        return f"<{kind} #{self.index} len={len(self.block)}>"


class ExecutionGraph:
    """Binary tree of execution paths stored as an arena of nodes."""

    def __init__(self):
        self.nodes: list[ExecutionNode] = [ExecutionNode(0)]
        self.root = 0
        self._leaves: Optional[list[int]] = None
        self.sealed = False

    def seal(self) -> None:
        """Freeze the graph once built; later structural edits raise."""

        for node in self.nodes:
            node.block.seal()
        self._leaf_order()
        self.sealed = True

    def new_node(self, parent: int) -> ExecutionNode:
        if self.sealed:
            raise SealedGraphError("cannot add nodes to a sealed execution graph")
        node = ExecutionNode(
            len(self.nodes), parent=parent, depth=self.nodes[parent].depth + 1
        )
        node.path_cycles = self.nodes[parent].path_cycles
        self.nodes.append(node)
        self._leaves = None
        return node

    def split(self, index: int) -> tuple[ExecutionNode, ExecutionNode]:
        """Turn leaf ``index`` into a branch and return its two new children."""

        if self.sealed:
            raise SealedGraphError("cannot split a node of a sealed execution graph")
        if not self.nodes[index].is_leaf:
            raise ValueError(f"Node {index} is already a branch")
        true_side = self.new_node(index)
        false_side = self.new_node(index)
        self.nodes[index].children = (true_side.index, false_side.index)
        return true_side, false_side

    def _leaf_order(self) -> list[int]:
        if self._leaves is None:
            order = []
            stack = [self.root]
            while stack:
                node = self.nodes[stack.pop()]
                if node.children is None:
                    order.append(node.index)
                else:
                    true_side, false_side = node.children
                    stack.append(false_side)
                    stack.append(true_side)
            self._leaves = order
        return self._leaves

    def leaves(self) -> list[int]:
        """Leaf indices in canonical order: depth-first, true side first."""

        return list(self._leaf_order())

    @property
    def leaf_count(self) -> int:
        return sum(1 for node in self.nodes if node.children is None)

    @property
    def branch_count(self) -> int:
        return sum(1 for node in self.nodes if node.children is not None)

    @property
    def depth(self) -> int:
        return max(node.depth for node in self.nodes)

    def lineage(self, index: int) -> list[ExecutionNode]:
        """Nodes from the root down to ``index``."""

        chain = []
        cursor: Optional[int] = index
        while cursor is not None:
            node = self.nodes[cursor]
            chain.append(node)
            cursor = node.parent
        chain.reverse()
        return chain

    def _path_of(self, leaf_index: int) -> list[Instruction]:
        instructions: list[Instruction] = []
        for node in self.lineage(leaf_index):
            instructions.extend(node.block)
        return instructions

    def path(self, leaf_position: int) -> list[Instruction]:
        """Linear instruction sequence of the leaf at ``leaf_position``."""

        leaves = self._leaf_order()
        if not 0 <= leaf_position < len(leaves):
            raise IndexError(
                f"Leaf index {leaf_position} out of range (0..{len(leaves) - 1})"
            )
        return self._path_of(leaves[leaf_position])

    def paths(self) -> list[list[Instruction]]:
        return [self._path_of(index) for index in self._leaf_order()]

    def shape(self) -> list[Optional[tuple[int, int]]]:
        """Structure of the arena, independent of block contents."""

        return [node.children for node in self.nodes]

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<ExecutionGraph nodes={len(self.nodes)} leaves={self.leaf_count}>"


def strip_padding(instructions: Iterable[Instruction]) -> list[Instruction]:
    return [instr for instr in instructions if not instr.padding]


__all__ = [
    "AssemblyToken",
    "Block",
    "ExecutionGraph",
    "ExecutionNode",
    "Instruction",
    "noop_padding",
    "strip_padding",
]
