"""Compilation pipeline: source text to program commitment."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .capabilities import resolve_hash
from .config import DEFAULT_CONFIG, CompilerConfig
from .core import ExecutionGraph, strip_padding
from .graph import build_graph
from .merkle import MerkleTree, build_merkle_tree, hash_leaves, verify_merkle_proof
from .parser import parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Program:
    """Compiled program: execution graph plus the Merkle tree committing to it.

    Leaf ``i`` of the tree is the ``i``-th path of the graph in canonical
    order (depth-first, true side before false side).
    """

    source: str
    graph: ExecutionGraph
    tree: MerkleTree
    hash_name: str
    config: CompilerConfig

    @property
    def root(self) -> bytes:
        return self.tree.root

    @property
    def root_hex(self) -> str:
        return self.tree.root.hex()

    @property
    def leaf_count(self) -> int:
        return self.tree.leaf_count

    @property
    def depth(self) -> int:
        return self.graph.depth

    def path(self, index):
        return self.graph.path(index)

    def instructions(self, index, include_padding=True):
        path = self.graph.path(index)
        return path if include_padding else strip_padding(path)

    def leaf_digest(self, index):
        return self.tree.leaves[index]

    def proof(self, index):
        return self.tree.proof(index)

    def verify_path(self, index, hash_fn):
        """Check leaf ``index`` against the root with ``hash_fn``."""

        return verify_merkle_proof(
            self.root, self.leaf_digest(index), index, self.proof(index), hash_fn
        )

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<Program {self.hash_name}:{self.root_hex[:12]}… paths={self.leaf_count}>"


def compile_program(source, hash_fn, *, config=None):
    """Run the full pipeline and return an immutable :class:`Program`.

    ``hash_fn`` is the hash capability used for leaves and internal nodes. It
    has no default: pass a registered name, a ``bytes -> bytes`` callable or a
    :class:`~loom.assembler.capabilities.HashCapability`. The first failure in
    any stage is raised; nothing partial is returned. The returned graph is
    sealed and the tree levels are tuples.
    """

    config = config or DEFAULT_CONFIG
    capability = resolve_hash(hash_fn)

    tokens = parse(source)
    graph = build_graph(tokens, config)
    digests = hash_leaves(graph.paths(), capability, workers=config.hash_workers)
    tree = build_merkle_tree(digests, capability)

    logger.debug(
        "compiled %d tokens into %d paths, root %s", len(tokens), tree.leaf_count, tree.root.hex()
    )
    return Program(
        source=source,
        graph=graph,
        tree=tree,
        hash_name=capability.name,
        config=config,
    )


compile = compile_program


__all__ = [
    "Program",
    "compile_program",
]
