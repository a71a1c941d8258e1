"""Path hashing and Merkle tree construction for program commitments."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging

from ..constants import FIELD_BYTES, OPCODE_BYTES
from .capabilities import resolve_hash
from .errors import HashFailure

logger = logging.getLogger(__name__)


def encode_instruction(instr):
    """Fixed-width encoding: opcode byte then a 16-byte little-endian immediate."""

    value = instr.value or 0
    return instr.code.to_bytes(OPCODE_BYTES, "little") + value.to_bytes(FIELD_BYTES, "little")


def encode_path(instructions):
    return b"".join(encode_instruction(instr) for instr in instructions)


def hash_path(instructions, hash_fn):
    return resolve_hash(hash_fn)(encode_path(instructions))


def hash_leaves(paths, hash_fn, workers=1):
    """Hash every leaf path, keeping the input order.

    With ``workers > 1`` the leaves are hashed on a thread pool; ``map``
    returns results in submission order so leaf indices are preserved.
    """

    capability = resolve_hash(hash_fn)
    encoded = [encode_path(path) for path in paths]
    if workers > 1 and len(encoded) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            digests = list(pool.map(capability, encoded))
    else:
        digests = [capability(data) for data in encoded]
    _check_widths(digests, capability.name)
    return digests


def _check_widths(digests, name):
    widths = {len(d) for d in digests}
    if len(widths) > 1:
        raise HashFailure(
            f"hash capability '{name}' produced digests of differing sizes: {sorted(widths)}"
        )


class MerkleTree:
    """Binary Merkle tree over leaf digests.

    ``levels[0]`` holds the leaf digests and ``levels[-1]`` holds the single
    root. Levels are stored as tuples; a committed tree is not edited.
    """

    def __init__(self, levels, leaf_count):
        self.levels = levels
        self.leaf_count = leaf_count

    @property
    def leaves(self):
        return list(self.levels[0])

    @property
    def nodes(self):
        """Internal digests level by level, from just above the leaves to the root."""

        return [digest for level in self.levels[1:] for digest in level]

    @property
    def root(self):
        return self.levels[-1][0]

    @property
    def height(self):
        return len(self.levels) - 1

    def proof(self, index):
        """Sibling digests from the leaf level up to just below the root."""

        if not 0 <= index < self.leaf_count:
            raise IndexError(f"Leaf index {index} out of range (0..{self.leaf_count - 1})")
        path = []
        for level in self.levels[:-1]:
            path.append(level[index ^ 1])
            index >>= 1
        return path

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<MerkleTree leaves={self.leaf_count} root={self.root.hex()[:12]}…>"


def build_merkle_tree(digests, hash_fn):
    """Fold ordered leaf digests into a Merkle tree with ``hash(left || right)``."""

    if not digests:
        raise ValueError("Cannot build a Merkle tree without leaves")
    capability = resolve_hash(hash_fn)
    _check_widths(digests, capability.name)

    count = len(digests)
    if count & (count - 1):
        raise ValueError(f"Merkle tree needs a power-of-two leaf count, got {count}")

    level = tuple(digests)
    levels = [level]
    while len(level) > 1:
        level = tuple(capability(level[i] + level[i + 1]) for i in range(0, len(level), 2))
        levels.append(level)
    _check_widths([d for lvl in levels for d in lvl], capability.name)
    logger.debug("merkle root %s over %d leaves", level[0].hex(), count)
    return MerkleTree(tuple(levels), count)


def verify_merkle_proof(root, digest, index, proof, hash_fn):
    """Recompute the root from a leaf digest and its authentication path."""

    capability = resolve_hash(hash_fn)
    needle = digest
    for sibling in proof:
        if index & 1:
            needle = capability(sibling + needle)
        else:
            needle = capability(needle + sibling)
        index >>= 1
    return index == 0 and needle == root


__all__ = [
    "MerkleTree",
    "build_merkle_tree",
    "encode_instruction",
    "encode_path",
    "hash_leaves",
    "hash_path",
    "verify_merkle_proof",
]
