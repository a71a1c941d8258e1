"""Per-compilation configuration."""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from ..constants import DEFAULT_HASH_WORKERS, DEFAULT_MAX_PATHS, OP_ALIGNMENT


@dataclass(frozen=True)
class AlignmentPolicy:
    """Padding rules that make each path fit the fixed-step trace model."""

    op_alignment: dict = field(default_factory=lambda: dict(OP_ALIGNMENT))
    pad_trace: bool = True

    def modulus(self, op):
        return self.op_alignment.get(op, 1)

    def padding_before(self, op, cycle):
        """Number of ``noop`` cycles needed so ``op`` starts on an aligned cycle."""

        modulus = self.modulus(op)
        if modulus <= 1:
            return 0
        return (-cycle) % modulus

    def trace_length(self, cycles):
        """Final length of a path of ``cycles`` steps.

        The next power of two, doubled when ``cycles`` already is one so the
        trace always ends on at least one ``noop``.
        """

        if not self.pad_trace:
            return cycles
        length = 1
        while length < cycles:
            length <<= 1
        if length == cycles:
            length <<= 1
        return length

    def to_dict(self):
        return {"op_alignment": dict(sorted(self.op_alignment.items())), "pad_trace": self.pad_trace}


@dataclass(frozen=True)
class CompilerConfig:
    """Knobs for a single call to :func:`compile_program`."""

    max_paths: int = DEFAULT_MAX_PATHS
    alignment: AlignmentPolicy = field(default_factory=AlignmentPolicy)
    guard_branches: bool = False
    hash_workers: int = DEFAULT_HASH_WORKERS

    def __post_init__(self):
        if self.max_paths < 1:
            raise ValueError("max_paths must be at least 1")
        if self.hash_workers < 1:
            raise ValueError("hash_workers must be at least 1")

    def with_options(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        return {
            "max_paths": self.max_paths,
            "alignment": self.alignment.to_dict(),
            "guard_branches": self.guard_branches,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise TypeError("Compiler configuration must be built from a mapping")
        alignment = data.get("alignment") or {}
        return cls(
            max_paths=data.get("max_paths", DEFAULT_MAX_PATHS),
            alignment=AlignmentPolicy(
                op_alignment=dict(alignment.get("op_alignment", OP_ALIGNMENT)),
                pad_trace=alignment.get("pad_trace", True),
            ),
            guard_branches=data.get("guard_branches", False),
        )


DEFAULT_CONFIG = CompilerConfig()


__all__ = [
    "AlignmentPolicy",
    "CompilerConfig",
    "DEFAULT_CONFIG",
]
