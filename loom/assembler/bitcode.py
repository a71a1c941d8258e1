"""Loom program documents: JSON serialization, verification and provenance."""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import json

from ..constants import DOCUMENT_VERSION, LOGBOOK_FILE
from . import crypto as _crypto
from .capabilities import resolve_hash
from .catalog import PRIMITIVES
from .core import Instruction
from .merkle import build_merkle_tree, encode_path


def _instruction_text(instr):
    return str(instr)


def _parse_instruction_text(text):
    op, _, value = text.partition(".")
    if op not in PRIMITIVES:
        raise ValueError(f"Unknown primitive '{op}' in program document")
    return Instruction(op, int(value) if value else None)


def build_program_document(program):
    """Create an in-memory document describing a compiled program."""

    graph = program.graph
    leaves = []
    for position, node_index in enumerate(graph.leaves()):
        path = graph.path(position)
        leaves.append(
            {
                "index": position,
                "node": node_index,
                "digest": program.tree.leaves[position].hex(),
                "cycles": len(path),
                "padding": sum(1 for instr in path if instr.padding),
                "instructions": [_instruction_text(instr) for instr in path],
            }
        )

    return {
        "loom_version": DOCUMENT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": program.source,
        "hash": program.hash_name,
        "config": program.config.to_dict(),
        "graph": {
            "root": graph.root,
            "depth": graph.depth,
            "nodes": [
                {
                    "index": node.index,
                    "parent": node.parent,
                    "children": list(node.children) if node.children else None,
                    "length": len(node.block),
                }
                for node in graph.nodes
            ],
        },
        "leaves": leaves,
        "nodes": [digest.hex() for digest in program.tree.nodes],
        "root": program.root_hex,
    }


def write_program_document(doc, filename):
    """Persist a program document to disk."""

    with open(filename, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    print(f"  ✓ Loom program exported → {filename}")
    return doc


def export_program(program, filename="program.loom.json"):
    doc = build_program_document(program)
    return write_program_document(doc, filename)


def verify_program_document(doc, hash_fn=None):
    """Recompute every leaf digest and the Merkle root of a stored document.

    The hash capability defaults to the one named in the document.
    """

    for key in ("hash", "leaves", "root"):
        if key not in doc:
            raise ValueError(f"Program document missing '{key}'")
    leaves = doc["leaves"]
    if not leaves:
        raise ValueError("Program document has no leaves")

    capability = resolve_hash(hash_fn if hash_fn is not None else doc["hash"])
    digests = []
    for entry in leaves:
        path = [_parse_instruction_text(text) for text in entry["instructions"]]
        digest = capability(encode_path(path))
        if digest.hex() != entry["digest"]:
            raise ValueError(f"Leaf {entry['index']} digest mismatch")
        digests.append(digest)

    tree = build_merkle_tree(digests, capability)
    if "nodes" in doc and [d.hex() for d in tree.nodes] != doc["nodes"]:
        raise ValueError("Internal node digests mismatch")
    if tree.root.hex() != doc["root"]:
        raise ValueError("Program root mismatch")
    return True


def load_program_document(filename):
    """Load a program document and verify its commitment."""

    with open(filename, "r", encoding="utf-8") as f:
        doc = json.load(f)
    verify_program_document(doc)
    return doc


def canonicalize_document(doc):
    """
    Normalize a document so identical programs produce identical JSON
    regardless of build time or key order.
    """

    def sort_dict(d):
        if isinstance(d, dict):
            return {k: sort_dict(v) for k, v in sorted(d.items()) if k != "timestamp"}
        elif isinstance(d, list):
            return [sort_dict(x) for x in d]
        else:
            return d

    return sort_dict(doc)


def hash_program_document(doc):
    """SHA-256 of the canonical JSON form of a document."""

    canon = canonicalize_document(doc)
    data = json.dumps(canon, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hash_document_file(filename):
    doc = load_program_document(filename)
    h = hash_program_document(doc)
    print(f"SHA256({filename}) = {h}")
    return h


def diff_program_documents(file_a, file_b):
    """Compare two program documents and print their differences."""

    a = canonicalize_document(load_program_document(file_a))
    b = canonicalize_document(load_program_document(file_b))

    ha = hash_program_document(a)
    hb = hash_program_document(b)
    if ha == hb:
        print(f"✓ Programs are identical ({ha})")
        return []

    differences = []
    if a["root"] != b["root"]:
        differences.append(f"root differs: {a['root'][:16]}… vs {b['root'][:16]}…")
    if a["hash"] != b["hash"]:
        differences.append(f"hash function differs: {a['hash']} vs {b['hash']}")
    la, lb = a["leaves"], b["leaves"]
    if len(la) != len(lb):
        differences.append(f"path count differs: {len(la)} vs {len(lb)}")
    for leaf_a, leaf_b in zip(la, lb):
        if leaf_a["instructions"] != leaf_b["instructions"]:
            differences.append(
                f"path {leaf_a['index']} instructions differ "
                f"({leaf_a['cycles']} vs {leaf_b['cycles']} cycles)"
            )
    if a["config"] != b["config"]:
        differences.append("compiler configuration differs")

    print(f"✗ Programs differ\n  {file_a[:30]}…: {ha}\n  {file_b[:30]}…: {hb}")
    for line in differences:
        print(f"  • {line}")
    return differences


def record_build(document_filename, logbook_path=LOGBOOK_FILE, signer=None):
    """Append this build's commitment to the logbook, signed."""

    doc = load_program_document(document_filename)
    sha = hash_program_document(doc)
    signer = signer or _crypto.sign_hash
    sig = signer(sha)

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "filename": document_filename,
        "document_hash": sha,
        "root": doc["root"],
        "hash": doc["hash"],
        "paths": len(doc["leaves"]),
        "signature": sig,
    }

    with open(logbook_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry) + "\n")

    print(f"  📜 Recorded and signed build → {logbook_path}")
    return entry


def show_logbook(limit=10, logbook_path=LOGBOOK_FILE):
    """Display recent logbook entries."""

    try:
        with open(logbook_path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        print("No logbook yet.")
        return []

    entries = [json.loads(l) for l in lines[-limit:]]
    print(f"\nLoom Logbook — last {len(entries)} entries:")
    for e in reversed(entries):
        print(
            f"• {e['timestamp']}  {e['filename']}  [{e['hash']} × {e['paths']}]  {e['root'][:12]}…"
        )
    return entries


__all__ = [
    "build_program_document",
    "canonicalize_document",
    "diff_program_documents",
    "export_program",
    "hash_document_file",
    "hash_program_document",
    "load_program_document",
    "record_build",
    "show_logbook",
    "verify_program_document",
    "write_program_document",
]
