"""Command-line interface for the Loom assembler."""
from __future__ import annotations

import argparse
import logging
import sys

from ..constants import DEFAULT_HASH, DEFAULT_HASH_WORKERS, DEFAULT_MAX_PATHS
from .analysis import (
    export_graphviz,
    format_path,
    print_graph,
    summarize_program,
    visualize_graph,
)
from .bitcode import (
    diff_program_documents,
    export_program,
    hash_document_file,
    load_program_document,
    record_build,
    show_logbook,
)
from .capabilities import available_hashes
from .compiler import compile_program
from .config import AlignmentPolicy, CompilerConfig
from .crypto import verify_signature
from .errors import AssemblyError


def parse_args(args):
    argp = argparse.ArgumentParser(description="Loom assembler")

    argp.add_argument("file", nargs="?", help="Assembly source file to compile")
    argp.add_argument("--src", help="Inline assembly source")
    argp.add_argument(
        "--hash",
        default=DEFAULT_HASH,
        choices=available_hashes(),
        help="Hash function used for the program commitment",
    )
    argp.add_argument(
        "--max-paths",
        type=int,
        default=DEFAULT_MAX_PATHS,
        help="Abort when the program has more execution paths than this",
    )
    argp.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_HASH_WORKERS,
        help="Threads used to hash execution paths",
    )
    argp.add_argument(
        "--no-pad", action="store_true", help="Do not pad paths to the trace length"
    )
    argp.add_argument(
        "--guard-branches",
        action="store_true",
        help="Start each branch side with an assertion on the condition",
    )
    argp.add_argument("--show", type=int, metavar="N", help="Print the instructions of path N")
    argp.add_argument("--proof", type=int, metavar="N", help="Print the Merkle proof of path N")
    argp.add_argument("--out", metavar="OUTPUT", help="Write a .loom.json program document")
    argp.add_argument(
        "--record", action="store_true", help="Sign and record the written document"
    )
    argp.add_argument("--load", help="Load and verify a .loom.json program document")
    argp.add_argument(
        "--diff",
        nargs=2,
        metavar=("A", "B"),
        help="Compare two .loom.json program documents",
    )
    argp.add_argument("--doc-hash", help="Compute hash of a .loom.json program document")
    argp.add_argument("--logbook", action="store_true", help="Show the build logbook")
    argp.add_argument("--verify", help="Verify signature for a logbook entry hash")
    argp.add_argument("--viz", metavar="OUTPUT", help="Export a Graphviz SVG of the paths")
    argp.add_argument("--visualize", action="store_true", help="Render the execution graph")
    argp.add_argument("-v", "--verbose", action="store_true", help="Log pipeline details")

    return argp.parse_args(args)


def _config_from(params):
    return CompilerConfig(
        max_paths=params.max_paths,
        alignment=AlignmentPolicy(pad_trace=not params.no_pad),
        guard_branches=params.guard_branches,
        hash_workers=params.workers,
    )


def _read_source(params):
    if params.src is not None:
        return params.src
    if params.file:
        with open(params.file, "r", encoding="utf-8") as f:
            return f.read()
    return None


def _handle_documents(params):
    """Run document-only commands; return an exit code or ``None``."""

    try:
        if params.diff:
            diff_program_documents(params.diff[0], params.diff[1])
            return 0
        if params.doc_hash:
            hash_document_file(params.doc_hash)
            return 0
        if params.load:
            doc = load_program_document(params.load)
            print(f"Loaded Loom program v{doc['loom_version']} ({params.load})")
            print(f"  ✓ commitment verified: {doc['root']}")
            print(f"  → {len(doc['leaves'])} path(s), hash {doc['hash']}")
            return 0
    except (OSError, ValueError) as exc:
        print(f"✗ {exc}")
        return 1
    if params.logbook:
        show_logbook()
        return 0
    if params.verify:
        ok = verify_signature(params.verify, input("Signature hex: ").strip())
        print("✓ Signature valid" if ok else "✗ Invalid signature")
        return 0 if ok else 1
    return None


def main(args):
    params = parse_args(args)
    if params.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    status = _handle_documents(params)
    if status is not None:
        return status

    try:
        source = _read_source(params)
    except OSError as exc:
        print(f"✗ {exc}")
        return 1
    if source is None:
        print("✗ No source given; pass a file or --src")
        return 1

    try:
        config = _config_from(params)
        program = compile_program(source, params.hash, config=config)
    except (AssemblyError, ValueError) as exc:
        print(f"✗ {exc}")
        return 1

    summary = summarize_program(program)
    print(f"Program root ({summary['hash']}): {summary['root']}")
    print(
        f"  → {summary['paths']} path(s), {summary['branches']} branch(es), "
        f"depth {summary['depth']}"
    )
    print_graph(program, indent=1)

    try:
        if params.show is not None:
            path = program.path(params.show)
            print(f"\nPath #{params.show} ({len(path)} cycles):")
            print("  " + format_path(path, include_padding=True))
        if params.proof is not None:
            print(f"\nMerkle proof for path #{params.proof}:")
            for level, digest in enumerate(program.proof(params.proof)):
                print(f"  {level}: {digest.hex()}")
    except IndexError as exc:
        print(f"✗ {exc}")
        return 1

    if params.out:
        export_program(program, params.out)
        if params.record:
            record_build(params.out)
    if params.viz:
        export_graphviz(program, params.viz)
    if params.visualize:
        visualize_graph(program)
    return 0


def run():  # pragma: no cover
    sys.exit(main(sys.argv[1:]))


__all__ = [
    "main",
    "parse_args",
    "run",
]


if __name__ == "__main__":  # pragma: no cover
    run()
