"""Module entry-point for ``python -m loom``."""

from .assembler import main


def _run() -> None:
    import sys

    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    _run()
