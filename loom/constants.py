"""Shared constant values for the Loom assembler."""

# 2^128 - 45 * 2^40 + 1
FIELD_MODULUS = 340282366920938463463374557953744961537
FIELD_BYTES = 16

OPCODE_BYTES = 1
INSTRUCTION_WIDTH = OPCODE_BYTES + FIELD_BYTES

DEFAULT_MAX_PATHS = 32768
DEFAULT_HASH = "sha256"
DEFAULT_HASH_WORKERS = 1

# Cycle modulus an aligned instruction must start on.
OP_ALIGNMENT = {
    "push": 8,
    "rescr": 16,
}

HASH_STATE_WIDTH = 6
HASH_ROUNDS = 10

LOGBOOK_FILE = "loom.logbook.jsonl"
KEY_FILE = "loom_private_key.pem"
PUB_FILE = "loom_public_key.pem"
DOCUMENT_VERSION = "0.3"

__all__ = [
    "FIELD_MODULUS",
    "FIELD_BYTES",
    "OPCODE_BYTES",
    "INSTRUCTION_WIDTH",
    "DEFAULT_MAX_PATHS",
    "DEFAULT_HASH",
    "DEFAULT_HASH_WORKERS",
    "OP_ALIGNMENT",
    "HASH_STATE_WIDTH",
    "HASH_ROUNDS",
    "LOGBOOK_FILE",
    "KEY_FILE",
    "PUB_FILE",
    "DOCUMENT_VERSION",
]
