"""Hash capabilities injected into the path hasher and Merkle builder."""
from __future__ import annotations

import hashlib
from typing import Callable

from .errors import HashFailure


class HashCapability:
    """A named ``bytes -> digest`` function passed explicitly to the compiler.

    Errors raised by the wrapped function propagate unchanged. A result that
    is not a non-empty byte string raises :class:`HashFailure`.
    """

    def __init__(self, name: str, fn: Callable[[bytes], bytes]):
        if not callable(fn):
            raise TypeError("hash capability requires a callable")
        self.name = name
        self.fn = fn

    def __call__(self, data: bytes) -> bytes:
        digest = self.fn(data)
        if not isinstance(digest, (bytes, bytearray)):
            raise HashFailure(
                f"hash capability '{self.name}' returned {type(digest).__name__}, expected bytes"
            )
        if not digest:
            raise HashFailure(f"hash capability '{self.name}' returned an empty digest")
        return bytes(digest)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<HashCapability {self.name}>"


def _hashlib_digest(name, **params):
    return lambda data: hashlib.new(name, data, **params).digest()


HASH_FACTORIES = {
    "sha256": lambda: HashCapability("sha256", _hashlib_digest("sha256")),
    "sha3_256": lambda: HashCapability("sha3_256", _hashlib_digest("sha3_256")),
    "blake2s": lambda: HashCapability("blake2s", lambda d: hashlib.blake2s(d).digest()),
    "blake2b": lambda: HashCapability(
        "blake2b", lambda d: hashlib.blake2b(d, digest_size=32).digest()
    ),
}


def available_hashes():
    return sorted(HASH_FACTORIES)


def resolve_hash(selector) -> HashCapability:
    """Turn a name, callable or :class:`HashCapability` into a capability."""

    if isinstance(selector, HashCapability):
        return selector
    if isinstance(selector, str):
        factory = HASH_FACTORIES.get(selector.lower())
        if factory is None:
            raise ValueError(
                f"Unknown hash function '{selector}' (available: {', '.join(available_hashes())})"
            )
        return factory()
    if callable(selector):
        name = getattr(selector, "__name__", None) or type(selector).__name__
        return HashCapability(name, selector)
    raise TypeError("hash_fn must be a hash name, a callable or a HashCapability")


__all__ = [
    "HASH_FACTORIES",
    "HashCapability",
    "available_hashes",
    "resolve_hash",
]
