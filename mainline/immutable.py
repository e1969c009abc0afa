"""Hashing and validation of immutable items."""

from __future__ import annotations

import hashlib

from .id import Id


def hash_immutable(value: bytes) -> bytes:
    """Return the SHA-1 of the bencoded byte string ``value``."""
    encoded = f"{len(value)}:".encode() + bytes(value)
    return hashlib.sha1(encoded).digest()


def validate_immutable(value: bytes, target: Id) -> bool:
    """Return whether ``value`` hashes to ``target``."""
    return hash_immutable(value) == bytes(target)