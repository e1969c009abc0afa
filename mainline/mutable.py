"""BEP 44 mutable items: signing, verification and targets."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Union

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from .id import Id

PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64


class MutableError(ValueError):
    """A mutable item received from the network is invalid."""


class InvalidMutableSignature(MutableError):
    """The mutable item signature is invalid."""

    def __init__(self) -> None:
        super().__init__("Invalid mutable item signature")


class InvalidMutablePublicKey(MutableError):
    """The mutable item public key is invalid."""

    def __init__(self) -> None:
        super().__init__("Invalid mutable item public key")


def encode_signable(seq: int, value: bytes, salt: Optional[bytes] = None) -> bytes:
    """Return the bytes a mutable item's signature covers."""
    parts = []
    if salt is not None:
        parts.append(f"4:salt{len(salt)}:".encode())
        parts.append(bytes(salt))
    parts.append(f"3:seqi{seq}e1:v{len(value)}:".encode())
    parts.append(bytes(value))
    return b"".join(parts)


@dataclass(frozen=True)
class MutableItem:
    """A signed mutable item as described in BEP 44."""

    target: Id
    key: bytes
    seq: int
    value: bytes
    signature: bytes
    salt: Optional[bytes] = None

    @classmethod
    def create(
        cls,
        signing_key: Union[SigningKey, bytes],
        value: bytes,
        seq: int,
        salt: Optional[bytes] = None,
    ) -> "MutableItem":
        """Sign ``value`` with ``seq`` and optional ``salt`` and build the item."""
        if not isinstance(signing_key, SigningKey):
            signing_key = SigningKey(bytes(signing_key))
        signature = signing_key.sign(encode_signable(seq, value, salt)).signature
        return cls.new_signed_unchecked(
            bytes(signing_key.verify_key), signature, value, seq, salt
        )

    @staticmethod
    def target_from_key(public_key: bytes, salt: Optional[bytes] = None) -> Id:
        """Return the target for a public key and optional salt."""
        digest = hashlib.sha1(bytes(public_key))
        if salt is not None:
            digest.update(bytes(salt))
        return Id(digest.digest())

    @classmethod
    def new_signed_unchecked(
        cls,
        key: bytes,
        signature: bytes,
        value: bytes,
        seq: int,
        salt: Optional[bytes] = None,
    ) -> "MutableItem":
        """Build an item from an already signed value without verifying it."""
        salt = None if salt is None else bytes(salt)
        return cls(
            target=cls.target_from_key(key, salt),
            key=bytes(key),
            seq=seq,
            value=bytes(value),
            signature=bytes(signature),
            salt=salt,
        )

    @classmethod
    def from_dht_message(
        cls,
        target: Id,
        key: bytes,
        value: bytes,
        seq: int,
        signature: bytes,
        salt: Optional[bytes] = None,
    ) -> "MutableItem":
        """Build an item received from the network, verifying its signature."""
        key = bytes(key)
        signature = bytes(signature)
        if len(key) != PUBLIC_KEY_SIZE:
            raise InvalidMutablePublicKey()
        try:
            verify_key = VerifyKey(key)
        except (CryptoError, ValueError, TypeError) as exc:
            raise InvalidMutablePublicKey() from exc
        if len(signature) != SIGNATURE_SIZE:
            raise InvalidMutableSignature()
        salt = None if salt is None else bytes(salt)
        try:
            verify_key.verify(encode_signable(seq, value, salt), signature)
        except (CryptoError, ValueError, TypeError) as exc:
            raise InvalidMutableSignature() from exc
        return cls(
            target=target,
            key=key,
            seq=seq,
            value=bytes(value),
            signature=signature,
            salt=salt,
        )