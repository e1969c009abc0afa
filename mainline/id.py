"""Kademlia node Ids and lookup targets, including BEP 42 secure Ids."""

from __future__ import annotations

import ipaddress
import os
import string
from dataclasses import dataclass
from typing import Union

ID_SIZE = 20
MAX_DISTANCE = ID_SIZE * 8

IPV4_MASK = 0x030F3FFF

_CASTAGNOLI_POLY = 0x82F63B78

_PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)

IPv4Like = Union[ipaddress.IPv4Address, str, int]


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        crc = n
        for _ in range(8):
            crc = (crc >> 1) ^ _CASTAGNOLI_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_CRC_TABLE = _make_crc_table()


def crc32c(data: bytes) -> int:
    """Return the CRC-32C (Castagnoli) checksum of ``data``."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = _CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


class DecodeIdError(ValueError):
    """An Id could not be decoded."""


class InvalidIdSize(DecodeIdError):
    """The Id was not exactly 20 bytes long."""

    def __init__(self, size: int) -> None:
        super().__init__(f"Invalid Id size, expected {ID_SIZE}, got {size}")
        self.size = size


class OddNumberOfCharactersError(DecodeIdError):
    """A hex encoding held an odd number of characters."""

    def __init__(self) -> None:
        super().__init__("Hex encoding should contain an even number of hex characters")


class InvalidHexCharacterError(DecodeIdError):
    """A hex encoding held a pair of characters that is not a hex byte."""

    def __init__(self, pair: str) -> None:
        super().__init__(f"Invalid Id encoding: {pair}")
        self.pair = pair


def _to_ipv4(ip: IPv4Like) -> ipaddress.IPv4Address:
    if isinstance(ip, ipaddress.IPv4Address):
        return ip
    return ipaddress.IPv4Address(ip)


def _is_exempt(ip: ipaddress.IPv4Address) -> bool:
    return ip.is_link_local or ip.is_loopback or any(ip in net for net in _PRIVATE_NETWORKS)


def first_21_bits(data: bytes) -> bytes:
    """Return the first 21 bits of ``data`` as three bytes, low bits of the third cleared."""
    return bytes((data[0], data[1], data[2] & 0xF8))


def id_prefix_ipv4(ip: IPv4Like, r: int) -> bytes:
    """Return the three-byte BEP 42 prefix for an IPv4 address and random byte ``r``."""
    ip_int = int(_to_ipv4(ip))
    masked = ((ip_int & IPV4_MASK) | ((r & 0xFF) << 29)) & 0xFFFFFFFF
    crc = crc32c(masked.to_bytes(4, "big"))
    return crc.to_bytes(4, "big")[:3]


def from_ipv4_and_r(data: bytes, ip: IPv4Like, r: int) -> "Id":
    """Build a BEP 42 Id from 20 random bytes, an IPv4 address and a random byte ``r``."""
    if len(data) != ID_SIZE:
        raise InvalidIdSize(len(data))
    buf = bytearray(data)
    prefix = id_prefix_ipv4(ip, r)
    buf[0] = prefix[0]
    buf[1] = prefix[1]
    buf[2] = (prefix[2] & 0xF8) | (buf[2] & 0x07)
    buf[ID_SIZE - 1] = r & 0xFF
    return Id(bytes(buf))


@dataclass(frozen=True, order=True)
class Id:
    """A 160-bit Kademlia node Id or lookup target."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, bytes):
            object.__setattr__(self, "raw", bytes(self.raw))
        if len(self.raw) != ID_SIZE:
            raise InvalidIdSize(len(self.raw))

    @classmethod
    def random(cls) -> "Id":
        """Generate a random Id."""
        return cls(os.urandom(ID_SIZE))

    @classmethod
    def from_bytes(cls, data) -> "Id":
        """Create an Id from exactly 20 bytes."""
        return cls(bytes(data))

    @classmethod
    def from_hex(cls, text: str) -> "Id":
        """Decode an Id from its hex encoding."""
        if len(text) % 2 != 0:
            raise OddNumberOfCharactersError()
        out = bytearray()
        for start in range(0, len(text), 2):
            pair = text[start:start + 2]
            if not all(ch in string.hexdigits for ch in pair):
                raise InvalidHexCharacterError(pair)
            out.append(int(pair, 16))
        return cls.from_bytes(out)

    @classmethod
    def from_ip(cls, ip) -> "Id":
        """Create a secure Id for an IP address; only IPv4 is supported."""
        address = ip if isinstance(ip, ipaddress._BaseAddress) else ipaddress.ip_address(ip)
        if isinstance(address, ipaddress.IPv6Address):
            raise ValueError("Ipv6 is not supported")
        return cls.from_ipv4(address)

    @classmethod
    def from_ipv4(cls, ip: IPv4Like) -> "Id":
        """Create a random secure Id for an IPv4 address according to BEP 42."""
        rand = os.urandom(ID_SIZE + 1)
        return from_ipv4_and_r(rand[1:], ip, rand[0])

    def distance(self, other: "Id") -> int:
        """Return 160 minus the number of leading bits shared with ``other``."""
        return MAX_DISTANCE - self.xor(other).leading_zeros()

    def leading_zeros(self) -> int:
        """Return the number of leading zero bits of this Id."""
        return MAX_DISTANCE - int.from_bytes(self.raw, "big").bit_length()

    def xor(self, other: "Id") -> "Id":
        """Return the bitwise XOR of two Ids."""
        return Id(bytes(a ^ b for a, b in zip(self.raw, other.raw)))

    def is_valid_for_ip(self, ip: IPv4Like) -> bool:
        """Return whether this Id is a valid BEP 42 Id for ``ip``."""
        address = _to_ipv4(ip)
        if _is_exempt(address):
            return True
        expected = first_21_bits(id_prefix_ipv4(address, self.raw[ID_SIZE - 1]))
        return self.first_21_bits() == expected

    def first_21_bits(self) -> bytes:
        """Return the first 21 bits of this Id."""
        return first_21_bits(self.raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw.hex()

    def __repr__(self) -> str:
        return f"Id({self.raw.hex()})"