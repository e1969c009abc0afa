"""Compact wire encodings of addresses, nodes and peers used in KRPC messages."""

from __future__ import annotations

import ipaddress
from typing import Iterable, List, Tuple

from .id import ID_SIZE, Id
from .node import Node, SocketAddr

SOCKADDR_V4_SIZE = 6
SOCKADDR_V6_SIZE = 18
NODE_BYTE_SIZE = ID_SIZE + SOCKADDR_V4_SIZE


class DecodeMessageError(ValueError):
    """A KRPC message or one of its fields could not be decoded."""


class InvalidNodesError(DecodeMessageError):
    """A compact nodes string is not a whole number of node entries."""

    def __init__(self) -> None:
        super().__init__("Wrong number of bytes for nodes")


class InvalidPortEncodingError(DecodeMessageError):
    """A port was not encoded in two bytes."""

    def __init__(self) -> None:
        super().__init__("wrong number of bytes for port")


class Ipv6UnsupportedError(DecodeMessageError):
    """An address was IPv6, which is not supported."""

    def __init__(self) -> None:
        super().__init__("IPv6 is not yet implemented")


class InvalidSocketAddrLengthError(DecodeMessageError):
    """A compact address had neither the IPv4 nor the IPv6 length."""

    def __init__(self) -> None:
        super().__init__("Wrong number of bytes for sockaddr")


def sockaddr_to_bytes(address: SocketAddr) -> bytes:
    """Encode an IPv4 address and port as 6 bytes: the address, then the big-endian port."""
    return address.ip.packed + address.port.to_bytes(2, "big")


def bytes_to_sockaddr(data: bytes) -> SocketAddr:
    """Decode a 6-byte compact IPv4 address and port."""
    data = bytes(data)
    if len(data) == SOCKADDR_V4_SIZE:
        port_bytes = data[4:6]
        if len(port_bytes) != 2:
            raise InvalidPortEncodingError()
        return SocketAddr(ipaddress.IPv4Address(data[:4]), int.from_bytes(port_bytes, "big"))
    if len(data) == SOCKADDR_V6_SIZE:
        raise Ipv6UnsupportedError()
    raise InvalidSocketAddrLengthError()


def nodes_to_bytes(nodes: Iterable[Node]) -> bytes:
    """Encode nodes in the compact form: 20-byte Id followed by 6-byte address, each."""
    return b"".join(bytes(node.id) + sockaddr_to_bytes(node.address) for node in nodes)


def bytes_to_nodes(data: bytes) -> Tuple[Node, ...]:
    """Decode a compact nodes string into nodes."""
    data = bytes(data)
    if len(data) % NODE_BYTE_SIZE != 0:
        raise InvalidNodesError()
    return tuple(
        Node(
            Id.from_bytes(data[start:start + ID_SIZE]),
            bytes_to_sockaddr(data[start + ID_SIZE:start + NODE_BYTE_SIZE]),
        )
        for start in range(0, len(data), NODE_BYTE_SIZE)
    )


def peers_to_bytes(peers: Iterable[SocketAddr]) -> List[bytes]:
    """Encode peer addresses as a list of 6-byte compact strings."""
    return [sockaddr_to_bytes(peer) for peer in peers]


def bytes_to_peers(values: Iterable[bytes]) -> List[SocketAddr]:
    """Decode a list of compact peer strings into addresses."""
    return [bytes_to_sockaddr(value) for value in values]