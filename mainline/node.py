"""Nodes of the Kademlia routing table."""

from __future__ import annotations

import ipaddress
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .id import Id

STALE_TIME = 15 * 60
MIN_PING_BACKOFF_INTERVAL = 10
TOKEN_ROTATE_INTERVAL = 5 * 60


@dataclass(frozen=True)
class SocketAddr:
    """An IPv4 address and port."""

    ip: ipaddress.IPv4Address
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.ip, ipaddress.IPv4Address):
            object.__setattr__(self, "ip", ipaddress.IPv4Address(self.ip))
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")

    @classmethod
    def parse(cls, text: str) -> "SocketAddr":
        """Parse an ``ip:port`` string."""
        host, sep, port = text.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"invalid socket address: {text!r}")
        return cls(ipaddress.IPv4Address(host), int(port))

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class Node:
    """A node entry in the Kademlia routing table."""

    id: Id
    address: SocketAddr
    token: Optional[bytes] = None
    last_seen: float = field(default_factory=time.monotonic)

    @classmethod
    def random(cls) -> "Node":
        """Create a node with a random Id at 0.0.0.0:0."""
        return cls(Id.random(), SocketAddr(ipaddress.IPv4Address(0), 0))

    def _age(self) -> float:
        return time.monotonic() - self.last_seen

    def is_stale(self) -> bool:
        """The node was last seen more than 15 minutes ago."""
        return self._age() > STALE_TIME

    def valid_token(self) -> bool:
        """The node's token was received 5 minutes ago or less."""
        return self._age() <= TOKEN_ROTATE_INTERVAL

    def should_ping(self) -> bool:
        """Enough time has passed since the node was seen to ping it again."""
        return self._age() > MIN_PING_BACKOFF_INTERVAL

    def same_address(self, other: "Node") -> bool:
        """Both nodes have the same ip and port."""
        return self.address == other.address

    def same_ip(self, other: "Node") -> bool:
        """Both nodes have the same ip."""
        return self.address.ip == other.address.ip

    def is_secure(self) -> bool:
        """The node's Id is valid for its IP according to BEP 42."""
        return self.id.is_valid_for_ip(self.address.ip)

    def already_exists(self, nodes: Iterable["Node"]) -> bool:
        """Whether an existing node shares this IP and is insecure or has the same 21-bit prefix."""
        return any(
            self.same_ip(existing)
            and (not existing.is_secure() or self.id.first_21_bits() == existing.id.first_21_bits())
            for existing in nodes
        )