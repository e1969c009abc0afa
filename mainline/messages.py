"""KRPC message structures and accessors for their common fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, Union

from .id import Id
from .mutable import PUBLIC_KEY_SIZE, SIGNATURE_SIZE, MutableItem
from .node import Node, SocketAddr

VERSION_SIZE = 4
MAX_TRANSACTION_ID = 0xFFFF


def _node_tuple(nodes: Optional[Iterable[Node]]) -> Optional[Tuple[Node, ...]]:
    return None if nodes is None else tuple(nodes)


def _optional_bytes(value) -> Optional[bytes]:
    return None if value is None else bytes(value)


def _set(obj, name: str, value) -> None:
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class ErrorSpecific:
    """A KRPC error: a numeric code and a description."""

    code: int
    description: str


# === Requests ===


@dataclass(frozen=True)
class PingRequestArguments:
    """A ping request carries no arguments besides the requester's Id."""


@dataclass(frozen=True)
class FindNodeRequestArguments:
    """Arguments of a find_node request."""

    target: Id


@dataclass(frozen=True)
class GetPeersRequestArguments:
    """Arguments of a get_peers request."""

    info_hash: Id


@dataclass(frozen=True)
class GetValueRequestArguments:
    """Arguments of a get request; ``salt`` is carried locally and never sent."""

    target: Id
    seq: Optional[int] = None
    salt: Optional[bytes] = None

    def __post_init__(self) -> None:
        _set(self, "salt", _optional_bytes(self.salt))


@dataclass(frozen=True)
class AnnouncePeerRequestArguments:
    """Arguments of an announce_peer request."""

    info_hash: Id
    port: int
    implied_port: Optional[bool] = None

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")

    @property
    def target(self) -> Id:
        """The info hash the peer is announced for."""
        return self.info_hash


class PutImmutableRequestArguments:
    """Arguments of a put request storing an immutable value."""

    __slots__ = ("_target", "_value")

    def __init__(self, target: Id, value: bytes) -> None:
        self._target = target
        self._value = bytes(value)

    @property
    def target(self) -> Id:
        """The target the value is stored under."""
        return self._target

    @property
    def value(self) -> bytes:
        """The immutable value."""
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PutImmutableRequestArguments):
            return NotImplemented
        return self._target == other._target and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._target, self._value))

    def __repr__(self) -> str:
        return f"PutImmutableRequestArguments(target={self._target!r}, value={self._value!r})"


@dataclass(frozen=True)
class PutMutableRequestArguments:
    """Arguments of a put request storing a signed mutable item."""

    target: Id
    value: bytes
    key: bytes
    seq: int
    signature: bytes
    salt: Optional[bytes] = None
    cas: Optional[int] = None

    def __post_init__(self) -> None:
        _set(self, "value", bytes(self.value))
        _set(self, "key", bytes(self.key))
        _set(self, "signature", bytes(self.signature))
        _set(self, "salt", _optional_bytes(self.salt))
        if len(self.key) != PUBLIC_KEY_SIZE:
            raise ValueError(f"public key must be {PUBLIC_KEY_SIZE} bytes, got {len(self.key)}")
        if len(self.signature) != SIGNATURE_SIZE:
            raise ValueError(
                f"signature must be {SIGNATURE_SIZE} bytes, got {len(self.signature)}"
            )

    @classmethod
    def from_item(
        cls, item: MutableItem, cas: Optional[int] = None
    ) -> "PutMutableRequestArguments":
        """Build put arguments from an item and an optional compare-and-swap ``seq``."""
        return cls(
            target=item.target,
            value=item.value,
            key=item.key,
            seq=item.seq,
            signature=item.signature,
            salt=item.salt,
            cas=cas,
        )

    def to_item(self) -> MutableItem:
        """Return the mutable item these arguments store."""
        return MutableItem(
            target=self.target,
            key=self.key,
            seq=self.seq,
            value=self.value,
            signature=self.signature,
            salt=self.salt,
        )


PutRequestSpecific = Union[
    AnnouncePeerRequestArguments,
    PutImmutableRequestArguments,
    PutMutableRequestArguments,
]


@dataclass(frozen=True)
class PutRequest:
    """A write request: the token obtained from the node and what to store."""

    token: bytes
    put_request: PutRequestSpecific

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))


RequestTypeSpecific = Union[
    PingRequestArguments,
    FindNodeRequestArguments,
    GetPeersRequestArguments,
    GetValueRequestArguments,
    PutRequest,
]


@dataclass(frozen=True)
class RequestSpecific:
    """A request: who asks, and what."""

    requester_id: Id
    request_type: RequestTypeSpecific


# === Responses ===


@dataclass(frozen=True)
class PingResponseArguments:
    """Response to a ping."""

    responder_id: Id


@dataclass(frozen=True)
class FindNodeResponseArguments:
    """Response to find_node: nodes closer to the target."""

    responder_id: Id
    nodes: Tuple[Node, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "nodes", tuple(self.nodes))


@dataclass(frozen=True)
class GetPeersResponseArguments:
    """Response to get_peers carrying peer addresses."""

    responder_id: Id
    token: bytes
    values: Tuple[SocketAddr, ...] = ()
    nodes: Optional[Tuple[Node, ...]] = None

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))
        _set(self, "values", tuple(self.values))
        _set(self, "nodes", _node_tuple(self.nodes))


@dataclass(frozen=True)
class NoValuesResponseArguments:
    """Response to a lookup that found no values."""

    responder_id: Id
    token: bytes
    nodes: Optional[Tuple[Node, ...]] = None

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))
        _set(self, "nodes", _node_tuple(self.nodes))


@dataclass(frozen=True)
class GetImmutableResponseArguments:
    """Response to get carrying an immutable value."""

    responder_id: Id
    token: bytes
    value: bytes
    nodes: Optional[Tuple[Node, ...]] = None

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))
        _set(self, "value", bytes(self.value))
        _set(self, "nodes", _node_tuple(self.nodes))


@dataclass(frozen=True)
class GetMutableResponseArguments:
    """Response to get carrying a signed mutable value."""

    responder_id: Id
    token: bytes
    value: bytes
    key: bytes
    seq: int
    signature: bytes
    nodes: Optional[Tuple[Node, ...]] = None

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))
        _set(self, "value", bytes(self.value))
        _set(self, "key", bytes(self.key))
        _set(self, "signature", bytes(self.signature))
        _set(self, "nodes", _node_tuple(self.nodes))


@dataclass(frozen=True)
class NoMoreRecentValueResponseArguments:
    """Response to get when the stored value is not newer than the asked ``seq``."""

    responder_id: Id
    token: bytes
    seq: int
    nodes: Optional[Tuple[Node, ...]] = None

    def __post_init__(self) -> None:
        _set(self, "token", bytes(self.token))
        _set(self, "nodes", _node_tuple(self.nodes))


ResponseSpecific = Union[
    PingResponseArguments,
    FindNodeResponseArguments,
    GetPeersResponseArguments,
    GetImmutableResponseArguments,
    GetMutableResponseArguments,
    NoValuesResponseArguments,
    NoMoreRecentValueResponseArguments,
]

RESPONSE_TYPES = (
    PingResponseArguments,
    FindNodeResponseArguments,
    GetPeersResponseArguments,
    GetImmutableResponseArguments,
    GetMutableResponseArguments,
    NoValuesResponseArguments,
    NoMoreRecentValueResponseArguments,
)

_TOKEN_RESPONSE_TYPES = (
    GetPeersResponseArguments,
    GetImmutableResponseArguments,
    GetMutableResponseArguments,
    NoValuesResponseArguments,
    NoMoreRecentValueResponseArguments,
)

MessageBody = Union[RequestSpecific, ResponseSpecific, ErrorSpecific]


@dataclass(frozen=True)
class Message:
    """A KRPC message: a request, a response or an error."""

    transaction_id: int
    body: MessageBody
    version: Optional[bytes] = None
    requester_ip: Optional[SocketAddr] = None
    read_only: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.transaction_id <= MAX_TRANSACTION_ID:
            raise ValueError(f"transaction id out of range: {self.transaction_id}")
        version = _optional_bytes(self.version)
        if version is not None and len(version) != VERSION_SIZE:
            raise ValueError(f"version must be {VERSION_SIZE} bytes, got {len(version)}")
        _set(self, "version", version)

    def author_id(self) -> Optional[Id]:
        """Return the Id of the sender; errors carry none."""
        if isinstance(self.body, RequestSpecific):
            return self.body.requester_id
        if isinstance(self.body, RESPONSE_TYPES):
            return self.body.responder_id
        return None

    def closer_nodes(self) -> Optional[Tuple[Node, ...]]:
        """Return the closer nodes a response carries, if any."""
        if isinstance(self.body, PingResponseArguments):
            return None
        if isinstance(self.body, RESPONSE_TYPES):
            return self.body.nodes
        return None

    def token(self) -> Optional[Tuple[Id, bytes]]:
        """Return the responder's Id and write token, for responses that carry one."""
        if isinstance(self.body, _TOKEN_RESPONSE_TYPES):
            return self.body.responder_id, self.body.token
        return None