"""Encoding and decoding of whole KRPC messages to and from bencoded bytes."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from . import bencode
from .id import ID_SIZE, Id
from .messages import (
    VERSION_SIZE,
    AnnouncePeerRequestArguments,
    ErrorSpecific,
    FindNodeRequestArguments,
    FindNodeResponseArguments,
    GetImmutableResponseArguments,
    GetMutableResponseArguments,
    GetPeersRequestArguments,
    GetPeersResponseArguments,
    GetValueRequestArguments,
    Message,
    NoMoreRecentValueResponseArguments,
    NoValuesResponseArguments,
    PingRequestArguments,
    PingResponseArguments,
    PutImmutableRequestArguments,
    PutMutableRequestArguments,
    PutRequest,
    RequestSpecific,
)
from .mutable import PUBLIC_KEY_SIZE, SIGNATURE_SIZE
from .wire import (
    SOCKADDR_V4_SIZE,
    DecodeMessageError,
    bytes_to_nodes,
    bytes_to_peers,
    bytes_to_sockaddr,
    nodes_to_bytes,
    peers_to_bytes,
    sockaddr_to_bytes,
)

MIN_MESSAGE_SIZE = 15
TRANSACTION_ID_SIZE = 2

_I64 = (-(2**63), 2**63 - 1)
_I32 = (-(2**31), 2**31 - 1)
_U16 = (0, 0xFFFF)
_U8 = (0, 0xFF)


class TooShortError(DecodeMessageError):
    """The message is shorter than the smallest possible KRPC message."""

    def __init__(self) -> None:
        super().__init__("Expected message to be longer than 15 characters")


class NotBencodeDictionaryError(DecodeMessageError):
    """The message does not start with a bencoded dictionary."""

    def __init__(self) -> None:
        super().__init__("Expected message to start with 'd'")


class MalformedMessageError(DecodeMessageError):
    """The message is not valid bencode or does not have the shape of a KRPC message."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse packet bytes: {detail}")
        self.detail = detail


# === Encoding ===


def _with_nodes(args: Dict[str, Any], nodes) -> Dict[str, Any]:
    if nodes is not None:
        args["nodes"] = nodes_to_bytes(nodes)
    return args


def _encode_request(request: RequestSpecific) -> Dict[str, Any]:
    requester = bytes(request.requester_id)
    kind = request.request_type
    if isinstance(kind, PingRequestArguments):
        return {"q": "ping", "a": {"id": requester}}
    if isinstance(kind, FindNodeRequestArguments):
        return {"q": "find_node", "a": {"id": requester, "target": bytes(kind.target)}}
    if isinstance(kind, GetPeersRequestArguments):
        return {"q": "get_peers", "a": {"id": requester, "info_hash": bytes(kind.info_hash)}}
    if isinstance(kind, GetValueRequestArguments):
        args: Dict[str, Any] = {"id": requester, "target": bytes(kind.target)}
        if kind.seq is not None:
            args["seq"] = kind.seq
        return {"q": "get", "a": args}
    if isinstance(kind, PutRequest):
        put = kind.put_request
        if isinstance(put, AnnouncePeerRequestArguments):
            return {
                "q": "announce_peer",
                "a": {
                    "id": requester,
                    "token": kind.token,
                    "info_hash": bytes(put.info_hash),
                    "port": put.port,
                    "implied_port": 1 if put.implied_port is not None else 0,
                },
            }
        if isinstance(put, PutImmutableRequestArguments):
            return {
                "q": "put",
                "a": {
                    "id": requester,
                    "token": kind.token,
                    "target": bytes(put.target),
                    "v": put.value,
                },
            }
        if isinstance(put, PutMutableRequestArguments):
            args = {
                "id": requester,
                "token": kind.token,
                "target": bytes(put.target),
                "v": put.value,
                "k": put.key,
                "seq": put.seq,
                "sig": put.signature,
            }
            if put.salt is not None:
                args["salt"] = put.salt
            if put.cas is not None:
                args["cas"] = put.cas
            return {"q": "put", "a": args}
        raise TypeError(f"unknown put request: {type(put).__name__}")
    raise TypeError(f"unknown request: {type(kind).__name__}")


def _encode_response(body) -> Dict[str, Any]:
    responder = bytes(body.responder_id)
    if isinstance(body, PingResponseArguments):
        return {"id": responder}
    if isinstance(body, FindNodeResponseArguments):
        return {"id": responder, "nodes": nodes_to_bytes(body.nodes)}
    if isinstance(body, GetPeersResponseArguments):
        args = {"id": responder, "token": body.token, "values": peers_to_bytes(body.values)}
        return _with_nodes(args, body.nodes)
    if isinstance(body, NoValuesResponseArguments):
        return _with_nodes({"id": responder, "token": body.token}, body.nodes)
    if isinstance(body, GetImmutableResponseArguments):
        return _with_nodes({"id": responder, "token": body.token, "v": body.value}, body.nodes)
    if isinstance(body, GetMutableResponseArguments):
        args = {
            "id": responder,
            "token": body.token,
            "v": body.value,
            "k": body.key,
            "seq": body.seq,
            "sig": body.signature,
        }
        return _with_nodes(args, body.nodes)
    if isinstance(body, NoMoreRecentValueResponseArguments):
        return _with_nodes({"id": responder, "token": body.token, "seq": body.seq}, body.nodes)
    raise TypeError(f"unknown response: {type(body).__name__}")


def encode_message(message: Message) -> bytes:
    """Serialize ``message`` into its bencoded wire form."""
    out: Dict[str, Any] = {
        "t": message.transaction_id.to_bytes(TRANSACTION_ID_SIZE, "big"),
        "ro": 1 if message.read_only else 0,
    }
    if message.version is not None:
        out["v"] = message.version
    if message.requester_ip is not None:
        out["ip"] = sockaddr_to_bytes(message.requester_ip)

    body = message.body
    if isinstance(body, RequestSpecific):
        out["y"] = "q"
        out.update(_encode_request(body))
    elif isinstance(body, ErrorSpecific):
        out["y"] = "e"
        out["e"] = [body.code, body.description]
    else:
        out["y"] = "r"
        out["r"] = _encode_response(body)
    return bencode.encode(out)


# === Decoding ===


def _bytes_field(
    fields: Dict[bytes, Any], key: str, size: Optional[int] = None, optional: bool = False
) -> Optional[bytes]:
    value = fields.get(key.encode())
    if value is None:
        if optional:
            return None
        raise MalformedMessageError(f"missing field {key!r}")
    if not isinstance(value, bytes):
        raise MalformedMessageError(f"field {key!r} must be a byte string")
    if size is not None and len(value) != size:
        raise MalformedMessageError(f"field {key!r} must be {size} bytes, got {len(value)}")
    return value


def _int_field(
    fields: Dict[bytes, Any], key: str, bounds: Tuple[int, int], optional: bool = False
) -> Optional[int]:
    value = fields.get(key.encode())
    if value is None:
        if optional:
            return None
        raise MalformedMessageError(f"missing field {key!r}")
    if not isinstance(value, int):
        raise MalformedMessageError(f"field {key!r} must be an integer")
    low, high = bounds
    if not low <= value <= high:
        raise MalformedMessageError(f"field {key!r} out of range: {value}")
    return value


def _dict_field(fields: Dict[bytes, Any], key: str) -> Dict[bytes, Any]:
    value = fields.get(key.encode())
    if value is None:
        raise MalformedMessageError(f"missing field {key!r}")
    if not isinstance(value, dict):
        raise MalformedMessageError(f"field {key!r} must be a dictionary")
    return value


def _id_field(fields: Dict[bytes, Any], key: str) -> Id:
    return Id.from_bytes(_bytes_field(fields, key, ID_SIZE))


def _list_of_bytes_field(fields: Dict[bytes, Any], key: str) -> List[bytes]:
    value = fields.get(key.encode())
    if value is None:
        raise MalformedMessageError(f"missing field {key!r}")
    if not isinstance(value, list) or not all(isinstance(v, bytes) for v in value):
        raise MalformedMessageError(f"field {key!r} must be a list of byte strings")
    return value


def _optional_nodes(raw: Optional[bytes]):
    return None if raw is None else bytes_to_nodes(raw)


def _decode_request(fields: Dict[bytes, Any]) -> RequestSpecific:
    query = _bytes_field(fields, "q")
    args = _dict_field(fields, "a")
    requester = _id_field(args, "id")

    if query == b"ping":
        kind: Any = PingRequestArguments()
    elif query == b"find_node":
        kind = FindNodeRequestArguments(target=_id_field(args, "target"))
    elif query == b"get_peers":
        kind = GetPeersRequestArguments(info_hash=_id_field(args, "info_hash"))
    elif query == b"get":
        kind = GetValueRequestArguments(
            target=_id_field(args, "target"),
            seq=_int_field(args, "seq", _I64, optional=True),
            salt=None,
        )
    elif query == b"announce_peer":
        info_hash = _id_field(args, "info_hash")
        port = _int_field(args, "port", _U16)
        token = _bytes_field(args, "token")
        implied = _int_field(args, "implied_port", _U8, optional=True)
        kind = PutRequest(
            token=token,
            put_request=AnnouncePeerRequestArguments(
                info_hash=info_hash,
                port=port,
                implied_port=None if implied is None else implied != 0,
            ),
        )
    elif query == b"put":
        target = _id_field(args, "target")
        token = _bytes_field(args, "token")
        value = _bytes_field(args, "v")
        key = _bytes_field(args, "k", PUBLIC_KEY_SIZE, optional=True)
        signature = _bytes_field(args, "sig", SIGNATURE_SIZE, optional=True)
        seq = _int_field(args, "seq", _I64, optional=True)
        cas = _int_field(args, "cas", _I64, optional=True)
        salt = _bytes_field(args, "salt", optional=True)
        if key is not None:
            if seq is None:
                raise MalformedMessageError("put mutable message must have a sequence number")
            if signature is None:
                raise MalformedMessageError("put mutable message must have a signature")
            put: Any = PutMutableRequestArguments(
                target=target,
                value=value,
                key=key,
                seq=seq,
                signature=signature,
                salt=salt,
                cas=cas,
            )
        else:
            put = PutImmutableRequestArguments(target, value)
        kind = PutRequest(token=token, put_request=put)
    else:
        raise MalformedMessageError(f"unknown query {query!r}")

    return RequestSpecific(requester_id=requester, request_type=kind)


# Each response shape reads the raw fields it requires (raising when they are
# missing or mistyped) and returns a builder that turns them into arguments.
# Shapes are tried from the most to the least detailed.


def _shape_get_mutable(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    token = _bytes_field(r, "token")
    nodes = _bytes_field(r, "nodes", optional=True)
    value = _bytes_field(r, "v")
    key = _bytes_field(r, "k", PUBLIC_KEY_SIZE)
    signature = _bytes_field(r, "sig", SIGNATURE_SIZE)
    seq = _int_field(r, "seq", _I64)
    return lambda: GetMutableResponseArguments(
        responder_id=responder,
        token=token,
        value=value,
        key=key,
        seq=seq,
        signature=signature,
        nodes=_optional_nodes(nodes),
    )


def _shape_no_more_recent(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    token = _bytes_field(r, "token")
    nodes = _bytes_field(r, "nodes", optional=True)
    seq = _int_field(r, "seq", _I64)
    return lambda: NoMoreRecentValueResponseArguments(
        responder_id=responder, token=token, seq=seq, nodes=_optional_nodes(nodes)
    )


def _shape_get_immutable(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    token = _bytes_field(r, "token")
    nodes = _bytes_field(r, "nodes", optional=True)
    value = _bytes_field(r, "v")
    return lambda: GetImmutableResponseArguments(
        responder_id=responder, token=token, value=value, nodes=_optional_nodes(nodes)
    )


def _shape_get_peers(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    token = _bytes_field(r, "token")
    nodes = _bytes_field(r, "nodes", optional=True)
    values = _list_of_bytes_field(r, "values")

    def build() -> GetPeersResponseArguments:
        decoded_nodes = _optional_nodes(nodes)
        return GetPeersResponseArguments(
            responder_id=responder,
            token=token,
            values=bytes_to_peers(values),
            nodes=decoded_nodes,
        )

    return build


def _shape_no_values(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    token = _bytes_field(r, "token")
    nodes = _bytes_field(r, "nodes", optional=True)
    return lambda: NoValuesResponseArguments(
        responder_id=responder, token=token, nodes=_optional_nodes(nodes)
    )


def _shape_find_node(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    nodes = _bytes_field(r, "nodes")
    return lambda: FindNodeResponseArguments(responder_id=responder, nodes=bytes_to_nodes(nodes))


def _shape_ping(r: Dict[bytes, Any]) -> Callable[[], Any]:
    responder = _id_field(r, "id")
    return lambda: PingResponseArguments(responder_id=responder)


_RESPONSE_SHAPES = (
    _shape_get_mutable,
    _shape_no_more_recent,
    _shape_get_immutable,
    _shape_get_peers,
    _shape_no_values,
    _shape_find_node,
    _shape_ping,
)


def _decode_response(fields: Dict[bytes, Any]):
    r = _dict_field(fields, "r")
    for shape in _RESPONSE_SHAPES:
        try:
            build = shape(r)
        except DecodeMessageError:
            continue
        return build()
    raise MalformedMessageError("response does not match any known response")


def _decode_error(fields: Dict[bytes, Any]) -> ErrorSpecific:
    info = fields.get(b"e")
    if not isinstance(info, list) or len(info) != 2:
        raise MalformedMessageError("field 'e' must be a list of a code and a description")
    code, description = info
    if not isinstance(code, int) or not _I32[0] <= code <= _I32[1]:
        raise MalformedMessageError("error code must be a 32-bit integer")
    if not isinstance(description, bytes):
        raise MalformedMessageError("error description must be a string")
    try:
        text = description.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMessageError("error description is not valid UTF-8") from exc
    return ErrorSpecific(code=code, description=text)


def decode_message(data: bytes) -> Message:
    """Parse a bencoded KRPC message."""
    data = bytes(data)
    if len(data) < MIN_MESSAGE_SIZE:
        raise TooShortError()
    if data[0] != ord("d"):
        raise NotBencodeDictionaryError()
    try:
        fields = bencode.decode(data)
    except bencode.BencodeError as exc:
        raise MalformedMessageError(str(exc)) from exc
    if not isinstance(fields, dict):
        raise MalformedMessageError("message must be a dictionary")

    transaction = _bytes_field(fields, "t", TRANSACTION_ID_SIZE)
    version = _bytes_field(fields, "v", VERSION_SIZE, optional=True)
    ip = _bytes_field(fields, "ip", SOCKADDR_V4_SIZE, optional=True)
    read_only = _int_field(fields, "ro", _I32, optional=True)
    requester_ip = None if ip is None else bytes_to_sockaddr(ip)

    kind = _bytes_field(fields, "y")
    if kind == b"q":
        body: Any = _decode_request(fields)
    elif kind == b"r":
        body = _decode_response(fields)
    elif kind == b"e":
        body = _decode_error(fields)
    else:
        raise MalformedMessageError(f"unknown message type {kind!r}")

    return Message(
        transaction_id=int.from_bytes(transaction, "big"),
        body=body,
        version=version,
        requester_ip=requester_ip,
        read_only=read_only is not None and read_only > 0,
    )