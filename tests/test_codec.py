import pytest

from mainline import bencode
from mainline.codec import (
    MalformedMessageError,
    NotBencodeDictionaryError,
    TooShortError,
    decode_message,
    encode_message,
)
from mainline.id import Id
from mainline.messages import (
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
from mainline.node import Node, SocketAddr
from mainline.wire import InvalidNodesError, Ipv6UnsupportedError


def roundtrip(message):
    return decode_message(encode_message(message))


def node_pairs(nodes):
    return None if nodes is None else [(n.id, n.address) for n in nodes]


def test_ping_request():
    original = Message(
        transaction_id=258,
        body=RequestSpecific(Id.random(), PingRequestArguments()),
    )
    assert roundtrip(original) == original


def test_ping_request_pinned_encoding():
    requester = Id(b"a" * 20)
    message = Message(transaction_id=258, body=RequestSpecific(requester, PingRequestArguments()))
    expected = b"d1:ad2:id20:" + b"a" * 20 + b"e1:q4:ping2:roi0e1:t2:\x01\x021:y1:qe"
    assert encode_message(message) == expected


def test_ping_response():
    original = Message(
        transaction_id=258,
        version=bytes([0xDE, 0xAD, 0, 1]),
        requester_ip=SocketAddr.parse("99.100.101.102:1030"),
        body=PingResponseArguments(Id.random()),
    )
    assert roundtrip(original) == original


def test_find_node_request():
    original = Message(
        transaction_id=258,
        version=bytes([0x62, 0x61, 0x72, 0x66]),
        body=RequestSpecific(Id.random(), FindNodeRequestArguments(Id.random())),
    )
    assert roundtrip(original) == original


def test_find_node_request_read_only():
    original = Message(
        transaction_id=258,
        version=bytes([0x62, 0x61, 0x72, 0x66]),
        read_only=True,
        body=RequestSpecific(Id.random(), FindNodeRequestArguments(Id.random())),
    )
    parsed = roundtrip(original)
    assert parsed == original
    assert parsed.read_only is True


def test_find_node_response():
    original = Message(
        transaction_id=258,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        body=FindNodeResponseArguments(
            Id.random(), (Node(Id.random(), SocketAddr.parse("49.50.52.52:5354")),)
        ),
    )
    parsed = roundtrip(original)
    assert parsed.author_id() == original.author_id()
    assert node_pairs(parsed.closer_nodes()) == node_pairs(original.closer_nodes())
    assert len(parsed.closer_nodes()) == 1


def test_get_peers_request():
    original = Message(
        transaction_id=258,
        version=bytes([72, 73, 0, 1]),
        body=RequestSpecific(Id.random(), GetPeersRequestArguments(Id.random())),
    )
    assert roundtrip(original) == original


def test_get_peers_response_no_values():
    original = Message(
        transaction_id=3,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        read_only=True,
        body=NoValuesResponseArguments(
            Id.random(),
            bytes([99, 100, 101, 102]),
            (Node(Id.random(), SocketAddr.parse("49.50.52.52:5354")),),
        ),
    )
    parsed = roundtrip(original)
    assert parsed.transaction_id == original.transaction_id
    assert parsed.version == original.version
    assert parsed.requester_ip == original.requester_ip
    assert parsed.author_id() == original.author_id()
    assert node_pairs(parsed.closer_nodes()) == node_pairs(original.closer_nodes())
    assert isinstance(parsed.body, NoValuesResponseArguments)


def test_get_peers_response_peers():
    original = Message(
        transaction_id=3,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        body=GetPeersResponseArguments(
            Id.random(),
            bytes([99, 100, 101, 102]),
            (SocketAddr.parse("123.123.123.123:123"),),
            None,
        ),
    )
    assert roundtrip(original) == original


def test_get_peers_response_neither():
    responder = Id.random()
    data = bencode.encode(
        {"t": b"\x01\x02", "y": "r", "r": {"id": bytes(responder), "token": b"\x00\x01"}}
    )
    parsed = decode_message(data)
    assert parsed.body == NoValuesResponseArguments(responder, b"\x00\x01", None)
    assert parsed.transaction_id == 258
    assert parsed.read_only is False


def test_get_immutable_request():
    original = Message(
        transaction_id=258,
        version=bytes([72, 73, 0, 1]),
        body=RequestSpecific(
            Id.random(), GetValueRequestArguments(Id.random(), seq=1231, salt=None)
        ),
    )
    assert roundtrip(original) == original


def test_get_value_salt_is_not_sent():
    original = Message(
        transaction_id=1,
        body=RequestSpecific(Id.random(), GetValueRequestArguments(Id.random(), salt=b"salt")),
    )
    parsed = roundtrip(original)
    assert parsed.body.request_type.salt is None
    assert parsed.body.request_type.seq is None


def test_get_immutable_response():
    original = Message(
        transaction_id=3,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        body=GetImmutableResponseArguments(
            Id.random(), bytes([99, 100, 101, 102]), bytes([99, 100, 101, 102])
        ),
    )
    assert roundtrip(original) == original


def test_put_immutable_request():
    original = Message(
        transaction_id=3,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        body=RequestSpecific(
            Id.random(),
            PutRequest(
                bytes([99, 100, 101, 102]),
                PutImmutableRequestArguments(Id.random(), bytes([99, 100, 101, 102])),
            ),
        ),
    )
    assert roundtrip(original) == original


def test_put_mutable_request():
    original = Message(
        transaction_id=3,
        version=bytes([1, 2, 3, 4]),
        requester_ip=SocketAddr.parse("50.51.52.53:5455"),
        body=RequestSpecific(
            Id.random(),
            PutRequest(
                bytes([99, 100, 101, 102]),
                PutMutableRequestArguments(
                    target=Id.random(),
                    value=bytes([99, 100, 101, 102]),
                    key=bytes([100] * 32),
                    seq=100,
                    signature=bytes(64),
                    salt=bytes([0, 2, 4, 8]),
                    cas=100,
                ),
            ),
        ),
    )
    assert roundtrip(original) == original


def test_announce_peer_request():
    original = Message(
        transaction_id=7,
        body=RequestSpecific(
            Id.random(),
            PutRequest(b"tok", AnnouncePeerRequestArguments(Id.random(), 45555, True)),
        ),
    )
    assert roundtrip(original) == original


def test_announce_peer_without_implied_port_decodes_as_false():
    message = Message(
        transaction_id=7,
        body=RequestSpecific(
            Id.random(),
            PutRequest(b"tok", AnnouncePeerRequestArguments(Id.random(), 6881, None)),
        ),
    )
    parsed = roundtrip(message)
    assert parsed.body.request_type.put_request.implied_port is False
    assert parsed.body.request_type.put_request.port == 6881


def test_get_mutable_response():
    original = Message(
        transaction_id=9,
        body=GetMutableResponseArguments(
            responder_id=Id.random(),
            token=b"abcd",
            value=b"hello",
            key=bytes([1] * 32),
            seq=42,
            signature=bytes([2] * 64),
        ),
    )
    assert roundtrip(original) == original


def test_no_more_recent_value_response():
    original = Message(
        transaction_id=9,
        body=NoMoreRecentValueResponseArguments(Id.random(), b"abcd", 17),
    )
    assert roundtrip(original) == original


def test_error_message():
    original = Message(transaction_id=5, body=ErrorSpecific(201, "A Generic Error Ocurred"))
    parsed = roundtrip(original)
    assert parsed == original
    assert parsed.author_id() is None


def test_too_short():
    with pytest.raises(TooShortError):
        decode_message(b"d1:t2:abe")


def test_not_a_dictionary():
    with pytest.raises(NotBencodeDictionaryError):
        decode_message(b"l" + b"i1e" * 10 + b"e")


def test_invalid_bencode():
    with pytest.raises(MalformedMessageError):
        decode_message(b"d1:t2:ab1:y1:q1:q4:pingXXXX")


def test_unknown_query():
    data = bencode.encode(
        {"t": b"ab", "y": "q", "q": "dance", "a": {"id": bytes(20)}}
    )
    with pytest.raises(MalformedMessageError):
        decode_message(data)


def test_wrong_transaction_id_size():
    data = bencode.encode({"t": b"abc", "y": "r", "r": {"id": bytes(20)}})
    with pytest.raises(MalformedMessageError):
        decode_message(data)


def test_put_mutable_without_seq_is_malformed():
    data = bencode.encode(
        {
            "t": b"ab",
            "y": "q",
            "q": "put",
            "a": {
                "id": bytes(20),
                "target": bytes(20),
                "token": b"tk",
                "v": b"value",
                "k": bytes(32),
                "sig": bytes(64),
            },
        }
    )
    with pytest.raises(MalformedMessageError):
        decode_message(data)


def test_response_shape_priority():
    responder = bytes(range(20))
    with_value = bencode.encode(
        {"t": b"ab", "y": "r", "r": {"id": responder, "token": b"tk", "v": b"data"}}
    )
    assert decode_message(with_value).body == GetImmutableResponseArguments(
        Id(responder), b"tk", b"data"
    )
    with_seq = bencode.encode(
        {"t": b"ab", "y": "r", "r": {"id": responder, "token": b"tk", "v": b"x", "seq": 3}}
    )
    assert decode_message(with_seq).body == NoMoreRecentValueResponseArguments(
        Id(responder), b"tk", 3
    )
    ping = bencode.encode({"t": b"ab", "y": "r", "r": {"id": responder}})
    assert decode_message(ping).body == PingResponseArguments(Id(responder))


def test_invalid_nodes_length():
    data = bencode.encode({"t": b"ab", "y": "r", "r": {"id": bytes(20), "nodes": bytes(25)}})
    with pytest.raises(InvalidNodesError):
        decode_message(data)


def test_ipv6_peer_is_unsupported():
    data = bencode.encode(
        {"t": b"ab", "y": "r", "r": {"id": bytes(20), "token": b"tk", "values": [bytes(18)]}}
    )
    with pytest.raises(Ipv6UnsupportedError):
        decode_message(data)