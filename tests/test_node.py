import ipaddress
import time

import pytest

from mainline.id import Id
from mainline.node import STALE_TIME, TOKEN_ROTATE_INTERVAL, Node, SocketAddr


def test_socket_addr_round_trip():
    text = "49.50.52.52:5354"
    assert str(SocketAddr.parse(text)) == text


@pytest.mark.parametrize("text", ["nonsense", "1.2.3.4", "1.2.3.4:port", "1.2.3.4:70000"])
def test_socket_addr_parse_invalid(text):
    with pytest.raises(ValueError):
        SocketAddr.parse(text)


def test_random_node():
    node = Node.random()
    assert node.address == SocketAddr(ipaddress.IPv4Address("0.0.0.0"), 0)
    assert node.token is None


def test_fresh_node_state():
    node = Node.random()
    assert not node.is_stale()
    assert node.valid_token()
    assert not node.should_ping()


def test_old_node_state():
    node = Node(Id.random(), SocketAddr.parse("1.2.3.4:5"), last_seen=time.monotonic() - STALE_TIME - 5)
    assert node.is_stale()
    assert not node.valid_token()
    assert node.should_ping()


def test_token_expires_before_stale():
    node = Node(
        Id.random(),
        SocketAddr.parse("1.2.3.4:5"),
        token=b"token",
        last_seen=time.monotonic() - TOKEN_ROTATE_INTERVAL - 5,
    )
    assert not node.valid_token()
    assert not node.is_stale()
    assert node.token == b"token"


def test_same_address_and_ip():
    ident = Id.random()
    a = Node(ident, SocketAddr.parse("1.2.3.4:5"))
    b = Node(ident, SocketAddr.parse("1.2.3.4:6"))
    assert a.same_ip(b)
    assert not a.same_address(b)
    assert a.same_address(Node(Id.random(), SocketAddr.parse("1.2.3.4:5")))


def test_is_secure_vector():
    node = Node(
        Id.from_hex("5a3ce9c14e7a08645677bbd1cfe7d8f956d53256"),
        SocketAddr.parse("21.75.31.124:0"),
    )
    assert node.is_secure()


def test_is_secure_generated():
    address = SocketAddr.parse("84.124.73.14:6881")
    assert Node(Id.from_ipv4(address.ip), address).is_secure()


def test_already_exists_insecure_same_ip():
    existing = Node(Id.random(), SocketAddr.parse("0.0.0.0:1"))
    incoming = Node(Id.random(), SocketAddr.parse("0.0.0.0:2"))
    assert not existing.is_secure()
    assert incoming.already_exists([existing])


def test_already_exists_different_ip():
    existing = Node(Id.random(), SocketAddr.parse("8.8.8.8:1"))
    incoming = Node(Id.random(), SocketAddr.parse("9.9.9.9:1"))
    assert not incoming.already_exists([existing])
    assert not incoming.already_exists([])


def test_already_exists_secure_prefix():
    address = SocketAddr.parse("21.75.31.124:1")
    secure_id = Id.from_hex("5a3ce9c14e7a08645677bbd1cfe7d8f956d53256")
    existing = Node(secure_id, address)
    flipped = bytes([bytes(secure_id)[0] ^ 0xFF]) + bytes(secure_id)[1:]
    different_prefix = Node(Id(flipped), SocketAddr.parse("21.75.31.124:2"))
    same_prefix = Node(Id(bytes(secure_id)[:3] + bytes(17)), SocketAddr.parse("21.75.31.124:3"))
    assert not different_prefix.already_exists([existing])
    assert same_prefix.already_exists([existing])