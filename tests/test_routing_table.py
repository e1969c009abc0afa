import ipaddress
import time

from mainline.id import Id
from mainline.kbucket import MAX_BUCKET_SIZE_K
from mainline.node import Node, SocketAddr
from mainline.routing_table import RoutingTable


def unique(i):
    return Node(Id.random(), SocketAddr(ipaddress.IPv4Address(i), i))


def test_table_is_empty():
    table = RoutingTable(Id.random())
    assert table.is_empty()
    table.add(Node.random())
    assert not table.is_empty()


def test_to_vec():
    table = RoutingTable(Id.random())
    expected = [unique(i) for i in range(MAX_BUCKET_SIZE_K)]
    for node in expected:
        table.add(node)
    got = sorted(table, key=lambda n: n.id)
    assert got == sorted(expected, key=lambda n: n.id)


def test_contains():
    table = RoutingTable(Id.random())
    node = Node.random()
    assert node.id not in table
    table.add(node)
    assert node.id in table


def test_remove():
    table = RoutingTable(Id.random())
    node = Node.random()
    table.add(node)
    assert node.id in table
    table.remove(node.id)
    assert node.id not in table


def test_remove_missing_is_noop():
    table = RoutingTable(Id.random())
    node = unique(1)
    table.add(node)
    table.remove(Id.random())
    assert len(table) == 1


def test_buckets_are_sets():
    table = RoutingTable(Id.random())
    node1 = Node.random()
    node2 = Node(node1.id, node1.address)
    table.add(node1)
    table.add(node2)
    assert len(table) == 1


def test_should_not_add_self():
    table = RoutingTable(Id.random())
    node = Node(table.id, SocketAddr(ipaddress.IPv4Address(0), 0))
    table.add(node)
    assert table.add(node) is False
    assert table.is_empty()


def test_insecure_same_ip_rejected():
    table = RoutingTable(Id.random())
    assert table.add(Node.random()) is True
    assert table.add(Node.random()) is False
    assert len(table) == 1


def test_iteration_ordered_by_distance():
    table = RoutingTable(Id.random())
    for i in range(1, 30):
        table.add(unique(i))
    distances = [table.id.distance(node.id) for node in table]
    assert distances == sorted(distances)
    assert len(distances) == len(table)


def test_to_bootstrap_skips_stale():
    table = RoutingTable(Id.random())
    fresh = unique(1)
    stale = Node(Id.random(), SocketAddr(ipaddress.IPv4Address(2), 2),
                 last_seen=time.monotonic() - 16 * 60)
    table.add(fresh)
    table.add(stale)
    assert len(table) == 2
    assert table.to_bootstrap() == [str(fresh.address)]
    assert table.to_bootstrap() == ["0.0.0.1:1"]