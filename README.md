# mainline

Building blocks for BitTorrent's Mainline DHT. The package covers node ids,
the Kademlia routing table, BEP 44 mutable and immutable items, and the KRPC
message format with its bencode encoding.

## Modules

- `mainline.id`: `Id` is a 160-bit node id or lookup target. It gives XOR
  distance, hex parsing and BEP 42 secure ids made from an IPv4 address. The
  module also has `crc32c`.
- `mainline.node`: `SocketAddr` is an IPv4 address with a port. `Node` is a
  routing-table entry with an id, an address, an optional token and a
  last-seen time.
- `mainline.kbucket`: `KBucket` holds at most 20 nodes and favours secure
  nodes.
- `mainline.routing_table`: `RoutingTable` sorts nodes into k-buckets by their
  distance from the table's own id.
- `mainline.immutable`: `hash_immutable` and `validate_immutable` give and
  check the target of an immutable value.
- `mainline.mutable`: `MutableItem` is a BEP 44 mutable item signed with
  Ed25519 through PyNaCl. `encode_signable` returns the bytes that are signed.
- `mainline.bencode`: `encode`, `decode` and `BencodeError`.
- `mainline.messages`: typed KRPC requests, responses and errors, wrapped in
  `Message`.
- `mainline.wire`: compact forms of addresses, node lists and peer lists.
- `mainline.codec`: `encode_message` and `decode_message` turn whole messages
  into bytes and back.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Ids and distance

```python
from mainline.id import Id

a = Id.from_hex("0639a1e24fbb8ab277df033476ab0de10fab3bdc")
b = Id.from_hex("035b1aeb9737ade1a80933594f405d3f772aa08e")
assert a.distance(b) == 155
assert a.distance(a) == 0

secure = Id.from_ipv4("124.31.75.21")
assert secure.is_valid_for_ip("124.31.75.21")
```

`is_valid_for_ip` returns `True` for every id when the address is private,
link-local or loopback.

`Id.from_hex` raises a subclass of `DecodeIdError` (itself a `ValueError`)
when the text is not valid:

- `OddNumberOfCharactersError` when the text has an odd number of characters.
- `InvalidHexCharacterError` when a pair of characters is not hex.
- `InvalidIdSize` when the text does not decode to exactly 20 bytes.

`Id.from_ip` raises `ValueError` for an IPv6 address.

## Immutable items

```python
from mainline.id import Id
from mainline.immutable import hash_immutable, validate_immutable

target = Id(hash_immutable(b"Hello World!"))
assert validate_immutable(b"Hello World!", target)
```

## Mutable items

```python
from nacl.signing import SigningKey
from mainline.mutable import MutableItem

signing_key = SigningKey(bytes(32))
item = MutableItem.create(signing_key, b"first value", 1, b"salt")
```

`MutableItem.create` also takes the 32-byte seed of a signing key in place of
a `SigningKey`. The item's `target` is the SHA-1 of the public key followed by
the salt (`MutableItem.target_from_key`).

`MutableItem.from_dht_message` rebuilds an item from a DHT response and checks
its signature. A signature that does not verify raises
`InvalidMutableSignature`, and a bad public key raises
`InvalidMutablePublicKey`. Both are subclasses of `MutableError`.

## Routing table

```python
from mainline.id import Id
from mainline.node import Node
from mainline.routing_table import RoutingTable

table = RoutingTable(Id.random())
table.add(Node.random())
print(len(table), table.to_bootstrap())
```

`RoutingTable.add` turns away the table's own id. It also turns away a node
whose IP is already held by an insecure node, or by a secure node with the
same first 21 bits of id. Iterating the table yields nodes from the nearest
bucket outwards. `to_bootstrap` lists the `ip:port` of every node that is not
stale.

## Messages

```python
from mainline.codec import decode_message, encode_message
from mainline.id import Id
from mainline.messages import Message, PingRequestArguments, RequestSpecific

message = Message(
    transaction_id=258,
    body=RequestSpecific(requester_id=Id.random(), request_type=PingRequestArguments()),
)
assert decode_message(encode_message(message)) == message
```

A round trip gives back an equal message, with two exceptions. Decoded nodes
get a fresh last-seen time. The `salt` of a `GetValueRequestArguments` is never
sent, so it comes back as `None`.

`decode_message` raises a subclass of `DecodeMessageError` when the bytes cannot
be decoded:

- `TooShortError` when the input is shorter than 15 bytes.
- `NotBencodeDictionaryError` when the input does not start with `d`.
- `MalformedMessageError` when the input is not valid bencode or does not have
  the shape of a KRPC message.
- The errors from `mainline.wire` (`InvalidNodesError`,
  `InvalidPortEncodingError`, `Ipv6UnsupportedError`,
  `InvalidSocketAddrLengthError`) when a compact address, node list or peer
  list is invalid.

## What this package does not do

The package runs no DHT node. It opens no UDP socket, sends or answers no
queries, and has no client or server. It does not bootstrap against the
network and does not store or announce anything on it. It gives you the data
structures and the message encoding that such a node is built from.