"""Node ids, routing table, BEP 44 items, bencode and KRPC messages for the Mainline DHT."""

__version__ = "5.4.0"

__all__ = [
    "bencode",
    "codec",
    "id",
    "immutable",
    "kbucket",
    "messages",
    "mutable",
    "node",
    "routing_table",
    "wire",
]