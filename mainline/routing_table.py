"""Simplified Kademlia routing table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from .id import Id
from .kbucket import KBucket
from .node import Node


@dataclass
class RoutingTable:
    """Nodes grouped into k-buckets by their distance from ``id``."""

    id: Id
    buckets: Dict[int, KBucket] = field(default_factory=dict, repr=False)

    def add(self, node: Node) -> bool:
        """Try to add ``node``; return whether it was added."""
        distance = self.id.distance(node.id)
        if distance == 0:
            return False
        if any(node.already_exists(bucket) for bucket in self.buckets.values()):
            return False
        return self.buckets.setdefault(distance, KBucket()).add(node)

    def remove(self, node_id: Id) -> None:
        """Remove the node with ``node_id`` if present."""
        bucket = self.buckets.get(self.id.distance(node_id))
        if bucket is not None:
            bucket.remove(node_id)

    def is_empty(self) -> bool:
        """Return whether the table holds no nodes."""
        return all(bucket.is_empty() for bucket in self.buckets.values())

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.buckets.values())

    def __iter__(self) -> Iterator[Node]:
        for distance in sorted(self.buckets):
            yield from self.buckets[distance]

    def __contains__(self, node_id: object) -> bool:
        if not isinstance(node_id, Id):
            return False
        bucket = self.buckets.get(self.id.distance(node_id))
        return bucket is not None and node_id in bucket

    def to_bootstrap(self) -> List[str]:
        """Return the addresses of all non-stale nodes as ``ip:port`` strings."""
        return [str(node.address) for node in self if not node.is_stale()]