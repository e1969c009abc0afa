"""K-buckets: bounded node lists that keep responsive nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List

from .id import Id
from .node import Node

MAX_BUCKET_SIZE_K = 20


@dataclass
class KBucket:
    """Nodes at one distance, ordered from least to most recently seen."""

    nodes: List[Node] = field(default_factory=list)

    def add(self, incoming: Node) -> bool:
        """Try to add ``incoming``; return whether it was added."""
        index = next(
            (i for i, node in enumerate(self.nodes) if node.id == incoming.id), None
        )
        if index is not None:
            existing = self.nodes[index]
            # A secure incoming node is trusted for this Id even on a new port;
            # an insecure pair is refreshed only when the IP stays the same.
            if incoming.is_secure() or (
                not existing.is_secure() and existing.same_ip(incoming)
            ):
                del self.nodes[index]
                self.nodes.append(incoming)
                return True
            return False
        if len(self.nodes) < MAX_BUCKET_SIZE_K:
            self.nodes.append(incoming)
            return True
        if self.nodes[0].is_stale():
            del self.nodes[0]
            self.nodes.append(incoming)
            return True
        return False

    def remove(self, node_id: Id) -> None:
        """Remove the node with ``node_id`` if present."""
        self.nodes = [node for node in self.nodes if node.id != node_id]

    def is_empty(self) -> bool:
        """Return whether the bucket holds no nodes."""
        return not self.nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return any(node.id == node_id for node in self.nodes)