"""Merkle tree node."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class MerkleNode:
    """Immutable tree node; equality and hashing look only at ``digest``.

    A node without children is a leaf. A branch synthesized for an odd
    trailing node has a left child and no right child.
    """

    digest: str
    left: Optional[MerkleNode] = field(default=None, compare=False, repr=False)
    right: Optional[MerkleNode] = field(default=None, compare=False, repr=False)

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __str__(self) -> str:
        return self.digest
