"""Self-contained Merkle inclusion proofs."""

from __future__ import annotations

from dataclasses import dataclass

from merkle_sdk.errors import InvalidInputError
from merkle_sdk.hashing import (
    DEFAULT_HASH_ALGORITHM,
    combine_digests,
    data_to_digest,
    normalize_hash_algorithm,
)
from merkle_sdk.node import MerkleNode
from merkle_sdk.sequence import HashedSequence


@dataclass(frozen=True)
class ProofStep:
    """Sibling digest plus the side it is concatenated on during replay."""

    digest: str
    is_left: bool

    def __post_init__(self) -> None:
        if self.digest is None:
            raise InvalidInputError("proof step digest must not be None")

    def __str__(self) -> str:
        return self.digest + ("L" if self.is_left else "R")


class MerkleProof:
    """Ordered sibling digests that replay an item up to ``root_digest``.

    Steps are stored leaf to root. The proof keeps no reference to the tree
    it came from, so it can be verified anywhere the root digest is known.
    """

    def __init__(
        self,
        root_digest: str,
        length: int,
        *,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        if root_digest is None:
            raise InvalidInputError("root digest must not be None")
        if not isinstance(length, int) or length < 0:
            raise InvalidInputError("proof length must be a non-negative int")
        self._root_digest = root_digest
        self._length = length
        self._hash_algorithm = normalize_hash_algorithm(hash_algorithm)
        self._steps: HashedSequence[ProofStep] = HashedSequence(
            hash_algorithm=self._hash_algorithm
        )

    @property
    def root_digest(self) -> str:
        return self._root_digest

    @property
    def length(self) -> int:
        return self._length

    @property
    def hash_algorithm(self) -> str:
        return self._hash_algorithm

    @property
    def steps(self) -> tuple[ProofStep, ...]:
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def is_complete(self) -> bool:
        return len(self._steps) >= self._length

    def add_hash(self, digest: str, is_left: bool) -> bool:
        """Append a step; returns False once the proof holds ``length`` steps."""
        if digest is None:
            raise InvalidInputError("add_hash: digest must not be None")
        if self.is_complete():
            return False
        self._steps.add_at_tail(ProofStep(digest, bool(is_left)))
        return True

    def _replay(self, current: str) -> bool:
        for step in self._steps:
            if step.is_left:
                current = combine_digests(step.digest, current, self._hash_algorithm)
            else:
                current = combine_digests(current, step.digest, self._hash_algorithm)
        return current == self._root_digest

    def verify(self, item: object) -> bool:
        if item is None:
            raise InvalidInputError("verify: item must not be None")
        return self._replay(data_to_digest(item, self._hash_algorithm))

    def verify_branch(self, branch: MerkleNode) -> bool:
        if branch is None:
            raise InvalidInputError("verify_branch: branch must not be None")
        return self._replay(branch.digest)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MerkleProof):
            return NotImplemented
        return (
            self._root_digest == other._root_digest
            and self._length == other._length
            and self._hash_algorithm == other._hash_algorithm
            and self.steps == other.steps
        )

    def __hash__(self) -> int:
        # Steps are appended after construction, so they stay out of the hash.
        return hash((self._root_digest, self._length, self._hash_algorithm))

    def __repr__(self) -> str:
        rendered = ", ".join(str(step) for step in self._steps)
        return f"MerkleProof(root_digest={self._root_digest!r}, length={self._length}, steps=[{rendered}])"
