"""Binary Merkle tree built bottom-up from a HashedSequence."""

from __future__ import annotations

import logging
from typing import Generic, Optional, TypeVar

from merkle_sdk.errors import InvalidInputError, NotFoundError, StructureMismatchError
from merkle_sdk.hashing import combine_digests, data_to_digest
from merkle_sdk.node import MerkleNode
from merkle_sdk.proof import MerkleProof, ProofStep
from merkle_sdk.sequence import HashedSequence

T = TypeVar("T")

logger = logging.getLogger(__name__)

NOT_FOUND_INDEX = -1


def _build_parent_level(nodes: list[MerkleNode], hash_algorithm: str) -> list[MerkleNode]:
    parents: list[MerkleNode] = []
    for i in range(0, len(nodes), 2):
        left = nodes[i]
        if i + 1 < len(nodes):
            right = nodes[i + 1]
            digest = combine_digests(left.digest, right.digest, hash_algorithm)
            parents.append(MerkleNode(digest, left, right))
        else:
            # Odd trailing node: the parent hashes the lone child digest.
            digest = combine_digests(left.digest, "", hash_algorithm)
            parents.append(MerkleNode(digest, left, None))
    return parents


def _index_of(node: Optional[MerkleNode], digest: str, index: int) -> int:
    if node is None:
        return NOT_FOUND_INDEX
    if node.digest == digest:
        return index
    left_index = _index_of(node.left, digest, index * 2)
    if left_index != NOT_FOUND_INDEX:
        return left_index
    return _index_of(node.right, digest, index * 2 + 1)


def _contains(node: Optional[MerkleNode], digest: str) -> bool:
    if node is None:
        return False
    if node.digest == digest:
        return True
    return _contains(node.left, digest) or _contains(node.right, digest)


def _collect_mismatches(
    node: Optional[MerkleNode],
    other: Optional[MerkleNode],
    index: int,
    mismatches: set[int],
) -> None:
    if node is None or other is None:
        if node is not other:
            mismatches.add(index)
        return
    if node.digest == other.digest:
        return
    if node.is_leaf() and other.is_leaf():
        mismatches.add(index)
        return
    _collect_mismatches(node.left, other.left, index * 2, mismatches)
    _collect_mismatches(node.right, other.right, index * 2 + 1, mismatches)


def _collect_proof_steps(node: Optional[MerkleNode], digest: str, steps: list[ProofStep]) -> bool:
    # Steps are appended on the way back up, so they end up leaf to root.
    if node is None:
        return False
    if node.digest == digest:
        return True
    if node.left is not None and _collect_proof_steps(node.left, digest, steps):
        sibling = node.right.digest if node.right is not None else ""
        steps.append(ProofStep(sibling, False))
        return True
    if node.right is not None and _collect_proof_steps(node.right, digest, steps):
        sibling = node.left.digest if node.left is not None else ""
        steps.append(ProofStep(sibling, True))
        return True
    return False


class MerkleTree(Generic[T]):
    """Complete, left-filled binary hash tree.

    Leaves keep the insertion order of the source sequence. When a level has
    an odd number of nodes the last one is wrapped in a parent with no right
    child whose digest is the hash of that child's digest alone. The tree is
    never mutated after construction.
    """

    def __init__(self, sequence: HashedSequence[T]) -> None:
        if sequence is None or sequence.size == 0:
            raise InvalidInputError("tree source sequence must be non-empty")

        self._hash_algorithm = sequence.hash_algorithm
        leaves = [MerkleNode(data_to_digest(item, self._hash_algorithm)) for item in sequence]

        level = leaves
        while len(level) > 1:
            level = _build_parent_level(level, self._hash_algorithm)

        self._root = level[0]
        self._width = len(leaves)
        logger.debug(
            "built merkle tree width=%d root=%s algorithm=%s",
            self._width,
            self._root.digest,
            self._hash_algorithm,
        )

    @property
    def root(self) -> MerkleNode:
        return self._root

    @property
    def root_digest(self) -> str:
        return self._root.digest

    @property
    def width(self) -> int:
        return self._width

    @property
    def hash_algorithm(self) -> str:
        return self._hash_algorithm

    @property
    def height(self) -> int:
        height = 0
        current = self._root
        while not current.is_leaf():
            height += 1
            current = current.left if current.left is not None else current.right
        return height

    def index_of(self, item: T) -> int:
        """Leaf index of ``item`` in insertion order, or -1 if absent."""
        if item is None:
            raise InvalidInputError("index_of: item must not be None")
        return _index_of(self._root, data_to_digest(item, self._hash_algorithm), 0)

    def index_of_in_branch(self, branch: MerkleNode, item: T) -> int:
        """Index of ``item`` relative to the subtree rooted at ``branch``, or -1."""
        if branch is None or item is None:
            raise InvalidInputError("index_of_in_branch: branch and item must not be None")
        return _index_of(branch, data_to_digest(item, self._hash_algorithm), 0)

    def validate_item(self, item: T) -> bool:
        # Matches internal nodes as well as leaves.
        if item is None:
            raise InvalidInputError("validate_item: item must not be None")
        return _contains(self._root, data_to_digest(item, self._hash_algorithm))

    def validate_branch(self, branch: MerkleNode) -> bool:
        if branch is None:
            raise InvalidInputError("validate_branch: branch must not be None")
        return _contains(self._root, branch.digest)

    def validate_against(self, other: MerkleTree[T]) -> bool:
        if other is None:
            raise InvalidInputError("validate_against: other tree must not be None")
        return self._root.digest == other.root.digest

    def find_mismatched_leaf_indices(self, other: MerkleTree[T]) -> set[int]:
        """Indices of leaves whose digests differ between this tree and ``other``.

        Subtrees with equal digests are skipped, so a handful of mismatches
        costs roughly height times mismatch count node visits.
        """
        if other is None:
            raise InvalidInputError("find_mismatched_leaf_indices: other tree must not be None")
        if other.width != self._width:
            raise StructureMismatchError(
                f"cannot compare trees of width {self._width} and {other.width}"
            )
        mismatches: set[int] = set()
        _collect_mismatches(self._root, other.root, 0, mismatches)
        logger.debug("tree diff found %d mismatched leaves", len(mismatches))
        return mismatches

    def _proof_for_digest(self, digest: str) -> MerkleProof:
        steps: list[ProofStep] = []
        if not _collect_proof_steps(self._root, digest, steps):
            raise NotFoundError(f"digest not present in tree: {digest}")
        proof = MerkleProof(self._root.digest, len(steps), hash_algorithm=self._hash_algorithm)
        for step in steps:
            proof.add_hash(step.digest, step.is_left)
        logger.debug("built proof for %s with %d steps", digest, len(steps))
        return proof

    def proof_for(self, item: T) -> MerkleProof:
        if item is None:
            raise InvalidInputError("proof_for: item must not be None")
        return self._proof_for_digest(data_to_digest(item, self._hash_algorithm))

    def proof_for_branch(self, branch: MerkleNode) -> MerkleProof:
        if branch is None:
            raise InvalidInputError("proof_for_branch: branch must not be None")
        return self._proof_for_digest(branch.digest)

    def __repr__(self) -> str:
        return f"MerkleTree(width={self._width}, root_digest={self._root.digest!r})"
