"""Singly linked sequence that pairs every item with its content digest.

Every structural mutation bumps a modification counter. Traversals snapshot
the counter when they start and fail with ConcurrentModificationError as soon
as they observe a different value.
"""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, TypeVar

from merkle_sdk.errors import ConcurrentModificationError, ExhaustedError, InvalidInputError
from merkle_sdk.hashing import DEFAULT_HASH_ALGORITHM, data_to_digest, normalize_hash_algorithm

T = TypeVar("T")


class _Node(Generic[T]):
    __slots__ = ("item", "digest", "next")

    def __init__(self, item: T, digest: str) -> None:
        self.item = item
        self.digest = digest
        self.next: _Node[T] | None = None


class _SequenceIterator(Generic[T]):
    def __init__(self, sequence: HashedSequence[T], *, with_digests: bool = False) -> None:
        self._sequence = sequence
        self._current = sequence._head
        self._expected_modifications = sequence._modifications
        self._with_digests = with_digests

    def __iter__(self) -> _SequenceIterator[T]:
        return self

    def has_next(self) -> bool:
        if self._expected_modifications != self._sequence._modifications:
            raise ConcurrentModificationError("sequence was modified during traversal")
        return self._current is not None

    def __next__(self):
        if not self.has_next():
            raise ExhaustedError("no more elements in sequence")
        node = self._current
        self._current = node.next
        if self._with_digests:
            return node.item, node.digest
        return node.item


class HashedSequence(Generic[T]):
    """Append-ordered sequence whose nodes carry ``hash(item)``."""

    def __init__(self, *, hash_algorithm: str = DEFAULT_HASH_ALGORITHM) -> None:
        self._hash_algorithm = normalize_hash_algorithm(hash_algorithm)
        self._head: _Node[T] | None = None
        self._tail: _Node[T] | None = None
        self._size = 0
        self._modifications = 0

    @classmethod
    def from_items(
        cls, items: Iterable[T], *, hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    ) -> HashedSequence[T]:
        sequence: HashedSequence[T] = cls(hash_algorithm=hash_algorithm)
        for item in items:
            sequence.add_at_tail(item)
        return sequence

    @property
    def hash_algorithm(self) -> str:
        return self._hash_algorithm

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    def _new_node(self, item: T, operation: str) -> _Node[T]:
        if item is None:
            raise InvalidInputError(f"{operation}: item must not be None")
        return _Node(item, data_to_digest(item, self._hash_algorithm))

    def add_at_head(self, item: T) -> None:
        node = self._new_node(item, "add_at_head")
        node.next = self._head
        self._head = node
        if self._tail is None:
            self._tail = node
        self._size += 1
        self._modifications += 1

    def add_at_tail(self, item: T) -> None:
        node = self._new_node(item, "add_at_tail")
        if self._tail is not None:
            self._tail.next = node
        self._tail = node
        if self._head is None:
            self._head = node
        self._size += 1
        self._modifications += 1

    def remove(self, item: T) -> bool:
        """Unlink the first node whose item equals ``item``."""
        if item is None:
            raise InvalidInputError("remove: item must not be None")

        previous: _Node[T] | None = None
        current = self._head
        while current is not None:
            if current.item == item:
                if previous is None:
                    self._head = current.next
                else:
                    previous.next = current.next
                if current is self._tail:
                    self._tail = previous
                current.next = None
                self._size -= 1
                self._modifications += 1
                return True
            previous = current
            current = current.next
        return False

    def __iter__(self) -> Iterator[T]:
        return _SequenceIterator(self)

    def items_with_digests(self) -> Iterator[tuple[T, str]]:
        return _SequenceIterator(self, with_digests=True)

    def all_digests(self) -> list[str]:
        return [digest for _, digest in self.items_with_digests()]

    def build_nodes_string(self) -> str:
        return "".join(
            f"Data: {item}, Hash: {digest}\n" for item, digest in self.items_with_digests()
        )

    def __str__(self) -> str:
        return self.build_nodes_string()

    def __repr__(self) -> str:
        return f"HashedSequence(size={self._size}, hash_algorithm={self._hash_algorithm!r})"
