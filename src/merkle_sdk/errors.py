"""SDK error types."""

from __future__ import annotations


class MerkleSDKError(RuntimeError):
    """Base SDK error."""


class InvalidInputError(MerkleSDKError):
    """Required argument missing or source sequence empty."""


class NotFoundError(MerkleSDKError):
    """Digest not present in the tree."""


class StructureMismatchError(MerkleSDKError):
    """Trees of different width compared leaf by leaf."""


class ConcurrentModificationError(MerkleSDKError):
    """Sequence mutated while a traversal was open."""


class ExhaustedError(MerkleSDKError, StopIteration):
    """Traversal advanced past its end."""


class SchemaValidationError(MerkleSDKError):
    """Proof document failed schema validation."""


class KeyFileError(MerkleSDKError):
    """Signing key file missing, unreadable or inconsistent."""
