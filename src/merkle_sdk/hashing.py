"""Digest helpers shared by sequences, trees and proofs."""

from __future__ import annotations

import hashlib
from typing import Literal

from merkle_sdk.errors import InvalidInputError

HashAlgorithm = Literal["md5", "sha1", "sha256", "sha512"]

ALLOWED_HASH_ALGORITHMS: tuple[HashAlgorithm, ...] = ("md5", "sha1", "sha256", "sha512")
DEFAULT_HASH_ALGORITHM: HashAlgorithm = "md5"


def is_valid_hash_algorithm(value: str) -> bool:
    return value in ALLOWED_HASH_ALGORITHMS


def normalize_hash_algorithm(value: str) -> str:
    if not isinstance(value, str):
        raise InvalidInputError("hash algorithm must be a string")
    normalized = value.strip().lower()
    if normalized not in ALLOWED_HASH_ALGORITHMS:
        raise InvalidInputError(
            f"hash algorithm must be one of: {', '.join(ALLOWED_HASH_ALGORITHMS)}"
        )
    return normalized


def compute_digest(data: bytes, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    return hashlib.new(algorithm, data).hexdigest()


def serialize_item(item: object) -> bytes:
    # Raw bytes hash as-is; everything else through its string form.
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    return str(item).encode("utf-8")


def data_to_digest(item: object, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    if item is None:
        raise InvalidInputError("cannot hash a missing item")
    return compute_digest(serialize_item(item), algorithm)


def combine_digests(left: str, right: str, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """Hash the concatenation of two hex digests.

    An empty ``right`` reproduces the single-child rule used for the
    synthetic parent of an odd trailing node.
    """
    return compute_digest(f"{left}{right}".encode("utf-8"), algorithm)
