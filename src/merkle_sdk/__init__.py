"""Merkle SDK public surface."""

from merkle_sdk.documents import (
    PROOF_VERSION,
    ProofDocument,
    canonical_document_bytes,
    load_proof_document,
    proof_from_document,
    proof_to_document,
    write_proof_document,
)
from merkle_sdk.errors import (
    ConcurrentModificationError,
    ExhaustedError,
    InvalidInputError,
    KeyFileError,
    MerkleSDKError,
    NotFoundError,
    SchemaValidationError,
    StructureMismatchError,
)
from merkle_sdk.hashing import (
    ALLOWED_HASH_ALGORITHMS,
    DEFAULT_HASH_ALGORITHM,
    HashAlgorithm,
    combine_digests,
    compute_digest,
    data_to_digest,
    normalize_hash_algorithm,
)
from merkle_sdk.node import MerkleNode
from merkle_sdk.proof import MerkleProof, ProofStep
from merkle_sdk.sequence import HashedSequence
from merkle_sdk.signing import (
    KEY_FORMAT,
    SigningKey,
    derive_signer_id,
    load_or_create_signing_key,
    load_signing_key,
    sign_proof_document,
    verify_proof_document,
    write_signing_key,
)
from merkle_sdk.tree import MerkleTree

__all__ = [
    "MerkleSDKError",
    "InvalidInputError",
    "NotFoundError",
    "StructureMismatchError",
    "ConcurrentModificationError",
    "ExhaustedError",
    "SchemaValidationError",
    "KeyFileError",
    "HashAlgorithm",
    "ALLOWED_HASH_ALGORITHMS",
    "DEFAULT_HASH_ALGORITHM",
    "normalize_hash_algorithm",
    "compute_digest",
    "data_to_digest",
    "combine_digests",
    "HashedSequence",
    "MerkleNode",
    "MerkleTree",
    "MerkleProof",
    "ProofStep",
    "PROOF_VERSION",
    "ProofDocument",
    "proof_to_document",
    "proof_from_document",
    "canonical_document_bytes",
    "load_proof_document",
    "write_proof_document",
    "KEY_FORMAT",
    "SigningKey",
    "load_signing_key",
    "write_signing_key",
    "load_or_create_signing_key",
    "derive_signer_id",
    "sign_proof_document",
    "verify_proof_document",
]
