from merkle_sdk.documents.schemas import PROOF_VERSION, ProofDocument, ProofStepModel
from merkle_sdk.documents.serialize import (
    canonical_document_bytes,
    load_proof_document,
    proof_from_document,
    proof_to_document,
    write_proof_document,
)

__all__ = [
    "PROOF_VERSION",
    "ProofDocument",
    "ProofStepModel",
    "canonical_document_bytes",
    "load_proof_document",
    "proof_from_document",
    "proof_to_document",
    "write_proof_document",
]
