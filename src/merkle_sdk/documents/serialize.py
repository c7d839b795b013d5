"""Conversion between MerkleProof objects and JSON proof documents."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from merkle_sdk.documents.schemas import PROOF_VERSION, ProofDocument
from merkle_sdk.errors import SchemaValidationError
from merkle_sdk.proof import MerkleProof


def canonical_document_bytes(document: dict) -> bytes:
    payload = dict(document)
    payload.pop("signature_b64", None)
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def proof_to_document(proof: MerkleProof, *, metadata: dict[str, str] | None = None) -> dict:
    document = {
        "proof_version": PROOF_VERSION,
        "hash_algorithm": proof.hash_algorithm,
        "root_digest": proof.root_digest,
        "length": proof.length,
        "steps": [{"digest": step.digest, "is_left": step.is_left} for step in proof.steps],
    }
    if metadata:
        document["metadata"] = dict(metadata)
    return document


def parse_proof_document(document: dict) -> ProofDocument:
    if not isinstance(document, dict):
        raise SchemaValidationError("proof document must be a JSON object")
    try:
        return ProofDocument(**document)
    except (ValidationError, TypeError) as exc:
        raise SchemaValidationError(f"invalid proof document: {exc}") from exc


def proof_from_document(document: dict) -> MerkleProof:
    model = parse_proof_document(document)
    proof = MerkleProof(model.root_digest, model.length, hash_algorithm=model.hash_algorithm)
    for step in model.steps:
        proof.add_hash(step.digest, step.is_left)
    return proof


def load_proof_document(path: str | Path) -> dict:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(f"invalid JSON in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SchemaValidationError(f"cannot read proof document {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SchemaValidationError("proof document must be a JSON object")
    return payload


def write_proof_document(path: str | Path, document: dict) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(document, sort_keys=True, indent=2) + "\n", encoding="utf-8")
    return target
