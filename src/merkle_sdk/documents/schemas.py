"""Portable proof document schemas (MERKLE-PROOF-0.1)."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

PROOF_VERSION = "MERKLE-PROOF-0.1"


class ProofStepModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    digest: str
    is_left: bool


class ProofDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proof_version: Literal["MERKLE-PROOF-0.1"] = PROOF_VERSION
    hash_algorithm: Literal["md5", "sha1", "sha256", "sha512"]
    root_digest: str = Field(..., min_length=1)
    length: int = Field(..., ge=0)
    steps: List[ProofStepModel]
    metadata: Optional[Dict[str, str]] = None
    signer_public_key_b64: Optional[str] = None
    signature_b64: Optional[str] = None

    @model_validator(mode="after")
    def _steps_within_length(self) -> "ProofDocument":
        if len(self.steps) > self.length:
            raise ValueError("steps exceed declared proof length")
        return self
