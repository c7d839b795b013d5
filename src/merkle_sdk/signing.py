"""Ed25519 signing keys and signatures over proof documents.

A signer is identified by ``ed25519:`` followed by the first 32 hex
characters of sha256(public_key_bytes). Key files are JSON objects in the
MERKLE-SIGNING-KEY-0.1 format and record that id next to the key pair, so a
file whose keys were swapped or edited is rejected on load.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import os
from pathlib import Path
from typing import Literal

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from pydantic import BaseModel, ConfigDict, ValidationError

from merkle_sdk.documents import canonical_document_bytes, proof_from_document
from merkle_sdk.errors import InvalidInputError, KeyFileError, SchemaValidationError

KEY_FORMAT = "MERKLE-SIGNING-KEY-0.1"


def derive_signer_id(public_key_bytes: bytes) -> str:
    return "ed25519:" + hashlib.sha256(public_key_bytes).hexdigest()[:32]


class SigningKeyFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key_format: Literal["MERKLE-SIGNING-KEY-0.1"] = KEY_FORMAT
    signer_id: str
    public_key_b64: str
    private_key_b64: str


class SigningKey:
    """Ed25519 private key used to sign proof documents."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_bytes = private_key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )

    @classmethod
    def generate(cls) -> SigningKey:
        return cls(Ed25519PrivateKey.generate())

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    @property
    def public_key_b64(self) -> str:
        return base64.b64encode(self._public_key_bytes).decode("ascii")

    @property
    def signer_id(self) -> str:
        return derive_signer_id(self._public_key_bytes)

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def to_key_file(self) -> dict:
        private_bytes = self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return SigningKeyFile(
            signer_id=self.signer_id,
            public_key_b64=self.public_key_b64,
            private_key_b64=base64.b64encode(private_bytes).decode("ascii"),
        ).model_dump()

    @classmethod
    def from_key_file(cls, payload: dict) -> SigningKey:
        if not isinstance(payload, dict):
            raise KeyFileError("key file must be a JSON object")
        try:
            model = SigningKeyFile(**payload)
        except (ValidationError, TypeError) as exc:
            raise KeyFileError(f"invalid key file: {exc}") from exc

        try:
            private_key = Ed25519PrivateKey.from_private_bytes(_decode_b64(model.private_key_b64))
        except ValueError as exc:
            raise KeyFileError("private_key_b64 is not a 32-byte Ed25519 key") from exc

        key = cls(private_key)
        if key.public_key_b64 != model.public_key_b64:
            raise KeyFileError("key file public key does not belong to its private key")
        if key.signer_id != model.signer_id:
            raise KeyFileError("key file signer_id does not match its public key")
        return key


def _decode_b64(data_b64: str) -> bytes:
    try:
        return base64.b64decode(data_b64, validate=True)
    except binascii.Error as exc:
        raise ValueError("invalid base64") from exc


def load_signing_key(path: str | Path) -> SigningKey:
    key_path = Path(path)
    try:
        payload = json.loads(key_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise KeyFileError(f"key file not found: {key_path}") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise KeyFileError(f"unreadable key file {key_path}: {exc}") from exc
    return SigningKey.from_key_file(payload)


def write_signing_key(path: str | Path, key: SigningKey) -> Path:
    """Write ``key`` to a new file readable only by its owner."""
    key_path = Path(path)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(key.to_key_file(), sort_keys=True, indent=2) + "\n"
    try:
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError as exc:
        raise KeyFileError(f"refusing to overwrite existing key file: {key_path}") from exc
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    return key_path


def load_or_create_signing_key(path: str | Path) -> tuple[SigningKey, bool]:
    key_path = Path(path)
    if key_path.exists():
        return load_signing_key(key_path), False
    key = SigningKey.generate()
    write_signing_key(key_path, key)
    return key, True


def sign_proof_document(document: dict, key: SigningKey) -> dict:
    if not isinstance(document, dict):
        raise InvalidInputError("proof document must be a dict")
    signed = dict(document)
    signed["signer_public_key_b64"] = key.public_key_b64
    signed["signature_b64"] = base64.b64encode(
        key.sign(canonical_document_bytes(signed))
    ).decode("ascii")
    return signed


def _signature_matches(public_key_b64: str, signature_b64: str, message: bytes) -> bool:
    try:
        public_key = Ed25519PublicKey.from_public_bytes(_decode_b64(public_key_b64))
        public_key.verify(_decode_b64(signature_b64), message)
    except (InvalidSignature, ValueError):
        return False
    return True


def verify_proof_document(
    document: dict,
    *,
    item: object | None = None,
    public_key_b64: str | None = None,
) -> tuple[bool, str]:
    """Check schema, signer pin, signature and (optionally) replay ``item``."""
    try:
        proof = proof_from_document(document)
    except SchemaValidationError as exc:
        return False, str(exc)

    signature_b64 = document.get("signature_b64")
    signer_b64 = document.get("signer_public_key_b64")
    if not isinstance(signature_b64, str) or not isinstance(signer_b64, str):
        return False, "missing signature"
    if public_key_b64 is not None and public_key_b64 != signer_b64:
        return False, "signer key mismatch"
    if not _signature_matches(signer_b64, signature_b64, canonical_document_bytes(document)):
        return False, "invalid signature"

    if item is not None and not proof.verify(item):
        return False, "proof does not validate item"
    return True, "ok"
