"""Command-line interface for merkle-sdk."""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Iterator, Sequence

from merkle_sdk.cli.config import CLIConfig, ConfigError, load_cli_config
from merkle_sdk.documents import (
    PROOF_VERSION,
    load_proof_document,
    proof_from_document,
    proof_to_document,
    write_proof_document,
)
from merkle_sdk.errors import (
    InvalidInputError,
    KeyFileError,
    MerkleSDKError,
    NotFoundError,
    SchemaValidationError,
)
from merkle_sdk.hashing import ALLOWED_HASH_ALGORITHMS
from merkle_sdk.sequence import HashedSequence
from merkle_sdk.signing import (
    load_or_create_signing_key,
    load_signing_key,
    sign_proof_document,
    verify_proof_document,
)
from merkle_sdk.tree import MerkleTree

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_VERIFICATION_FAILED = 4

logger = logging.getLogger(__name__)


def _sdk_version() -> str:
    try:
        return pkg_version("merkle-sdk")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="merkle")
    parser.add_argument(
        "--version",
        action="version",
        version=f"merkle-sdk {_sdk_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.merkle_sdk/config.toml)",
    )
    parser.add_argument(
        "--hash-algorithm",
        default=None,
        choices=ALLOWED_HASH_ALGORITHMS,
        help="Digest algorithm override (default from config, then md5)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging on stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI and proof format version")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    init = sub.add_parser("init", help="Create or load the local proof signing key")
    init.add_argument(
        "--key-file",
        default=None,
        help="Path to signing key file (default: ~/.merkle_sdk/keys/ed25519.json)",
    )
    init.add_argument("--json", action="store_true")

    root = sub.add_parser("root", help="Build a tree from an items file and show its root")
    root.add_argument("items_file", help="UTF-8 text file with one item per line")
    root.add_argument("--json", action="store_true")

    dump = sub.add_parser("dump", help="Print every item with its digest")
    dump.add_argument("items_file")

    index = sub.add_parser("index", help="Show the leaf index of an item")
    index.add_argument("items_file")
    index.add_argument("item")
    index.add_argument("--json", action="store_true")

    proof = sub.add_parser("proof", help="Build an inclusion proof document for an item")
    proof.add_argument("items_file")
    proof.add_argument("item")
    proof.add_argument("--out", default=None, help="Write the proof document to this path")
    proof.add_argument("--sign", action="store_true", help="Sign the proof with the local key")
    proof.add_argument("--key-file", default=None)

    verify = sub.add_parser("verify", help="Verify an item against a proof document")
    verify.add_argument("proof_file")
    verify.add_argument("item")
    verify.add_argument(
        "--public-key-b64",
        default=None,
        help="Pinned signer public key (default from config)",
    )
    verify.add_argument(
        "--require-signature",
        action="store_true",
        help="Fail unless the proof document carries a valid signature",
    )
    verify.add_argument("--json", action="store_true")

    diff = sub.add_parser("diff", help="List leaf indices that differ between two items files")
    diff.add_argument("items_file_a")
    diff.add_argument("items_file_b")
    diff.add_argument("--json", action="store_true")

    return parser


@contextlib.contextmanager
def _sdk_logging(config: CLIConfig, *, verbose: bool, stderr) -> Iterator[None]:
    # Scoped to one main() call so repeated in-process runs get their own stream.
    package_logger = logging.getLogger("merkle_sdk")
    handler = logging.StreamHandler(stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    previous_level = package_logger.level
    package_logger.setLevel(
        logging.DEBUG if verbose else getattr(logging, config.log_level.upper())
    )
    package_logger.addHandler(handler)
    try:
        yield
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {message}", file=stderr)
    return code


def _read_items(path: str) -> list[str]:
    items_path = Path(path)
    if not items_path.exists():
        raise InvalidInputError(f"items file not found: {items_path}")
    try:
        raw = items_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInputError(f"items file is not valid UTF-8: {items_path}") from exc
    except OSError as exc:
        raise InvalidInputError(f"cannot read items file {items_path}: {exc}") from exc

    # Only "\n" separates items; str.splitlines() would also split on U+2028 and friends.
    items = []
    for line in raw.split("\n"):
        if line.endswith("\r"):
            line = line[:-1]
        if line.strip():
            items.append(line)
    return items


def _load_tree(path: str, hash_algorithm: str) -> MerkleTree[str]:
    sequence = HashedSequence.from_items(_read_items(path), hash_algorithm=hash_algorithm)
    return MerkleTree(sequence)


def _run_version(*, config: CLIConfig, as_json: bool, stdout) -> int:
    payload = {
        "cli": "merkle",
        "sdk_version": _sdk_version(),
        "proof_version": PROOF_VERSION,
        "hash_algorithm": config.hash_algorithm,
        "has_pinned_signer_key": bool(config.signer_public_key_b64),
    }
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"merkle-sdk {payload['sdk_version']}", file=stdout)
        print(f"proof format: {payload['proof_version']}", file=stdout)
        print(f"hash algorithm: {payload['hash_algorithm']}", file=stdout)
    return EXIT_SUCCESS


def _run_init(*, args, config: CLIConfig, stdout, stderr) -> int:
    path = Path(args.key_file or config.key_file)
    try:
        key, created = load_or_create_signing_key(path)
    except KeyFileError as exc:
        return _print_error(stderr, "key error", str(exc), code=EXIT_VALIDATION_ERROR)

    payload = {
        "signer_id": key.signer_id,
        "public_key_b64": key.public_key_b64,
        "key_file": str(path),
        "created": created,
    }
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"signer_id: {payload['signer_id']}", file=stdout)
        print(f"public_key_b64: {payload['public_key_b64']}", file=stdout)
        print(f"key_file: {payload['key_file']}", file=stdout)
        print(f"created: {str(created).lower()}", file=stdout)
    return EXIT_SUCCESS


def _run_root(*, args, hash_algorithm: str, stdout) -> int:
    tree = _load_tree(args.items_file, hash_algorithm)
    payload = {
        "root_digest": tree.root_digest,
        "width": tree.width,
        "height": tree.height,
        "hash_algorithm": tree.hash_algorithm,
    }
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"root: {payload['root_digest']}", file=stdout)
        print(f"width: {payload['width']}", file=stdout)
        print(f"height: {payload['height']}", file=stdout)
    return EXIT_SUCCESS


def _run_dump(*, args, hash_algorithm: str, stdout) -> int:
    sequence = HashedSequence.from_items(_read_items(args.items_file), hash_algorithm=hash_algorithm)
    stdout.write(sequence.build_nodes_string())
    return EXIT_SUCCESS


def _run_index(*, args, hash_algorithm: str, stdout) -> int:
    tree = _load_tree(args.items_file, hash_algorithm)
    index = tree.index_of(args.item)
    if args.json:
        print(json.dumps({"item": args.item, "index": index}, sort_keys=True), file=stdout)
    else:
        print(f"index: {index}", file=stdout)
    return EXIT_SUCCESS if index >= 0 else EXIT_VERIFICATION_FAILED


def _run_proof(*, args, config: CLIConfig, hash_algorithm: str, stdout, stderr) -> int:
    tree = _load_tree(args.items_file, hash_algorithm)
    try:
        proof = tree.proof_for(args.item)
    except NotFoundError:
        return _print_error(
            stderr, "proof error", f"item not present in tree: {args.item}", code=EXIT_VALIDATION_ERROR
        )

    document = proof_to_document(proof)
    if args.sign:
        try:
            key = load_signing_key(args.key_file or config.key_file)
        except KeyFileError as exc:
            return _print_error(stderr, "key error", str(exc), code=EXIT_VALIDATION_ERROR)
        document = sign_proof_document(document, key)

    if args.out:
        path = write_proof_document(args.out, document)
        print(f"proof written: {path}", file=stdout)
    else:
        print(json.dumps(document, sort_keys=True, indent=2), file=stdout)
    return EXIT_SUCCESS


def _run_verify(*, args, config: CLIConfig, stdout, stderr) -> int:
    document = load_proof_document(args.proof_file)
    public_key_b64 = args.public_key_b64 or config.signer_public_key_b64
    signed = "signature_b64" in document
    if signed or args.require_signature or public_key_b64:
        ok, reason = verify_proof_document(document, item=args.item, public_key_b64=public_key_b64)
    else:
        proof = proof_from_document(document)
        ok = proof.verify(args.item)
        reason = "ok" if ok else "proof does not validate item"

    if args.json:
        print(json.dumps({"valid": ok, "reason": reason, "signed": signed}, sort_keys=True), file=stdout)
    else:
        print(f"valid: {str(ok).lower()} ({reason})", file=stdout)
    return EXIT_SUCCESS if ok else EXIT_VERIFICATION_FAILED


def _run_diff(*, args, hash_algorithm: str, stdout) -> int:
    tree_a = _load_tree(args.items_file_a, hash_algorithm)
    tree_b = _load_tree(args.items_file_b, hash_algorithm)
    mismatches = sorted(tree_a.find_mismatched_leaf_indices(tree_b))
    if args.json:
        print(json.dumps({"mismatched_indices": mismatches}), file=stdout)
    else:
        for index in mismatches:
            print(index, file=stdout)
    return EXIT_SUCCESS if not mismatches else EXIT_VERIFICATION_FAILED


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    with _sdk_logging(config, verbose=args.verbose, stderr=stderr):
        return _dispatch(args=args, config=config, stdout=stdout, stderr=stderr)


def _dispatch(*, args: argparse.Namespace, config: CLIConfig, stdout, stderr) -> int:
    hash_algorithm = args.hash_algorithm or config.hash_algorithm
    logger.debug("running %s with hash_algorithm=%s", args.command, hash_algorithm)

    if args.command == "version":
        return _run_version(config=config, as_json=args.json, stdout=stdout)

    if args.command == "init":
        return _run_init(args=args, config=config, stdout=stdout, stderr=stderr)

    try:
        if args.command == "root":
            return _run_root(args=args, hash_algorithm=hash_algorithm, stdout=stdout)
        if args.command == "dump":
            return _run_dump(args=args, hash_algorithm=hash_algorithm, stdout=stdout)
        if args.command == "index":
            return _run_index(args=args, hash_algorithm=hash_algorithm, stdout=stdout)
        if args.command == "proof":
            return _run_proof(
                args=args, config=config, hash_algorithm=hash_algorithm, stdout=stdout, stderr=stderr
            )
        if args.command == "verify":
            return _run_verify(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.command == "diff":
            return _run_diff(args=args, hash_algorithm=hash_algorithm, stdout=stdout)
    except SchemaValidationError as exc:
        return _print_error(stderr, "proof error", str(exc), code=EXIT_VALIDATION_ERROR)
    except MerkleSDKError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
