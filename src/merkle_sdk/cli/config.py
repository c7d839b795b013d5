"""Configuration helpers for the merkle CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from merkle_sdk.errors import InvalidInputError
from merkle_sdk.hashing import DEFAULT_HASH_ALGORITHM, normalize_hash_algorithm

DEFAULT_CONFIG_PATH = Path.home() / ".merkle_sdk" / "config.toml"
DEFAULT_KEY_FILE = Path.home() / ".merkle_sdk" / "keys" / "ed25519.json"
HASH_ALGORITHM_ENV_VAR = "MERKLE_HASH_ALGORITHM"
ALLOWED_LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(frozen=True)
class CLIConfig:
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    key_file: str = str(DEFAULT_KEY_FILE)
    signer_public_key_b64: str | None = None
    log_level: str = "warning"


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _resolve_hash_algorithm(value: Any) -> str:
    try:
        return normalize_hash_algorithm(str(value))
    except InvalidInputError as exc:
        raise ConfigError(str(exc)) from exc


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        parsed = _load_toml(config_path)
    else:
        parsed = {}

    section = parsed.get("cli")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[cli] must be a table")

    env_hash_algorithm = os.getenv(HASH_ALGORITHM_ENV_VAR)
    if env_hash_algorithm and env_hash_algorithm.strip():
        hash_algorithm = _resolve_hash_algorithm(env_hash_algorithm)
    else:
        hash_algorithm = _resolve_hash_algorithm(
            source.get("hash_algorithm", DEFAULT_HASH_ALGORITHM)
        )

    key_file = str(source.get("key_file", DEFAULT_KEY_FILE)).strip()
    if not key_file:
        raise ConfigError("key_file must not be empty")

    signer_public_key_b64_raw = source.get("signer_public_key_b64")
    if signer_public_key_b64_raw is None:
        signer_public_key_b64 = None
    else:
        signer_public_key_b64 = str(signer_public_key_b64_raw).strip() or None

    log_level = str(source.get("log_level", "warning")).strip().lower()
    if log_level not in ALLOWED_LOG_LEVELS:
        raise ConfigError(f"log_level must be one of: {', '.join(ALLOWED_LOG_LEVELS)}")

    return CLIConfig(
        hash_algorithm=hash_algorithm,
        key_file=key_file,
        signer_public_key_b64=signer_public_key_b64,
        log_level=log_level,
    )
