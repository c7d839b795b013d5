from __future__ import annotations

import hashlib
import io
import json

import pytest

from merkle_sdk.cli.main import main


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch) -> None:
    monkeypatch.delenv("MERKLE_HASH_ALGORITHM", raising=False)


def _run(tmp_path, *args: str) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    rc = main(["--config", str(tmp_path / "missing.toml"), *args], stdout=out, stderr=err)
    return rc, out.getvalue(), err.getvalue()


def _items_file(tmp_path, name: str, items: list[str]):
    path = tmp_path / name
    path.write_text("\n".join(items) + "\n", encoding="utf-8")
    return path


def test_version_json_has_expected_fields(tmp_path) -> None:
    rc, out, err = _run(tmp_path, "version", "--json")

    assert rc == 0
    assert err == ""
    payload = json.loads(out)
    assert payload["cli"] == "merkle"
    assert payload["proof_version"] == "MERKLE-PROOF-0.1"
    assert payload["hash_algorithm"] == "md5"
    assert isinstance(payload["sdk_version"], str)


def test_root_reports_width_and_height(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B", "C"])
    rc, out, _ = _run(tmp_path, "root", str(items), "--json")

    assert rc == 0
    payload = json.loads(out)
    assert payload["width"] == 3
    assert payload["height"] == 2
    assert payload["hash_algorithm"] == "md5"


def test_hash_algorithm_flag_overrides_config(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A"])
    rc, out, _ = _run(tmp_path, "--hash-algorithm", "sha256", "root", str(items), "--json")

    assert rc == 0
    assert json.loads(out)["root_digest"] == hashlib.sha256(b"A").hexdigest()


def test_blank_lines_are_skipped(tmp_path) -> None:
    items = tmp_path / "items.txt"
    items.write_text("A\n\nB\n", encoding="utf-8")
    rc, out, _ = _run(tmp_path, "root", str(items), "--json")

    assert rc == 0
    assert json.loads(out)["width"] == 2


def test_dump_prints_data_and_hash(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B"])
    rc, out, _ = _run(tmp_path, "dump", str(items))

    assert rc == 0
    assert out.splitlines() == [
        f"Data: A, Hash: {hashlib.md5(b'A').hexdigest()}",
        f"Data: B, Hash: {hashlib.md5(b'B').hexdigest()}",
    ]


def test_index_of_present_and_missing_item(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B", "C", "D", "E"])

    rc, out, _ = _run(tmp_path, "index", str(items), "E", "--json")
    assert rc == 0
    assert json.loads(out)["index"] == 4

    rc, out, _ = _run(tmp_path, "index", str(items), "X")
    assert rc == 4
    assert out.strip() == "index: -1"


def test_proof_and_verify_round_trip(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B", "C", "D"])
    proof_path = tmp_path / "proof.json"

    rc, out, _ = _run(tmp_path, "proof", str(items), "C", "--out", str(proof_path))
    assert rc == 0
    assert "proof written" in out
    assert json.loads(proof_path.read_text(encoding="utf-8"))["length"] == 2

    rc, out, _ = _run(tmp_path, "verify", str(proof_path), "C")
    assert rc == 0
    assert out.startswith("valid: true")

    rc, out, _ = _run(tmp_path, "verify", str(proof_path), "X")
    assert rc == 4
    assert out.startswith("valid: false")


def test_proof_for_missing_item_fails(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B"])
    rc, _, err = _run(tmp_path, "proof", str(items), "X")

    assert rc == 1
    assert "proof error" in err


def test_signed_proof_flow(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B", "C"])
    key_file = tmp_path / "key.json"
    proof_path = tmp_path / "proof.json"

    rc, out, _ = _run(tmp_path, "init", "--key-file", str(key_file), "--json")
    assert rc == 0
    public_key_b64 = json.loads(out)["public_key_b64"]

    rc, _, _ = _run(
        tmp_path, "proof", str(items), "B", "--sign", "--key-file", str(key_file), "--out", str(proof_path)
    )
    assert rc == 0

    rc, out, _ = _run(
        tmp_path,
        "verify",
        str(proof_path),
        "B",
        "--public-key-b64",
        public_key_b64,
        "--require-signature",
        "--json",
    )
    assert rc == 0
    assert json.loads(out) == {"valid": True, "reason": "ok", "signed": True}

    document = json.loads(proof_path.read_text(encoding="utf-8"))
    document["root_digest"] = "0" * 32
    proof_path.write_text(json.dumps(document), encoding="utf-8")
    rc, out, _ = _run(tmp_path, "verify", str(proof_path), "B", "--json")
    assert rc == 4
    assert json.loads(out)["reason"] == "invalid signature"


def test_require_signature_rejects_unsigned_proof(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B"])
    proof_path = tmp_path / "proof.json"
    _run(tmp_path, "proof", str(items), "A", "--out", str(proof_path))

    rc, out, _ = _run(tmp_path, "verify", str(proof_path), "A", "--require-signature")
    assert rc == 4
    assert "missing signature" in out


def test_sign_without_key_file_fails(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B"])
    rc, _, err = _run(
        tmp_path, "proof", str(items), "A", "--sign", "--key-file", str(tmp_path / "absent.json")
    )

    assert rc == 1
    assert "key error" in err


def test_diff_reports_mismatched_indices(tmp_path) -> None:
    first = _items_file(tmp_path, "a.txt", ["A", "B", "C", "D", "E"])
    second = _items_file(tmp_path, "b.txt", ["A", "B", "X", "D", "E"])

    rc, out, _ = _run(tmp_path, "diff", str(first), str(second), "--json")
    assert rc == 4
    assert json.loads(out) == {"mismatched_indices": [2]}

    rc, out, _ = _run(tmp_path, "diff", str(first), str(first))
    assert rc == 0
    assert out == ""


def test_diff_width_mismatch_is_input_error(tmp_path) -> None:
    first = _items_file(tmp_path, "a.txt", ["A", "B", "C"])
    second = _items_file(tmp_path, "b.txt", ["A", "B"])

    rc, _, err = _run(tmp_path, "diff", str(first), str(second))
    assert rc == 1
    assert "input error" in err


def test_missing_or_empty_items_file_is_input_error(tmp_path) -> None:
    rc, _, err = _run(tmp_path, "root", str(tmp_path / "absent.txt"))
    assert rc == 1
    assert "items file not found" in err

    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")
    rc, _, err = _run(tmp_path, "root", str(empty))
    assert rc == 1
    assert "non-empty" in err


def test_invalid_config_reports_error(tmp_path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('hash_algorithm = "crc32"\n', encoding="utf-8")
    err = io.StringIO()

    rc = main(["--config", str(config_path), "version"], stdout=io.StringIO(), stderr=err)
    assert rc == 1
    assert "config error" in err.getvalue()


def test_unreadable_items_file_is_input_error(tmp_path) -> None:
    binary = tmp_path / "binary.txt"
    binary.write_bytes(b"A\n\xff\xfe\n")
    rc, _, err = _run(tmp_path, "root", str(binary))
    assert rc == 1
    assert "input error" in err
    assert "UTF-8" in err

    directory = tmp_path / "items_dir"
    directory.mkdir()
    rc, _, err = _run(tmp_path, "root", str(directory))
    assert rc == 1
    assert "input error" in err


def test_unreadable_proof_file_is_proof_error(tmp_path) -> None:
    binary = tmp_path / "proof.json"
    binary.write_bytes(b"\xff\xfe{}")
    rc, _, err = _run(tmp_path, "verify", str(binary), "A")
    assert rc == 1
    assert "proof error" in err

    rc, _, err = _run(tmp_path, "verify", str(tmp_path / "absent.json"), "A")
    assert rc == 1
    assert "proof error" in err


def test_items_split_on_newline_only(tmp_path) -> None:
    items = tmp_path / "items.txt"
    items.write_bytes("A\u2028B\r\nC\n".encode("utf-8"))
    rc, out, _ = _run(tmp_path, "root", str(items), "--json")

    assert rc == 0
    assert json.loads(out)["width"] == 2

    rc, out, _ = _run(tmp_path, "index", str(items), "A\u2028B", "--json")
    assert rc == 0
    assert json.loads(out)["index"] == 0


def test_verbose_logging_goes_to_each_calls_stderr(tmp_path) -> None:
    items = _items_file(tmp_path, "items.txt", ["A", "B"])

    _, _, first_err = _run(tmp_path, "--verbose", "root", str(items))
    _, _, second_err = _run(tmp_path, "--verbose", "root", str(items))
    _, _, quiet_err = _run(tmp_path, "root", str(items))

    assert "built merkle tree" in first_err
    assert "built merkle tree" in second_err
    assert "built merkle tree" not in quiet_err
