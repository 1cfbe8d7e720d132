"""Canonical hashing helpers for stage records and bundle fingerprints."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any

_CHUNK = 1 << 20


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_input_hash(stage_id: str, inputs: dict[str, Any]) -> str:
    """SHA-256 of canonical(stage_id + inputs)."""
    return sha256_hex(canonical_json_bytes({"stage_id": stage_id, "inputs": inputs}))


def compute_output_hash(stage_id: str, outputs: dict[str, Any]) -> str:
    """SHA-256 of canonical(stage_id + outputs)."""
    return sha256_hex(canonical_json_bytes({"stage_id": stage_id, "outputs": outputs}))


def fingerprint_tree(root: Path) -> str:
    """SHA-256 over every path, file body and symlink target under *root*.

    Two trees with the same fingerprint are byte-identical, which is how
    a second rewriter pass is shown to change nothing.
    """
    digest = hashlib.sha256()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        current = Path(dirpath)
        for name in sorted(filenames) + [d for d in dirnames if (current / d).is_symlink()]:
            path = current / name
            rel = path.relative_to(root).as_posix()
            digest.update(rel.encode("utf-8") + b"\0")
            if path.is_symlink():
                digest.update(b"L" + os.readlink(path).encode("utf-8") + b"\0")
                continue
            digest.update(b"F")
            with path.open("rb") as fh:
                for chunk in iter(lambda: fh.read(_CHUNK), b""):
                    digest.update(chunk)
            digest.update(b"\0")
    return digest.hexdigest()
