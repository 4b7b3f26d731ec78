from __future__ import annotations

import base64
import json
import os
import tempfile
from typing import Any

from cryptography.hazmat.primitives import hashes


# =============================================================================
# Encoding and canonical JSON
# =============================================================================

def b64_encode(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def b64_decode(data: str) -> bytes:
    return base64.b64decode(data.encode("utf-8"), validate=True)


def canonicalize(obj: Any) -> bytes:
    """
    Deterministic serialization used as the exact input to digesting/signing.

    Compact separators, sorted keys, UTF-8 text. NaN/Infinity are rejected.
    """
    return json.dumps(
        obj,
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def sha256(data: bytes) -> bytes:
    h = hashes.Hash(hashes.SHA256())
    h.update(data)
    return h.finalize()


# =============================================================================
# Files
# =============================================================================

def atomic_write_json(path: str, doc: Any, *, mode: int = 0o600) -> None:
    # Readers only ever see the previous file or the complete new one.
    d = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp.", dir=d)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        # best-effort perms
        try:
            os.chmod(tmp, mode)
        except OSError:
            pass
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)
