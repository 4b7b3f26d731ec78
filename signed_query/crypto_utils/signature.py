# =============================================================================
# Enveloped signatures for exchanged documents
# =============================================================================
"""
Design goals
- The signature travels inside the document it covers (enveloped placement):
  a verifier needs only the document and the claimed signer's public key.
- Canonical JSON is the exact byte input to digesting, so signer and verifier
  always digest identical bytes regardless of key order or whitespace.
- Verification never raises. Every rejection has a reason that is logged.

Layout of a signed document

    {
      ...document members...,
      "signature": {
        "v": "sig.v1",
        "alg": "rsa-sha256" | "ed25519",
        "digest_alg": "sha256",
        "digest": b64(sha256(canonical(document without "signature"))),
        "key_id": b64(sha256(DER SubjectPublicKeyInfo of the signer)),
        "value": b64(sign(canonical(signed_info)))
      }
    }

signed_info is the "signature" object without "value". The signature value
covers canonical(signed_info), which carries the digest, algorithm and key_id.
"""

from __future__ import annotations

import hmac
import json
import logging
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed25519, padding, rsa

from signed_query.crypto_utils.encoding import (
    atomic_write_json,
    b64_decode,
    b64_encode,
    canonicalize,
    sha256,
)
from signed_query.crypto_utils.identity import PrivateKey, PublicKey, key_fingerprint
from signed_query.errors import DocumentLoadError, SignatureFailure

logger = logging.getLogger(__name__)

SIG_VERSION = "sig.v1"
SIGNATURE_FIELD = "signature"

ALG_RSA_SHA256 = "rsa-sha256"
ALG_ED25519 = "ed25519"
DIGEST_ALG = "sha256"

_SIGNED_INFO_KEYS = ("v", "alg", "digest_alg", "digest", "key_id")


# =============================================================================
# Raw signatures
# =============================================================================

def _alg_for(key: Any) -> Optional[str]:
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return ALG_RSA_SHA256
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey)):
        return ALG_ED25519
    return None


def sign_bytes(private_key: PrivateKey, data: bytes) -> str:
    if isinstance(private_key, rsa.RSAPrivateKey):
        sig = private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
    else:
        sig = private_key.sign(data)
    return b64_encode(sig)


def verify_bytes(public_key: PublicKey, data: bytes, sig_b64: str) -> None:
    """Raises InvalidSignature / ValueError on mismatch."""
    sig = b64_decode(sig_b64)
    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(sig, data, padding.PKCS1v15(), hashes.SHA256())
    else:
        if len(sig) != 64:
            raise ValueError("invalid Ed25519 signature length")
        public_key.verify(sig, data)


# =============================================================================
# Documents
# =============================================================================

def sign_document(document: dict, private_key: Optional[PrivateKey]) -> dict:
    """
    Return a signed copy of document. The input is not modified.

    Raises SignatureFailure when the key is unavailable or the document is not
    a serializable JSON object (or is already signed).
    """
    alg = _alg_for(private_key)
    if private_key is None or alg is None or not hasattr(private_key, "sign"):
        raise SignatureFailure("private key unavailable for signing")
    if not isinstance(document, dict):
        raise SignatureFailure("document must be a JSON object")
    if SIGNATURE_FIELD in document:
        raise SignatureFailure("document already carries a signature block")

    try:
        body = canonicalize(document)
    except (TypeError, ValueError) as e:
        raise SignatureFailure(f"document is not serializable: {e}") from e

    signed_info = {
        "v": SIG_VERSION,
        "alg": alg,
        "digest_alg": DIGEST_ALG,
        "digest": b64_encode(sha256(body)),
        "key_id": key_fingerprint(private_key.public_key()),
    }
    value = sign_bytes(private_key, canonicalize(signed_info))

    # Fresh copy decoded from the canonical bytes, detached from the caller's objects
    out = json.loads(body.decode("utf-8"))
    out[SIGNATURE_FIELD] = {**signed_info, "value": value}
    return out


def explain_verification(signed: Any, public_key: Any) -> Optional[str]:
    """
    Run every verification check and return the first rejection reason,
    or None when the signed document is valid for public_key.
    """
    if not isinstance(signed, dict):
        return "signed document must be a JSON object"

    block = signed.get(SIGNATURE_FIELD)
    if block is None:
        return "missing signature block"
    if not isinstance(block, dict):
        return "signature block must be an object"

    for k in _SIGNED_INFO_KEYS + ("value",):
        if not isinstance(block.get(k), str):
            return f"signature block field {k!r} missing or not a string"

    if block["v"] != SIG_VERSION:
        return "unsupported signature version"
    if block["digest_alg"] != DIGEST_ALG:
        return "unsupported digest algorithm"

    key_alg = _alg_for(public_key)
    if key_alg is None or not isinstance(public_key, (rsa.RSAPublicKey, ed25519.Ed25519PublicKey)):
        return "unsupported public key"
    if block["alg"] != key_alg:
        return "signature algorithm does not match the public key"

    try:
        if block["key_id"] != key_fingerprint(public_key):
            return "signature was made with a different key"

        body = {k: v for k, v in signed.items() if k != SIGNATURE_FIELD}
        digest = sha256(canonicalize(body))
        if not hmac.compare_digest(digest, b64_decode(block["digest"])):
            return "digest mismatch (document modified after signing)"

        signed_info = {k: block[k] for k in _SIGNED_INFO_KEYS}
        verify_bytes(public_key, canonicalize(signed_info), block["value"])
    except InvalidSignature:
        return "signature mismatch"
    except (TypeError, ValueError, RecursionError) as e:
        return f"malformed signed document: {e}"

    return None


def verify_document(signed: Any, public_key: Any) -> bool:
    """True when signed carries a valid enveloped signature by public_key."""
    reason = explain_verification(signed, public_key)
    if reason is not None:
        logger.warning("signature rejected: %s", reason)
        return False
    return True


def strip_signature(signed: dict) -> dict:
    return {k: v for k, v in signed.items() if k != SIGNATURE_FIELD}


# =============================================================================
# Persistence
# =============================================================================

def save_signed_document(path: str, signed: dict) -> None:
    atomic_write_json(path, signed, mode=0o644)


def load_signed_document(path: str) -> Any:
    # Returns whatever JSON the file holds; shape checks belong to verification.
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise DocumentLoadError(f"cannot read document {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"document {path} is not valid JSON: {e}") from e
    except RecursionError as e:
        raise DocumentLoadError(f"document {path} is nested too deeply") from e
