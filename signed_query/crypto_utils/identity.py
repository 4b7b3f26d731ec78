"""
Party identities and key generation.

An Identity owns one asymmetric key pair. Key generation is a capability
(KeyPairProvider) so that a run can use real RSA keys while tests use a
seeded, deterministic Ed25519 provider.

Supported key types
- RSA (>= 2048 bit), signatures use PKCS#1 v1.5 with SHA-256
- Ed25519
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union, runtime_checkable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from signed_query.crypto_utils.encoding import atomic_write_json, b64_encode, sha256
from signed_query.errors import KeyGenerationFailure

logger = logging.getLogger(__name__)

PrivateKey = Union[rsa.RSAPrivateKey, ed25519.Ed25519PrivateKey]
PublicKey = Union[rsa.RSAPublicKey, ed25519.Ed25519PublicKey]

MIN_RSA_BITS = 2048

_ID_FILE_VERSION = "id.v1"


# =============================================================================
# Key pair providers
# =============================================================================

@runtime_checkable
class KeyPairProvider(Protocol):
    def generate(self) -> PrivateKey: ...


class RsaKeyPairProvider:
    def __init__(self, key_size: int = MIN_RSA_BITS, public_exponent: int = 65537):
        if key_size < MIN_RSA_BITS:
            raise KeyGenerationFailure(f"RSA key size must be at least {MIN_RSA_BITS} bits")
        self.key_size = int(key_size)
        self.public_exponent = int(public_exponent)

    def generate(self) -> rsa.RSAPrivateKey:
        try:
            return rsa.generate_private_key(
                public_exponent=self.public_exponent,
                key_size=self.key_size,
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyGenerationFailure(f"RSA key generation failed: {e}") from e


class Ed25519KeyPairProvider:
    def generate(self) -> ed25519.Ed25519PrivateKey:
        try:
            return ed25519.Ed25519PrivateKey.generate()
        except UnsupportedAlgorithm as e:
            raise KeyGenerationFailure(f"Ed25519 key generation failed: {e}") from e


class SeededEd25519KeyPairProvider:
    """
    Deterministic provider: the n-th generated key is derived from
    sha256(seed || n). Same seed, same sequence of keys.
    """
    def __init__(self, seed: Union[str, bytes]):
        self._seed = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)
        self._counter = 0

    def generate(self) -> ed25519.Ed25519PrivateKey:
        material = sha256(self._seed + self._counter.to_bytes(4, "big"))
        self._counter += 1
        return ed25519.Ed25519PrivateKey.from_private_bytes(material)


# =============================================================================
# Public key serialization
# =============================================================================

def public_key_der(key: PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_key_pem(key: PublicKey) -> str:
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def load_public_key_pem(pem: str) -> PublicKey:
    key = serialization.load_pem_public_key(pem.encode("utf-8"))
    if not isinstance(key, (rsa.RSAPublicKey, ed25519.Ed25519PublicKey)):
        raise ValueError("unsupported public key type")
    return key


def key_fingerprint(key: PublicKey) -> str:
    # sha256 over the DER SubjectPublicKeyInfo
    return b64_encode(sha256(public_key_der(key)))


# =============================================================================
# Identity
# =============================================================================

@dataclass(frozen=True)
class Identity:
    """
    One party's key pair.

    - name: label used in logs and identity files
    - private_key: never leaves the owning party
    """
    name: str
    private_key: PrivateKey

    @classmethod
    def generate(cls, name: str, provider: Optional[KeyPairProvider] = None) -> "Identity":
        provider = provider or RsaKeyPairProvider()
        try:
            key = provider.generate()
        except KeyGenerationFailure:
            raise
        except Exception as e:
            raise KeyGenerationFailure(f"key generation failed for {name}: {e}") from e

        if not isinstance(key, (rsa.RSAPrivateKey, ed25519.Ed25519PrivateKey)):
            raise KeyGenerationFailure(f"provider returned unsupported key type: {type(key).__name__}")
        if isinstance(key, rsa.RSAPrivateKey) and key.key_size < MIN_RSA_BITS:
            raise KeyGenerationFailure(f"RSA key size must be at least {MIN_RSA_BITS} bits")

        ident = cls(name=str(name), private_key=key)
        logger.debug("generated %s identity for %s (key_id=%s)", ident.key_type, name, ident.key_id)
        return ident

    @property
    def public_key(self) -> PublicKey:
        return self.private_key.public_key()

    @property
    def key_id(self) -> str:
        return key_fingerprint(self.public_key)

    @property
    def key_type(self) -> str:
        return "rsa" if isinstance(self.private_key, rsa.RSAPrivateKey) else "ed25519"

    def __repr__(self) -> str:
        return f"Identity(name={self.name!r}, key_type={self.key_type!r}, key_id={self.key_id!r})"


# =============================================================================
# Identity storage
# =============================================================================

def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0).isoformat()


def save_identity_json(path: str, identity: Identity, password: Optional[bytes] = None) -> None:
    """
    Identity file.
    - Always includes the public key (PEM) and its key_id.
    - The private key is PKCS#8 PEM, encrypted when a password is provided.
    """
    if password:
        enc: serialization.KeySerializationEncryption = serialization.BestAvailableEncryption(password)
    else:
        enc = serialization.NoEncryption()

    priv_pem = identity.private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=enc,
    )

    doc: dict[str, Any] = {
        "v": _ID_FILE_VERSION,
        "name": identity.name,
        "created_at": _utc_now_iso(),
        "key_type": identity.key_type,
        "key_id": identity.key_id,
        "public_key_pem": public_key_pem(identity.public_key),
        "private_key_pem": priv_pem.decode("utf-8"),
        "encrypted": bool(password),
    }
    atomic_write_json(path, doc, mode=0o600)


def load_identity_json(path: str, password: Optional[bytes] = None) -> Identity:
    with open(path, "r", encoding="utf-8") as f:
        doc = json.load(f)

    if doc.get("v") != _ID_FILE_VERSION:
        raise ValueError("unsupported identity file format")

    key = serialization.load_pem_private_key(
        doc["private_key_pem"].encode("utf-8"),
        password=password if doc.get("encrypted") else None,
    )
    if not isinstance(key, (rsa.RSAPrivateKey, ed25519.Ed25519PrivateKey)):
        raise ValueError("unsupported private key type in identity file")

    ident = Identity(name=str(doc["name"]), private_key=key)
    if doc.get("key_id") and doc["key_id"] != ident.key_id:
        raise ValueError("identity file key_id does not match its private key")
    return ident
