from .encoding import canonicalize
from .identity import (
    Identity,
    KeyPairProvider,
    RsaKeyPairProvider,
    Ed25519KeyPairProvider,
    SeededEd25519KeyPairProvider,
    key_fingerprint,
    load_public_key_pem,
    public_key_pem,
    save_identity_json,
    load_identity_json,
    )
from .signature import (
    sign_document,
    verify_document,
    explain_verification,
    strip_signature,
    save_signed_document,
    load_signed_document,
    )
