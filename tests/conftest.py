import sys, os
target_path = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))
if target_path not in sys.path:
    sys.path.insert(0, target_path)

import pytest

from signed_query.crypto_utils import Identity, RsaKeyPairProvider, SeededEd25519KeyPairProvider


# -----------------------------------------------------------------------------
# Identities
# -----------------------------------------------------------------------------

@pytest.fixture
def seeded_provider():
    return SeededEd25519KeyPairProvider("signed-query-tests")


@pytest.fixture
def requester_identity(seeded_provider):
    return Identity.generate("requester", seeded_provider)


@pytest.fixture
def responder_identity(seeded_provider):
    # Second key from the same seeded sequence, distinct from the requester's
    return Identity.generate("responder", seeded_provider)


@pytest.fixture
def intruder_identity():
    return Identity.generate("intruder", SeededEd25519KeyPairProvider("intruder"))


@pytest.fixture(scope="session")
def rsa_pair():
    """Two real RSA-2048 identities, generated once per test session."""
    provider = RsaKeyPairProvider()
    return Identity.generate("alice", provider), Identity.generate("bob", provider)
