"""Shared fixtures for key provisioning tests."""

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from drm_keyprov.encryption.asymmetric import serialize_private_key


@pytest.fixture(scope="session")
def rsa_private_key():
    """A 2048-bit RSA key, generated once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def rsa_key_file(tmp_path, rsa_private_key):
    """Path to an unencrypted PEM file holding rsa_private_key."""
    path = tmp_path / "signing_key.pem"
    path.write_bytes(serialize_private_key(rsa_private_key))
    return str(path)
