"""Tests for AES and RSA request signers."""

import pytest

from drm_keyprov.encryption.asymmetric import (
    rsa_pss_verify, serialize_private_key
)
from drm_keyprov.encryption.symmetric import aes_cbc_decrypt, sha1_digest
from drm_keyprov.signing.request_signer import AesRequestSigner, RsaRequestSigner


AES_KEY = "6F" * 32
AES_IV = "AA" * 16


class TestAesRequestSigner:
    """Test AES signer creation and signatures."""

    def test_create_valid(self):
        """Valid key and IV produce a named signer."""
        signer = AesRequestSigner.create("widevine_test", AES_KEY, AES_IV)
        assert signer is not None
        assert signer.signer_name == "widevine_test"

    @pytest.mark.parametrize("key,iv", [
        ("6F" * 32, "AA" * 15),     # short IV
        ("6F" * 10, "AA" * 16),     # bad key length
        ("zz" * 32, "AA" * 16),     # not hex
        ("6F6", "AA" * 16),         # odd length
        ("6F" * 32, ""),            # missing IV
        ("6F" * 16 + "  " + "6F" * 16, "AA" * 16),  # embedded spaces
        ("6F" * 32, "AA" * 16 + "\n\n"),   # trailing newlines
    ])
    def test_create_rejects_malformed_material(self, key, iv):
        """Malformed key material yields None rather than raising."""
        assert AesRequestSigner.create("widevine_test", key, iv) is None

    def test_signature_is_encrypted_sha1(self):
        """The signature decrypts back to the SHA-1 of the message."""
        signer = AesRequestSigner.create("widevine_test", AES_KEY, AES_IV)
        message = b'{"content_id": "abc"}'

        signature = signer.generate_signature(message)

        assert len(signature) == 32
        recovered = aes_cbc_decrypt(signature, bytes.fromhex(AES_KEY), bytes.fromhex(AES_IV))
        assert recovered == sha1_digest(message)


class TestRsaRequestSigner:
    """Test RSA signer creation and signatures."""

    def test_create_from_pem(self, rsa_private_key):
        pem = serialize_private_key(rsa_private_key)
        signer = RsaRequestSigner.create("widevine_test", pem)
        assert signer is not None

    def test_create_from_der(self, rsa_private_key):
        der = serialize_private_key(rsa_private_key, format="der")
        assert RsaRequestSigner.create("widevine_test", der) is not None

    def test_create_rejects_garbage(self):
        assert RsaRequestSigner.create("widevine_test", b"not a key") is None

    def test_create_rejects_encrypted_key_without_password(self, rsa_private_key):
        pem = serialize_private_key(rsa_private_key, password=b"secret")
        assert RsaRequestSigner.create("widevine_test", pem) is None

    def test_signature_verifies(self, rsa_private_key):
        """RSA-PSS signatures verify against the public key."""
        signer = RsaRequestSigner.create("widevine_test", serialize_private_key(rsa_private_key))
        message = b"license request"

        signature = signer.generate_signature(message)

        assert rsa_pss_verify(message, signature, rsa_private_key.public_key())
        assert not rsa_pss_verify(b"tampered", signature, rsa_private_key.public_key())
