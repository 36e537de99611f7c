"""Request signers used to authenticate license requests to a key server.

A signer is owned by exactly one key source. The factory methods return None
instead of raising when the supplied key material is unusable so that the
caller decides how to report it.
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import rsa

from ..encryption import asymmetric, symmetric
from ..errors import DecodeError

logger = logging.getLogger(__name__)


class RequestSigner:
    """Base class for request signers."""

    def __init__(self, signer_name: str):
        self.signer_name = signer_name

    def generate_signature(self, message: bytes) -> bytes:
        raise NotImplementedError


class AesRequestSigner(RequestSigner):
    """Signs the SHA-1 hash of a request with AES-CBC."""

    def __init__(self, signer_name: str, key: bytes, iv: bytes):
        super().__init__(signer_name)
        self._key = key
        self._iv = iv

    @classmethod
    def create(cls, signer_name: str, aes_key_hex: str,
               iv_hex: str) -> Optional["AesRequestSigner"]:
        """Create a signer from hex encoded key and IV.

        Args:
            signer_name: Name registered with the key server
            aes_key_hex: 16, 24 or 32-byte AES key in hex
            iv_hex: 16-byte IV in hex

        Returns:
            The signer, or None if the key or IV is malformed
        """
        try:
            key = symmetric.hex_to_bytes(aes_key_hex)
            iv = symmetric.hex_to_bytes(iv_hex)
        except DecodeError as e:
            logger.debug("Rejecting AES signing material: %s", e)
            return None
        if len(key) not in symmetric.AES_KEY_SIZES:
            logger.debug("Rejecting AES signing key of %d bytes", len(key))
            return None
        if len(iv) != symmetric.AES_BLOCK_SIZE:
            logger.debug("Rejecting AES signing IV of %d bytes", len(iv))
            return None
        return cls(signer_name, key, iv)

    def generate_signature(self, message: bytes) -> bytes:
        return symmetric.aes_cbc_encrypt(symmetric.sha1_digest(message), self._key, self._iv)


class RsaRequestSigner(RequestSigner):
    """Signs a request with RSA-PSS."""

    def __init__(self, signer_name: str, private_key: rsa.RSAPrivateKey):
        super().__init__(signer_name)
        self._private_key = private_key

    @classmethod
    def create(cls, signer_name: str,
               private_key_bytes: bytes) -> Optional["RsaRequestSigner"]:
        """Create a signer from a serialized RSA private key (PEM or DER).

        Returns:
            The signer, or None if the key cannot be parsed
        """
        try:
            private_key = asymmetric.load_rsa_private_key(private_key_bytes)
        except (ValueError, TypeError) as e:
            logger.debug("Rejecting RSA signing key: %s", e)
            return None
        return cls(signer_name, private_key)

    def generate_signature(self, message: bytes) -> bytes:
        return asymmetric.rsa_pss_sign(message, self._private_key)
