"""
Symmetric primitives for request signing and key checksums.

Wraps the cryptography library to offer the few AES operations the key
sources and signers need, plus the hex decoding used for every key value
that arrives through configuration.

Supported operations:
- AES-CBC with PKCS7 padding and a caller supplied IV (AES request signing)
- AES-ECB single block (PlayReady key checksum)
- SHA-1 digest (message hash signed by the AES signer)
"""

import re

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.backends import default_backend

from ..errors import DecodeError


AES_KEY_SIZES = (16, 24, 32)
AES_BLOCK_SIZE = 16

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def hex_to_bytes(text: str) -> bytes:
    """Decode a hexadecimal string.

    Args:
        text: Hex digits, upper or lower case. Empty string decodes to b"".

    Returns:
        The decoded bytes

    Raises:
        DecodeError: If the string has odd length or non-hex characters
    """
    if len(text) % 2:
        raise DecodeError(f"Odd-length hex string '{text}'")
    # bytes.fromhex would skip whitespace
    if not _HEX_RE.fullmatch(text):
        raise DecodeError(f"Invalid hex string '{text}'")
    return bytes.fromhex(text)


def sha1_digest(message: bytes) -> bytes:
    """Return the SHA-1 digest of message."""
    digest = hashes.Hash(hashes.SHA1(), backend=default_backend())
    digest.update(message)
    return digest.finalize()


def aes_cbc_encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    """Encrypt plaintext using AES-CBC with PKCS7 padding.

    Args:
        plaintext: Data to encrypt
        key: 128, 192 or 256-bit AES key
        iv: 16-byte initialization vector

    Returns:
        Ciphertext (a whole number of blocks)
    """
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded_data = padder.update(plaintext) + padder.finalize()

    cipher = Cipher(
        algorithms.AES(key),
        modes.CBC(iv),
        backend=default_backend()
    )
    encryptor = cipher.encryptor()
    return encryptor.update(padded_data) + encryptor.finalize()


def aes_cbc_decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt AES-CBC data and strip PKCS7 padding.

    Args:
        ciphertext: Encrypted data
        key: Same key used during encryption
        iv: Same IV used during encryption

    Returns:
        Decrypted plaintext
    """
    cipher = Cipher(
        algorithms.AES(key),
        modes.CBC(iv),
        backend=default_backend()
    )
    decryptor = cipher.decryptor()
    padded_plaintext = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded_plaintext) + unpadder.finalize()


def aes_ecb_encrypt_block(block: bytes, key: bytes) -> bytes:
    """Encrypt exactly one 16-byte block with AES-ECB."""
    if len(block) != AES_BLOCK_SIZE:
        raise ValueError(f"AES-ECB expects a {AES_BLOCK_SIZE}-byte block, got {len(block)}")
    cipher = Cipher(
        algorithms.AES(key),
        modes.ECB(),
        backend=default_backend()
    )
    encryptor = cipher.encryptor()
    return encryptor.update(block) + encryptor.finalize()
