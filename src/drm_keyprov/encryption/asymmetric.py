"""
Asymmetric primitives for request signing.

Provides RSA private key loading and RSA-PSS signatures used to
authenticate license requests sent to a key server.
"""

from typing import Optional
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.backends import default_backend


PSS_SALT_LENGTH = 20


def load_rsa_private_key(key_bytes: bytes,
                         password: Optional[bytes] = None) -> rsa.RSAPrivateKey:
    """Deserialize an RSA private key from PEM or DER bytes.

    Args:
        key_bytes: Serialized key data (PKCS#1 or PKCS#8)
        password: Password if the key is encrypted

    Returns:
        RSA private key

    Raises:
        ValueError: If the data is not a parseable RSA private key
        TypeError: If a password is given for an unencrypted key or vice versa
    """
    if key_bytes.lstrip().startswith(b"-----BEGIN"):
        key = serialization.load_pem_private_key(
            key_bytes, password=password, backend=default_backend()
        )
    else:
        key = serialization.load_der_private_key(
            key_bytes, password=password, backend=default_backend()
        )
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError("Key is not an RSA private key")
    return key


def rsa_pss_sign(message: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
    """Sign message with RSA-PSS over SHA-1 and a 20-byte salt.

    Args:
        message: Data to sign
        private_key: RSA private key for signing

    Returns:
        Signature bytes (length equals the modulus size)
    """
    sig_padding = padding.PSS(
        mgf=padding.MGF1(hashes.SHA1()),
        salt_length=PSS_SALT_LENGTH
    )
    return private_key.sign(message, sig_padding, hashes.SHA1())


def rsa_pss_verify(message: bytes, signature: bytes,
                   public_key: rsa.RSAPublicKey) -> bool:
    """Verify an RSA-PSS signature produced by rsa_pss_sign.

    Returns:
        True if signature is valid, False otherwise
    """
    sig_padding = padding.PSS(
        mgf=padding.MGF1(hashes.SHA1()),
        salt_length=PSS_SALT_LENGTH
    )
    try:
        public_key.verify(signature, message, sig_padding, hashes.SHA1())
        return True
    except InvalidSignature:
        return False


def serialize_private_key(private_key: rsa.RSAPrivateKey, format: str = "pem",
                          password: Optional[bytes] = None) -> bytes:
    """Serialize a private key to PEM or DER format.

    Args:
        private_key: RSA private key to serialize
        format: "pem" or "der"
        password: Optional password for encryption

    Returns:
        Serialized key bytes
    """
    enc_format = serialization.Encoding.PEM if format == "pem" else serialization.Encoding.DER
    enc_method = (
        serialization.BestAvailableEncryption(password) if password
        else serialization.NoEncryption()
    )
    return private_key.private_bytes(
        encoding=enc_format,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=enc_method
    )
