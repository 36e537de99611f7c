"""
Key source selection.

Turns a ProvisioningConfig into at most one key source. Backends are
mutually exclusive and checked in a fixed priority order; only the selected
path is validated. A None result means protection was not requested; every
failure raises a ProvisioningError and nothing partially built is returned.

Encryption priority: Widevine > fixed key > PlayReady.
Decryption priority: Widevine > fixed key.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from .config import ProvisioningConfig
from .encryption.symmetric import hex_to_bytes
from .errors import (
    CredentialFileUnreadable,
    DecodeError,
    IncompleteManagedCertificateConfig,
    InvalidContentId,
    InvalidSignerCredentials,
    KeyFetchFailed,
    PlayReadyProvisioningFailed,
)
from .signing.request_signer import AesRequestSigner, RequestSigner, RsaRequestSigner
from .sources.base import KeySource
from .sources.fixed import FixedKeySource
from .sources.playready import PlayReadyKeySource
from .sources.widevine import WidevineKeySource
from .utils import file_io

logger = logging.getLogger(__name__)


class EncryptionMode(enum.Enum):
    NONE = "none"
    WIDEVINE = "widevine"
    FIXED_KEY = "fixed_key"
    PLAYREADY = "playready"


class DecryptionMode(enum.Enum):
    NONE = "none"
    WIDEVINE = "widevine"
    FIXED_KEY = "fixed_key"


class PlayReadyMode(enum.Enum):
    STATIC_KEY = "static_key"
    SERVER_WITH_CLIENT_CERT = "server_with_client_cert"
    SERVER = "server"
    INCOMPLETE = "incomplete"


# ---- decision tables ----

def select_encryption_mode(config: ProvisioningConfig) -> EncryptionMode:
    if config.enable_widevine_encryption:
        return EncryptionMode.WIDEVINE
    if config.enable_fixed_key_encryption:
        return EncryptionMode.FIXED_KEY
    if config.enable_playready_encryption:
        return EncryptionMode.PLAYREADY
    return EncryptionMode.NONE


def select_decryption_mode(config: ProvisioningConfig) -> DecryptionMode:
    if config.enable_widevine_decryption:
        return DecryptionMode.WIDEVINE
    if config.enable_fixed_key_decryption:
        return DecryptionMode.FIXED_KEY
    return DecryptionMode.NONE


def select_playready_mode(config: ProvisioningConfig) -> PlayReadyMode:
    if config.playready_key_id and config.playready_key:
        return PlayReadyMode.STATIC_KEY
    if config.playready_server_url and config.program_identifier:
        if (config.client_cert_file and config.client_cert_private_key_file
                and config.client_cert_private_key_password):
            return PlayReadyMode.SERVER_WITH_CLIENT_CERT
        return PlayReadyMode.SERVER
    return PlayReadyMode.INCOMPLETE


# ---- signer ----

def create_signer(config: ProvisioningConfig) -> Optional[RequestSigner]:
    """Create the request signer described by config.

    AES signing takes precedence over RSA signing; a bad AES key is an error
    and does not fall back to RSA.

    Returns:
        The signer, or None when no signing key is configured

    Raises:
        InvalidSignerCredentials: If the key material cannot form a signer
        CredentialFileUnreadable: If the RSA key file cannot be read
    """
    if config.aes_signing_key:
        signer = AesRequestSigner.create(config.signer, config.aes_signing_key, config.aes_signing_iv)
        if signer is None:
            logger.error("Cannot create an AES signer object from '%s':'%s'.",
                         config.aes_signing_key, config.aes_signing_iv)
            raise InvalidSignerCredentials(
                f"Cannot create an AES signer object from "
                f"'{config.aes_signing_key}':'{config.aes_signing_iv}'"
            )
        return signer

    if config.rsa_signing_key_path:
        try:
            rsa_private_key = file_io.read_file_to_bytes(config.rsa_signing_key_path)
        except OSError as e:
            logger.error("Failed to read from '%s'.", config.rsa_signing_key_path)
            raise CredentialFileUnreadable(
                f"Failed to read from '{config.rsa_signing_key_path}': {e}"
            ) from e
        signer = RsaRequestSigner.create(config.signer, rsa_private_key)
        if signer is None:
            logger.error("Cannot create a RSA signer object from '%s'.", config.rsa_signing_key_path)
            raise InvalidSignerCredentials(
                f"Cannot create a RSA signer object from '{config.rsa_signing_key_path}'"
            )
        return signer

    return None


# ---- key sources ----

def _create_widevine_key_source(config: ProvisioningConfig) -> WidevineKeySource:
    """Build a Widevine source and attach the signer if one is named."""
    signer = None
    if config.signer:
        signer = create_signer(config)

    key_source = WidevineKeySource(config.key_server_url, config.include_common_pssh)
    if signer is not None:
        key_source.set_signer(signer)
    return key_source


def _create_widevine_encryption_source(config: ProvisioningConfig) -> WidevineKeySource:
    key_source = _create_widevine_key_source(config)

    try:
        content_id = hex_to_bytes(config.content_id)
    except DecodeError as e:
        logger.error("Invalid content_id hex string specified: '%s'.", config.content_id)
        raise InvalidContentId(f"Invalid content_id hex string '{config.content_id}'") from e

    status = key_source.fetch_keys(content_id, config.policy)
    if not status.ok:
        logger.error("Widevine encryption key source failed to fetch keys: %s", status)
        raise KeyFetchFailed(status)
    return key_source


def _create_playready_encryption_source(config: ProvisioningConfig) -> PlayReadyKeySource:
    mode = select_playready_mode(config)

    if mode is PlayReadyMode.STATIC_KEY:
        return PlayReadyKeySource.from_key_and_key_id(config.playready_key_id, config.playready_key)

    if mode is PlayReadyMode.INCOMPLETE:
        logger.error("Error creating PlayReady key source.")
        raise IncompleteManagedCertificateConfig(
            "PlayReady encryption needs playready_key_id and playready_key, "
            "or playready_server_url and program_identifier"
        )

    if mode is PlayReadyMode.SERVER_WITH_CLIENT_CERT:
        key_source = PlayReadyKeySource(
            config.playready_server_url,
            config.client_cert_file,
            config.client_cert_private_key_file,
            config.client_cert_private_key_password,
        )
    else:
        key_source = PlayReadyKeySource(config.playready_server_url)
    if config.ca_file:
        key_source.set_ca_file(config.ca_file)

    if not key_source.fetch_keys_with_program_identifier(config.program_identifier):
        logger.error("PlayReady key source failed to fetch keys for program '%s'.",
                     config.program_identifier)
        raise PlayReadyProvisioningFailed(
            f"Failed to fetch PlayReady keys for program identifier '{config.program_identifier}'"
        )
    return key_source


def create_encryption_key_source(config: ProvisioningConfig) -> Optional[KeySource]:
    """Create the key source used to encrypt content.

    Returns:
        The key source, or None when no encryption backend is enabled

    Raises:
        ProvisioningError: On any invalid input or failed key fetch
    """
    mode = select_encryption_mode(config)
    if mode is EncryptionMode.WIDEVINE:
        key_source = _create_widevine_encryption_source(config)
    elif mode is EncryptionMode.FIXED_KEY:
        key_source = FixedKeySource.from_hex_strings(config.key_id, config.key, config.pssh, config.iv)
    elif mode is EncryptionMode.PLAYREADY:
        key_source = _create_playready_encryption_source(config)
    else:
        return None
    logger.info("Using %s encryption key source", mode.value)
    return key_source


def create_decryption_key_source(config: ProvisioningConfig) -> Optional[KeySource]:
    """Create the key source used to decrypt input content.

    The Widevine source fetches keys lazily, per key id, when they are used.

    Returns:
        The key source, or None when no decryption backend is enabled
    """
    mode = select_decryption_mode(config)
    if mode is DecryptionMode.WIDEVINE:
        key_source = _create_widevine_key_source(config)
    elif mode is DecryptionMode.FIXED_KEY:
        key_source = FixedKeySource.from_hex_strings(config.key_id, config.key, "", "")
    else:
        return None
    logger.info("Using %s decryption key source", mode.value)
    return key_source
