"""
Error taxonomy for key provisioning.

Every failure raised by the selectors derives from ProvisioningError so the
command layer has a single error-handling path. Each error is raised at the
point of first failure; there is no fallback to a lower-priority backend.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for all key provisioning failures."""


class ConfigError(ProvisioningError):
    """Configuration input could not be parsed."""


class DecodeError(ProvisioningError, ValueError):
    """A hexadecimal or binary value supplied in configuration is malformed."""


class InvalidSignerCredentials(ProvisioningError):
    """AES or RSA signing material could not be turned into a signer."""


class CredentialFileUnreadable(ProvisioningError):
    """The RSA signing key file could not be read."""


class InvalidContentId(ProvisioningError):
    """The content id is not a valid hex string."""


class KeyFetchFailed(ProvisioningError):
    """The license server did not return keys.

    Args:
        status: The Status returned by the key source fetch.
    """

    def __init__(self, status):
        self.status = status
        super().__init__(f"Widevine encryption key source failed to fetch keys: {status}")


class IncompleteManagedCertificateConfig(ProvisioningError):
    """PlayReady encryption is enabled without a key pair or a server/program id."""


class PlayReadyProvisioningFailed(ProvisioningError):
    """The PlayReady server did not return keys for the program identifier."""
