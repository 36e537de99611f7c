from __future__ import annotations

import logging

from ..encryption.symmetric import hex_to_bytes
from ..errors import DecodeError
from .base import (
    COMMON_SYSTEM_ID,
    EncryptionKey,
    KeySource,
    KeySourceError,
    ProtectionSystemInfo,
    TrackType,
    build_pssh_box,
    parse_pssh_system_id,
    split_pssh_boxes,
)

logger = logging.getLogger(__name__)

KEY_ID_SIZE = 16


class FixedKeySource(KeySource):
    """Serves a single key, supplied up front, for every track."""

    def __init__(self, encryption_key: EncryptionKey):
        self.encryption_key = encryption_key

    @classmethod
    def from_hex_strings(cls, key_id_hex: str, key_hex: str, pssh_boxes_hex: str,
                         iv_hex: str) -> "FixedKeySource":
        """Create a source from hex strings.

        An empty PSSH produces a common system PSSH listing the key id, when
        the key id has the standard 16-byte size. An empty IV leaves the IV to
        be generated by the encryptor.

        Raises:
            DecodeError: If any of the strings is not valid hex, or the PSSH
                bytes are not a sequence of PSSH boxes
        """
        key_id = _decode("key_id", key_id_hex)
        key = _decode("key", key_hex)
        pssh = _decode("pssh", pssh_boxes_hex)
        iv = _decode("iv", iv_hex)

        if pssh:
            try:
                system_info = tuple(
                    ProtectionSystemInfo(parse_pssh_system_id(box), box)
                    for box in split_pssh_boxes(pssh)
                )
            except ValueError as e:
                raise DecodeError(f"Invalid pssh '{pssh_boxes_hex}': {e}") from e
        elif len(key_id) == KEY_ID_SIZE:
            system_info = (
                ProtectionSystemInfo(COMMON_SYSTEM_ID, build_pssh_box(COMMON_SYSTEM_ID, key_ids=[key_id])),
            )
        else:
            system_info = ()

        return cls(EncryptionKey(key_id=key_id, key=key, iv=iv, key_system_info=system_info))

    def get_key(self, track_type: TrackType) -> EncryptionKey:
        return self.encryption_key

    def get_key_by_id(self, key_id: bytes) -> EncryptionKey:
        if key_id != self.encryption_key.key_id:
            raise KeySourceError(
                f"Key id {key_id.hex()} does not match fixed key id {self.encryption_key.key_id.hex()}"
            )
        return self.encryption_key

    def __eq__(self, other):
        if not isinstance(other, FixedKeySource):
            return NotImplemented
        return self.encryption_key == other.encryption_key

    def __repr__(self) -> str:
        return f"FixedKeySource(key_id={self.encryption_key.key_id.hex()})"


def _decode(name: str, value: str) -> bytes:
    try:
        return hex_to_bytes(value)
    except DecodeError as e:
        logger.error("Invalid hex string for %s: '%s'", name, value)
        raise DecodeError(f"Invalid {name} hex string '{value}'") from e
