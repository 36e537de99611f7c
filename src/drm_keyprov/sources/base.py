"""Common types shared by the key sources.

Includes the PSSH (Protection System Specific Header) box builder used by
the fixed key and PlayReady sources to describe their keys to players.
"""

from __future__ import annotations

import enum
import struct
import uuid
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple


COMMON_SYSTEM_ID = uuid.UUID("1077efec-c0b2-4d02-ace3-3c1e52e2fb4b")
WIDEVINE_SYSTEM_ID = uuid.UUID("edef8ba9-79d6-4ace-a3c8-27dcd51d21ed")
PLAYREADY_SYSTEM_ID = uuid.UUID("9a04f079-9840-4286-ab92-e65be0885f95")


class TrackType(str, enum.Enum):
    SD = "SD"
    HD = "HD"
    UHD1 = "UHD1"
    UHD2 = "UHD2"
    AUDIO = "AUDIO"


@dataclass(frozen=True)
class Status:
    """Outcome of a key fetch. Mirrors the server status strings."""

    code: str = "OK"
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.code == "OK"

    def __str__(self) -> str:
        if self.message:
            return f"{self.code} ({self.message})"
        return self.code


@dataclass(frozen=True)
class ProtectionSystemInfo:
    """One PSSH box: the system it targets and the full serialized box."""

    system_id: uuid.UUID
    pssh_box: bytes


@dataclass(frozen=True)
class EncryptionKey:
    key_id: bytes
    key: bytes
    iv: bytes = b""
    key_system_info: Tuple[ProtectionSystemInfo, ...] = ()


class KeySourceError(Exception):
    """Raised by key sources when a requested key is unavailable."""


class KeySource:
    """Supplies encryption or decryption keys to the packager."""

    def get_key(self, track_type: TrackType) -> EncryptionKey:
        raise NotImplementedError

    def get_key_by_id(self, key_id: bytes) -> EncryptionKey:
        raise NotImplementedError


def build_pssh_box(system_id: uuid.UUID, data: bytes = b"",
                   key_ids: Sequence[bytes] = ()) -> bytes:
    """Serialize a PSSH box.

    A version 1 box is written when key_ids is non-empty, version 0 otherwise.

    Args:
        system_id: DRM system UUID
        data: System specific payload
        key_ids: 16-byte key ids listed in the box header (version 1 only)

    Returns:
        The complete box including its size and type header
    """
    version = 1 if key_ids else 0
    body = struct.pack(">I", version << 24) + system_id.bytes
    if version == 1:
        body += struct.pack(">I", len(key_ids)) + b"".join(key_ids)
    body += struct.pack(">I", len(data)) + data
    return struct.pack(">I", 8 + len(body)) + b"pssh" + body


def parse_pssh_system_id(pssh_box: bytes) -> uuid.UUID:
    """Return the system id of a serialized PSSH box.

    Raises:
        ValueError: If the data is not a PSSH box
    """
    if len(pssh_box) < 28 or pssh_box[4:8] != b"pssh":
        raise ValueError("Not a PSSH box")
    size = struct.unpack(">I", pssh_box[:4])[0]
    if size != len(pssh_box):
        raise ValueError(f"PSSH box size {size} does not match data length {len(pssh_box)}")
    return uuid.UUID(bytes=pssh_box[12:28])


def split_pssh_boxes(data: bytes) -> List[bytes]:
    """Split concatenated PSSH boxes into individual boxes."""
    boxes = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < 8:
            raise ValueError("Truncated PSSH box header")
        size = struct.unpack(">I", data[offset:offset + 4])[0]
        if size < 8 or offset + size > len(data):
            raise ValueError("Truncated PSSH box")
        boxes.append(data[offset:offset + size])
        offset += size
    return boxes


def key_map_by_track(keys: Dict[TrackType, EncryptionKey], track_type: TrackType) -> EncryptionKey:
    try:
        return keys[track_type]
    except KeyError:
        raise KeySourceError(f"No key available for track type {track_type.value}") from None
