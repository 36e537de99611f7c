"""Widevine license server key source.

Requests keys over HTTP with a JSON message. When a signer is attached the
message is base64 wrapped and sent together with its signature and the
signer name:

    {"request": b64(json), "signature": b64(sig), "signer": "<name>"}

The server replies with {"response": b64(json)} whose payload carries a
"status" string and a list of "tracks", each with its key id, key and PSSH
data.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Dict, Iterable, Optional

import requests

from ..signing.request_signer import RequestSigner
from .base import (
    COMMON_SYSTEM_ID,
    WIDEVINE_SYSTEM_ID,
    EncryptionKey,
    KeySource,
    KeySourceError,
    ProtectionSystemInfo,
    Status,
    TrackType,
    build_pssh_box,
    key_map_by_track,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
HTTP_FAILURE = "HTTP_FAILURE"
SERVER_ERROR = "SERVER_ERROR"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class WidevineKeySource(KeySource):
    """Fetches keys from a Widevine license server.

    Args:
        server_url: License server endpoint
        add_common_pssh: Also emit a common system PSSH for every key
        session: requests session to use; a new one is created if omitted
        timeout: Per-request timeout in seconds
    """

    def __init__(self, server_url: str, add_common_pssh: bool,
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.server_url = server_url
        self.add_common_pssh = add_common_pssh
        self.timeout = timeout
        self._session = session or requests.Session()
        self._signer: Optional[RequestSigner] = None
        self._keys: Dict[TrackType, EncryptionKey] = {}

    @property
    def signer(self) -> Optional[RequestSigner]:
        return self._signer

    def set_signer(self, signer: RequestSigner) -> None:
        """Attach the signer that authenticates every request.

        Raises:
            ValueError: If a signer is already attached
        """
        if self._signer is not None:
            raise ValueError("A signer is already attached to this key source")
        self._signer = signer

    def fetch_keys(self, content_id: bytes, policy: str) -> Status:
        """Fetch keys for every track type of a piece of content."""
        request = {
            "content_id": _b64(content_id),
            "policy": policy,
            "tracks": [{"type": t.value} for t in TrackType],
            "drm_types": ["WIDEVINE"],
        }
        return self._fetch(request)

    def fetch_keys_for_key_ids(self, key_ids: Iterable[bytes]) -> Status:
        request = {
            "key_ids": [_b64(kid) for kid in key_ids],
            "drm_types": ["WIDEVINE"],
        }
        return self._fetch(request)

    def get_key(self, track_type: TrackType) -> EncryptionKey:
        return key_map_by_track(self._keys, track_type)

    def get_key_by_id(self, key_id: bytes) -> EncryptionKey:
        """Return the key with key_id, fetching it from the server if needed.

        Raises:
            KeySourceError: If the server does not supply the key
        """
        key = self._find_key(key_id)
        if key is not None:
            return key
        status = self.fetch_keys_for_key_ids([key_id])
        if not status.ok:
            raise KeySourceError(f"Failed to fetch key {key_id.hex()}: {status}")
        key = self._find_key(key_id)
        if key is None:
            raise KeySourceError(f"License server did not return key {key_id.hex()}")
        return key

    def _find_key(self, key_id: bytes) -> Optional[EncryptionKey]:
        for key in self._keys.values():
            if key.key_id == key_id:
                return key
        return None

    def _fetch(self, request: dict) -> Status:
        message = json.dumps(request).encode("utf-8")
        if self._signer is not None:
            body = json.dumps({
                "request": _b64(message),
                "signature": _b64(self._signer.generate_signature(message)),
                "signer": self._signer.signer_name,
            }).encode("utf-8")
        else:
            body = message

        logger.debug("Requesting keys from %s", self.server_url)
        try:
            resp = self._session.post(self.server_url, data=body, timeout=self.timeout)
        except requests.RequestException as e:
            return Status(HTTP_FAILURE, str(e))
        if resp.status_code != 200:
            return Status(HTTP_FAILURE, f"HTTP {resp.status_code}")

        try:
            payload = json.loads(base64.b64decode(resp.json()["response"]))
        except (ValueError, KeyError, TypeError) as e:
            return Status(SERVER_ERROR, f"Malformed license response: {e}")
        if not isinstance(payload, dict):
            return Status(SERVER_ERROR, "License response is not a JSON object")

        status = payload.get("status", SERVER_ERROR)
        if status != "OK":
            return Status(str(status), str(payload.get("message", "")))

        try:
            keys = self._parse_tracks(payload.get("tracks", []))
        except (ValueError, KeyError, TypeError) as e:
            return Status(SERVER_ERROR, f"Malformed track in license response: {e}")
        self._keys.update(keys)
        return Status()

    def _parse_tracks(self, tracks) -> Dict[TrackType, EncryptionKey]:
        if not isinstance(tracks, list):
            raise TypeError("tracks is not a list")
        keys: Dict[TrackType, EncryptionKey] = {}
        for track in tracks:
            if not isinstance(track, dict):
                raise TypeError(f"track entry is not an object: {track!r}")
            try:
                track_type = TrackType(track["type"])
            except ValueError:
                logger.warning("Ignoring unknown track type '%s'", track["type"])
                continue
            key_id = base64.b64decode(track["key_id"], validate=True)
            key = base64.b64decode(track["key"], validate=True)

            system_info = []
            psshs = track.get("pssh", [])
            if not isinstance(psshs, list):
                raise TypeError("pssh is not a list")
            for pssh in psshs:
                if not isinstance(pssh, dict):
                    raise TypeError(f"pssh entry is not an object: {pssh!r}")
                if pssh.get("drm_type") != "WIDEVINE":
                    continue
                data = base64.b64decode(pssh["data"], validate=True)
                system_info.append(
                    ProtectionSystemInfo(WIDEVINE_SYSTEM_ID, build_pssh_box(WIDEVINE_SYSTEM_ID, data))
                )
            if self.add_common_pssh:
                system_info.append(
                    ProtectionSystemInfo(COMMON_SYSTEM_ID, build_pssh_box(COMMON_SYSTEM_ID, key_ids=[key_id]))
                )
            keys[track_type] = EncryptionKey(key_id=key_id, key=key, key_system_info=tuple(system_info))
        return keys
