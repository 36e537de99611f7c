"""PlayReady key source.

Keys either come from a static key id/key pair, or from a PlayReady key
server that is queried with a program identifier. The server connection can
be authenticated with an X.509 client certificate and a custom CA bundle.
"""

from __future__ import annotations

import base64
import logging
import struct
import tempfile
import uuid
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

import requests

from ..encryption import asymmetric, symmetric
from ..errors import DecodeError
from .base import (
    PLAYREADY_SYSTEM_ID,
    EncryptionKey,
    KeySource,
    KeySourceError,
    ProtectionSystemInfo,
    TrackType,
    build_pssh_box,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
PLAYREADY_KEY_SIZE = 16
WRM_HEADER_NS = "http://schemas.microsoft.com/DRM/2007/03/PlayReadyHeader"
RIGHTS_MANAGEMENT_HEADER = 1
SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
KEY_SERVICE_NS = "http://playready.microsoft.com/keyservice"


def _local_name(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def generate_playready_object(key_id: bytes, key: bytes) -> bytes:
    """Build a PlayReady Object holding a v4.0 WRM header for one key.

    The header KID is the key id in little-endian GUID order and the CHECKSUM
    is the first 8 bytes of AES-ECB(key, KID).
    """
    kid_le = uuid.UUID(bytes=key_id).bytes_le
    checksum = symmetric.aes_ecb_encrypt_block(kid_le, key)[:8]
    header = (
        f'<WRMHEADER xmlns="{WRM_HEADER_NS}" version="4.0.0.0">'
        "<DATA><PROTECTINFO><KEYLEN>16</KEYLEN><ALGID>AESCTR</ALGID></PROTECTINFO>"
        f"<KID>{base64.b64encode(kid_le).decode('ascii')}</KID>"
        f"<CHECKSUM>{base64.b64encode(checksum).decode('ascii')}</CHECKSUM>"
        "</DATA></WRMHEADER>"
    ).encode("utf-16-le")
    record = struct.pack("<HH", RIGHTS_MANAGEMENT_HEADER, len(header)) + header
    return struct.pack("<IH", 6 + len(record), 1) + record


def _build_key(key_id: bytes, key: bytes) -> EncryptionKey:
    if len(key_id) != PLAYREADY_KEY_SIZE or len(key) != PLAYREADY_KEY_SIZE:
        raise DecodeError(
            f"PlayReady key id and key must be {PLAYREADY_KEY_SIZE} bytes, "
            f"got {len(key_id)} and {len(key)}"
        )
    pssh = build_pssh_box(PLAYREADY_SYSTEM_ID, generate_playready_object(key_id, key), key_ids=[key_id])
    return EncryptionKey(
        key_id=key_id,
        key=key,
        key_system_info=(ProtectionSystemInfo(PLAYREADY_SYSTEM_ID, pssh),),
    )


class PlayReadyKeySource(KeySource):
    """Serves a single PlayReady key for every track.

    Args:
        server_url: PlayReady key server endpoint
        client_cert_file: PEM client certificate (optional)
        client_cert_private_key_file: PEM private key for the certificate
        client_cert_private_key_password: Password protecting the private key
        session: requests session to use; a new one is created if omitted
    """

    def __init__(self, server_url: str, client_cert_file: str = "",
                 client_cert_private_key_file: str = "",
                 client_cert_private_key_password: str = "",
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.server_url = server_url
        self.client_cert_file = client_cert_file
        self.client_cert_private_key_file = client_cert_private_key_file
        self.client_cert_private_key_password = client_cert_private_key_password
        self.ca_file = ""
        self.timeout = timeout
        self._session = session or requests.Session()
        self._key: Optional[EncryptionKey] = None

    @classmethod
    def from_key_and_key_id(cls, key_id_hex: str, key_hex: str) -> "PlayReadyKeySource":
        """Create a source from a static key pair. No server is contacted.

        Raises:
            DecodeError: If either value is not 16 bytes of valid hex
        """
        source = cls("")
        source._key = _build_key(symmetric.hex_to_bytes(key_id_hex), symmetric.hex_to_bytes(key_hex))
        return source

    def set_ca_file(self, ca_file: str) -> None:
        self.ca_file = ca_file

    def fetch_keys_with_program_identifier(self, program_identifier: str) -> bool:
        """Request the key for program_identifier from the server.

        Returns:
            True if a key was received and stored
        """
        body = self._build_request(program_identifier)
        verify = self.ca_file or True
        try:
            with tempfile.TemporaryDirectory() as tmp:
                cert = self._client_cert(Path(tmp))
                resp = self._session.post(
                    self.server_url,
                    data=body,
                    headers={"Content-Type": "text/xml; charset=utf-8"},
                    cert=cert,
                    verify=verify,
                    timeout=self.timeout,
                )
        except requests.RequestException as e:
            logger.error("PlayReady key request to %s failed: %s", self.server_url, e)
            return False
        except (OSError, ValueError, TypeError) as e:
            logger.error("Cannot load PlayReady client certificate key '%s': %s",
                         self.client_cert_private_key_file, e)
            return False

        if resp.status_code != 200:
            logger.error("PlayReady key server returned HTTP %d", resp.status_code)
            return False
        try:
            self._key = self._parse_response(resp.content)
        except (ET.ParseError, ValueError) as e:
            logger.error("Malformed PlayReady key response: %s", e)
            return False
        return True

    def get_key(self, track_type: TrackType) -> EncryptionKey:
        if self._key is None:
            raise KeySourceError("PlayReady key has not been fetched")
        return self._key

    def get_key_by_id(self, key_id: bytes) -> EncryptionKey:
        key = self.get_key(TrackType.SD)
        if key.key_id != key_id:
            raise KeySourceError(f"Key id {key_id.hex()} does not match PlayReady key id {key.key_id.hex()}")
        return key

    def __eq__(self, other):
        if not isinstance(other, PlayReadyKeySource):
            return NotImplemented
        return self.server_url == other.server_url and self._key == other._key

    def _client_cert(self, tmp_dir: Path):
        """Return the cert argument for requests, or None without a client certificate.

        requests cannot open password protected keys, so the key is decrypted
        into tmp_dir for the duration of the request.
        """
        if not self.client_cert_file:
            return None
        key_bytes = Path(self.client_cert_private_key_file).read_bytes()
        password = self.client_cert_private_key_password.encode("utf-8") or None
        private_key = asymmetric.load_rsa_private_key(key_bytes, password=password)
        key_path = tmp_dir / "client_key.pem"
        key_path.write_bytes(asymmetric.serialize_private_key(private_key))
        return (self.client_cert_file, str(key_path))

    @staticmethod
    def _build_request(program_identifier: str) -> bytes:
        ET.register_namespace("soap", SOAP_NS)
        envelope = ET.Element(f"{{{SOAP_NS}}}Envelope")
        body = ET.SubElement(envelope, f"{{{SOAP_NS}}}Body")
        get_key = ET.SubElement(body, f"{{{KEY_SERVICE_NS}}}GetKeyData")
        ET.SubElement(get_key, f"{{{KEY_SERVICE_NS}}}ProgramIdentifier").text = program_identifier
        return ET.tostring(envelope, encoding="utf-8", xml_declaration=True)

    @staticmethod
    def _parse_response(xml_payload: bytes) -> EncryptionKey:
        root = ET.fromstring(xml_payload)
        values = {}
        for elem in root.iter():
            name = _local_name(elem.tag)
            if name in ("KeyId", "Key") and elem.text:
                values[name] = elem.text.strip()
        if "KeyId" not in values or "Key" not in values:
            raise ValueError("response has no KeyId/Key")
        key_id = uuid.UUID(values["KeyId"]).bytes
        key = base64.b64decode(values["Key"], validate=True)
        return _build_key(key_id, key)
