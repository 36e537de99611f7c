from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .errors import ConfigError


ENV_PREFIX = "DRM_KEYPROV_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ProvisioningConfig:
    """All options that drive key source selection.

    Field names follow the packager command line flags. Strings default to
    empty, which means "not configured".
    """

    # Backend enable flags
    enable_widevine_encryption: bool = False
    enable_widevine_decryption: bool = False
    enable_fixed_key_encryption: bool = False
    enable_fixed_key_decryption: bool = False
    enable_playready_encryption: bool = False

    # Widevine license server
    key_server_url: str = ""
    include_common_pssh: bool = False
    content_id: str = ""
    policy: str = ""

    # Request signing
    signer: str = ""
    aes_signing_key: str = ""
    aes_signing_iv: str = ""
    rsa_signing_key_path: str = ""

    # Fixed key
    key_id: str = ""
    key: str = ""
    pssh: str = ""
    iv: str = ""

    # PlayReady
    playready_key_id: str = ""
    playready_key: str = ""
    playready_server_url: str = ""
    program_identifier: str = ""
    ca_file: str = ""
    client_cert_file: str = ""
    client_cert_private_key_file: str = ""
    client_cert_private_key_password: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProvisioningConfig":
        """Build a config from a plain mapping, checking values against field types.

        Raises:
            ConfigError: On unknown keys or values that cannot be coerced.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown provisioning options: {', '.join(unknown)}")

        values = {}
        for name, value in data.items():
            if value is None:
                continue
            if known[name].type in ("bool", bool):
                values[name] = _to_bool(name, value)
            elif isinstance(value, str):
                values[name] = value
            else:
                raise ConfigError(
                    f"Option '{name}' expects a string, got {type(value).__name__} '{value}'; "
                    f"quote the value in the config file"
                )
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str) -> "ProvisioningConfig":
        """Load a config from a YAML file holding a flat mapping of options."""
        try:
            txt = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config file '{path}': {e}") from e
        try:
            data = yaml.safe_load(txt)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in '{path}': {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None,
                 dotenv_path: str | None = None) -> "ProvisioningConfig":
        """Load a config from DRM_KEYPROV_* environment variables.

        A .env file is read first when present; variables already in the
        environment take precedence over it.
        """
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ
        data = {}
        for f in fields(cls):
            env_name = ENV_PREFIX + f.name.upper()
            if env_name in environ:
                data[f.name] = environ[env_name]
        return cls.from_mapping(data)

    def merged(self, **overrides: Any) -> "ProvisioningConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        coerced = ProvisioningConfig.from_mapping(changes)
        return dataclasses.replace(self, **{name: getattr(coerced, name) for name in changes})


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Option '{name}' expects a boolean, got '{value}'")
