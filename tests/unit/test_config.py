"""Tests for loading provisioning configuration."""

import pytest

from drm_keyprov.config import ProvisioningConfig
from drm_keyprov.errors import ConfigError


class TestFromMapping:
    """Test building a config from a mapping."""

    def test_defaults_are_empty(self):
        config = ProvisioningConfig()
        assert config.enable_widevine_encryption is False
        assert config.content_id == ""

    def test_coerces_values(self):
        config = ProvisioningConfig.from_mapping({
            "enable_fixed_key_encryption": "yes",
            "include_common_pssh": 1,
            "key_id": "1234",
            "policy": None,
        })
        assert config.enable_fixed_key_encryption is True
        assert config.include_common_pssh is True
        assert config.key_id == "1234"
        assert config.policy == ""

    def test_unknown_option(self):
        with pytest.raises(ConfigError, match="enable_clear_key"):
            ProvisioningConfig.from_mapping({"enable_clear_key": True})

    @pytest.mark.parametrize("value", [1234, 12.5, True, ["ab"]])
    def test_string_option_rejects_other_types(self, value):
        with pytest.raises(ConfigError, match="quote"):
            ProvisioningConfig.from_mapping({"key_id": value})

    def test_bad_boolean(self):
        with pytest.raises(ConfigError):
            ProvisioningConfig.from_mapping({"enable_widevine_encryption": "maybe"})

    def test_config_is_immutable(self):
        config = ProvisioningConfig()
        with pytest.raises(AttributeError):
            config.key = "abcd"

    def test_merged_overrides(self):
        config = ProvisioningConfig(content_id="aa", policy="p")
        merged = config.merged(content_id="bb", policy=None)
        assert merged.content_id == "bb"
        assert merged.policy == "p"
        assert config.content_id == "aa"


class TestFromYaml:
    """Test YAML config files."""

    def test_load(self, tmp_path):
        path = tmp_path / "provisioning.yml"
        path.write_text(
            "enable_widevine_encryption: true\n"
            "key_server_url: https://license.test/cenc\n"
            "content_id: '3031323334'\n"
        )
        config = ProvisioningConfig.from_yaml(str(path))
        assert config.enable_widevine_encryption is True
        assert config.key_server_url == "https://license.test/cenc"
        assert config.content_id == "3031323334"

    @pytest.mark.parametrize("line", ["key_id: 00112233", "key: 1234", "content_id: 0x1f", "iv: 1.5"])
    def test_unquoted_hex_is_rejected(self, tmp_path, line):
        """YAML would parse these as numbers and lose the hex digits."""
        path = tmp_path / "numbers.yml"
        path.write_text(line + "\n")
        with pytest.raises(ConfigError):
            ProvisioningConfig.from_yaml(str(path))

    def test_quoted_hex_is_kept(self, tmp_path):
        path = tmp_path / "quoted.yml"
        path.write_text("key_id: '00112233'\n")
        assert ProvisioningConfig.from_yaml(str(path)).key_id == "00112233"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert ProvisioningConfig.from_yaml(str(path)) == ProvisioningConfig()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            ProvisioningConfig.from_yaml(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(ConfigError):
            ProvisioningConfig.from_yaml(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ProvisioningConfig.from_yaml(str(tmp_path / "missing.yml"))


class TestFromEnv:
    """Test environment variable config."""

    def test_prefixed_variables(self):
        environ = {
            "DRM_KEYPROV_ENABLE_FIXED_KEY_DECRYPTION": "true",
            "DRM_KEYPROV_KEY_ID": "1234",
            "DRM_KEYPROV_KEY": "abcd",
            "UNRELATED": "x",
        }
        config = ProvisioningConfig.from_env(environ)
        assert config.enable_fixed_key_decryption is True
        assert config.key_id == "1234"
        assert config.key == "abcd"

    def test_dotenv_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("DRM_KEYPROV_POLICY=from_dotenv\n")
        # load_dotenv writes into os.environ; register the variable so it is removed afterwards
        monkeypatch.setenv("DRM_KEYPROV_POLICY", "")
        monkeypatch.delenv("DRM_KEYPROV_POLICY")

        config = ProvisioningConfig.from_env(dotenv_path=str(env_file))

        assert config.policy == "from_dotenv"
