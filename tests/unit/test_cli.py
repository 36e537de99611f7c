"""Tests for the drm-keyprov command line."""

from typer.testing import CliRunner

from drm_keyprov.cli import app


runner = CliRunner()

KEY_ID = "00112233445566778899aabbccddeeff"
KEY = "ffeeddccbbaa99887766554433221100"


def write_config(tmp_path, text):
    path = tmp_path / "provisioning.yml"
    path.write_text(text)
    return str(path)


class TestEncryptionCommand:

    def test_fixed_key(self, tmp_path):
        config = write_config(tmp_path, f"enable_fixed_key_encryption: true\nkey_id: '{KEY_ID}'\nkey: '{KEY}'\n")
        result = runner.invoke(app, ["encryption", "--config", config])
        assert result.exit_code == 0
        assert f"Fixed key source: key_id={KEY_ID}" in result.output

    def test_not_requested(self, tmp_path):
        config = write_config(tmp_path, "key_id: '1234'\n")
        result = runner.invoke(app, ["encryption", "--config", config])
        assert result.exit_code == 0
        assert "No encryption requested." in result.output

    def test_provisioning_error_exits_non_zero(self, tmp_path):
        config = write_config(tmp_path, "enable_playready_encryption: true\nplayready_server_url: https://pr.test\n")
        result = runner.invoke(app, ["encryption", "--config", config])
        assert result.exit_code == 1

    def test_content_id_override_is_validated(self, tmp_path):
        config = write_config(tmp_path, "enable_widevine_encryption: true\ncontent_id: 'abcd'\n")
        result = runner.invoke(app, ["encryption", "--config", config, "--content-id", "not-hex!"])
        assert result.exit_code == 1

    def test_bad_config_file(self, tmp_path):
        config = write_config(tmp_path, "enable_everything: true\n")
        result = runner.invoke(app, ["encryption", "--config", config])
        assert result.exit_code == 1

    def test_unquoted_hex_key_is_rejected(self, tmp_path, caplog):
        """YAML reads 00112233 as an integer; the command refuses it."""
        config = write_config(tmp_path, "enable_fixed_key_encryption: true\nkey_id: 00112233\nkey: abcd\n")
        result = runner.invoke(app, ["encryption", "--config", config])
        assert result.exit_code == 1
        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert errors and errors[0].name == "drm_keyprov.cli"
        assert "key_id" in errors[0].getMessage()


class TestDecryptionCommand:

    def test_fixed_key(self, tmp_path):
        config = write_config(tmp_path, "enable_fixed_key_decryption: true\nkey_id: '1234'\nkey: 'abcd'\n")
        result = runner.invoke(app, ["decryption", "--config", config])
        assert result.exit_code == 0
        assert "key_id=1234" in result.output

    def test_widevine(self, tmp_path):
        config = write_config(tmp_path, "enable_widevine_decryption: true\n")
        result = runner.invoke(app, ["decryption", "--config", config, "--key-server-url", "https://license.test"])
        assert result.exit_code == 0
        assert "server=https://license.test signer=none" in result.output
