"""Tests for the user config file and settings resolution."""

from pathlib import Path

import yaml

import config


class TestUserToken:
    def test_set_and_get_token(self, isolated_config):
        config.set_user_token("  abc  ")
        assert config.get_user_token() == "abc"
        assert yaml.safe_load(isolated_config.read_text())["token"] == "abc"

    def test_clearing_last_key_removes_file(self, isolated_config):
        config.set_user_token("abc")
        config.set_user_token("")
        assert not isolated_config.exists()
        assert config.get_user_token() == ""

    def test_clearing_token_keeps_other_keys(self, isolated_config):
        isolated_config.write_text(yaml.safe_dump({"token": "abc", "timeout": 5}))
        config.set_user_token("")
        assert yaml.safe_load(isolated_config.read_text()) == {"timeout": 5}

    def test_malformed_config_is_treated_as_empty(self, isolated_config):
        isolated_config.write_text("token: [unclosed\n")
        assert config.get_user_token() == ""

    def test_non_mapping_config_is_treated_as_empty(self, isolated_config):
        isolated_config.write_text("- just\n- a list\n")
        assert config.get_user_token() == ""


class TestLoadSettings:
    def test_defaults(self):
        settings = config.load_settings()
        assert settings.open_command == "open"
        assert settings.osascript == Path("/usr/bin/osascript")
        assert settings.evaluate_script == config.DEFAULT_EVALUATE_SCRIPT
        assert settings.timeout == config.DEFAULT_TIMEOUT

    def test_file_values(self, isolated_config, tmp_path):
        script = tmp_path / "eval.jxa"
        isolated_config.write_text(
            yaml.safe_dump({"open_command": "xdg-open", "evaluate_script": str(script), "timeout": 5})
        )
        settings = config.load_settings()
        assert settings.open_command == "xdg-open"
        assert settings.evaluate_script == script
        assert settings.timeout == 5.0

    def test_env_overrides_file(self, isolated_config, monkeypatch, tmp_path):
        isolated_config.write_text(yaml.safe_dump({"osascript": "/opt/osascript"}))
        monkeypatch.setenv("THINGS_MCP_OSASCRIPT", str(tmp_path / "osa"))
        assert config.load_settings().osascript == tmp_path / "osa"

    def test_invalid_timeout_falls_back(self, isolated_config):
        isolated_config.write_text(yaml.safe_dump({"timeout": "soon"}))
        assert config.load_settings().timeout == config.DEFAULT_TIMEOUT
