"""Unit tests for application settings configuration."""

import json
from pathlib import Path

import chat_backend.config as config_module
from chat_backend.config import Settings


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized


def test_completion_parameters_default_to_unset():
    settings = Settings(_env_file=None)

    assert settings.chat_temperature is None
    assert settings.chat_top_p is None
    assert settings.chat_max_tokens is None
    assert settings.chat_thinking_enabled is None
    assert settings.chat_history_limit == 20


def test_mcp_credential_falls_back_to_openrouter_key():
    assert Settings(_env_file=None, openrouter_api_key="or-key").mcp_credential == "or-key"
    assert Settings(_env_file=None, openrouter_api_key="or-key", mcp_api_key=" mcp ").mcp_credential == "mcp"


def test_model_overrides_file_is_merged(tmp_path, monkeypatch):
    overrides = tmp_path / "settings.json"
    overrides.write_text(
        json.dumps({"chat_primary_model": "override/model", "chat_temperature": 2}), encoding="utf-8"
    )
    monkeypatch.setattr(config_module, "_SETTINGS_FILE", overrides)

    settings = Settings(_env_file=None)

    assert settings.chat_primary_model == "override/model"
    assert settings.chat_temperature is None


def test_corrupt_overrides_file_is_ignored(tmp_path, monkeypatch):
    overrides = tmp_path / "settings.json"
    overrides.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(config_module, "_SETTINGS_FILE", overrides)

    assert Settings(_env_file=None, chat_primary_model="env/model").chat_primary_model == "env/model"
