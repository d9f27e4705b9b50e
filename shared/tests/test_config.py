"""
Tests for configuration management.
"""

import pytest

from shared.config import Settings, ConfigError


def test_settings_loads_valid_env(tmp_path, monkeypatch):
    """Test that settings load correctly from an .env file."""
    env_vars = {
        "OPENAI_API_KEY": "sk-test123456789012345678901234567890",
        "REPLICATE_API_TOKEN": "r8_test123456789012345678901234567890",
        "ENVIRONMENT": "development",
        "LOG_LEVEL": "DEBUG",
        "SHOT_COUNT": "12",
        "GENERATION_CONCURRENCY": "4",
        "IMAGE_MODEL": "stability-ai/sdxl"
    }
    for key in env_vars:
        monkeypatch.delenv(key, raising=False)

    env_file = tmp_path / ".env"
    env_file.write_text("\n".join(f"{k}={v}" for k, v in env_vars.items()))

    settings = Settings(_env_file=str(env_file))

    assert settings.openai_api_key.startswith("sk-")
    assert settings.replicate_api_token.startswith("r8_")
    assert settings.log_level == "DEBUG"
    assert settings.shot_count == 12
    assert settings.generation_concurrency == 4
    assert settings.image_model == "stability-ai/sdxl"


def test_settings_defaults(monkeypatch):
    """Test campaign defaults without any environment."""
    for key in ("SHOT_COUNT", "GENERATION_CONCURRENCY", "MAX_REFERENCE_IMAGES", "MAX_REFERENCE_IMAGE_MB"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(_env_file=None)

    assert settings.shot_count == 30
    assert settings.generation_concurrency == 3
    assert settings.max_reference_images == 10
    assert settings.max_reference_image_mb == 5
    assert settings.log_to_file is False


def test_api_keys_optional_at_load(monkeypatch):
    """Test that missing keys only fail when a remote call asks for them."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)

    settings = Settings(_env_file=None)

    assert settings.openai_api_key is None
    with pytest.raises(ConfigError, match="OPENAI_API_KEY is not set"):
        settings.require_openai_api_key()
    with pytest.raises(ConfigError, match="REPLICATE_API_TOKEN is not set"):
        settings.require_replicate_api_token()


def test_settings_validates_openai_api_key(monkeypatch):
    """Test that invalid OpenAI API key raises ConfigError."""
    monkeypatch.setenv("OPENAI_API_KEY", "invalid-key")

    with pytest.raises(ConfigError, match="OPENAI_API_KEY must start with 'sk-'"):
        Settings(_env_file=None)


def test_settings_validates_short_openai_api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-short")

    with pytest.raises(ConfigError, match="appears to be invalid"):
        Settings(_env_file=None)


def test_settings_validates_replicate_api_token(monkeypatch):
    """Test that invalid Replicate API token raises ConfigError."""
    monkeypatch.setenv("REPLICATE_API_TOKEN", "invalid-token")

    with pytest.raises(ConfigError, match="REPLICATE_API_TOKEN must start with 'r8_'"):
        Settings(_env_file=None)


@pytest.mark.parametrize("key", ["SHOT_COUNT", "GENERATION_CONCURRENCY", "MAX_REFERENCE_IMAGES"])
def test_settings_rejects_non_positive_limits(monkeypatch, key):
    """Test that counts and limits must be positive."""
    monkeypatch.setenv(key, "0")

    with pytest.raises(ConfigError, match="positive"):
        Settings(_env_file=None)
