"""
Tests for Configuration Module

Tests the Settings and configuration management.
"""

import os
import pytest
from unittest.mock import patch


class TestGetEnv:
    """Tests for environment variable helpers."""

    def test_get_env_with_default(self):
        """Test getting env var with default."""
        from nexus.config import get_env

        result = get_env("NONEXISTENT_VAR", "default_value")
        assert result == "default_value"

    def test_get_env_existing(self):
        """Test getting existing env var."""
        from nexus.config import get_env

        with patch.dict(os.environ, {"TEST_VAR": "test_value"}):
            assert get_env("TEST_VAR") == "test_value"

    def test_get_env_required_missing(self):
        """Test required env var raises error when missing."""
        from nexus.config import get_env

        with pytest.raises(ValueError):
            get_env("DEFINITELY_NOT_SET", required=True)


class TestGetEnvTyped:
    """Tests for typed environment variable helpers."""

    def test_get_env_int(self):
        from nexus.config import get_env_int

        with patch.dict(os.environ, {"INT_VAR": "42"}):
            result = get_env_int("INT_VAR", 0)
            assert result == 42
            assert isinstance(result, int)

    def test_get_env_float(self):
        from nexus.config import get_env_float

        with patch.dict(os.environ, {"FLOAT_VAR": "3.14"}):
            assert get_env_float("FLOAT_VAR", 0.0) == 3.14

    def test_get_env_bool(self):
        """Truthy spellings are accepted, anything else is False."""
        from nexus.config import get_env_bool

        for true_value in ["true", "True", "1", "yes", "on"]:
            with patch.dict(os.environ, {"BOOL_VAR": true_value}):
                assert get_env_bool("BOOL_VAR", False) is True
        for false_value in ["false", "0", "no", "off"]:
            with patch.dict(os.environ, {"BOOL_VAR": false_value}):
                assert get_env_bool("BOOL_VAR", True) is False

    def test_get_env_list(self):
        from nexus.config import get_env_list

        with patch.dict(os.environ, {"LIST_VAR": "http://a, http://b ,,"}):
            assert get_env_list("LIST_VAR") == ["http://a", "http://b"]


class TestAnthropicConfig:
    """Tests for generation backend configuration."""

    def test_messages_url(self):
        """Trailing slash on the base URL is tolerated."""
        from nexus.config import AnthropicConfig

        config = AnthropicConfig(api_key="k", base_url="https://api.example.com/")
        assert config.messages_url == "https://api.example.com/v1/messages"

    def test_is_configured(self):
        from nexus.config import AnthropicConfig

        assert AnthropicConfig(api_key="k").is_configured is True
        assert AnthropicConfig(api_key="").is_configured is False

    def test_defaults(self):
        from nexus.config import AnthropicConfig

        config = AnthropicConfig()
        assert config.api_version == "2023-06-01"
        assert config.live_max_tokens == 500


class TestSpeechConfig:
    """Tests for speech backend configuration."""

    def test_requires_key_and_region(self):
        from nexus.config import SpeechConfig

        assert SpeechConfig(api_key="k", region="westus").is_configured is True
        assert SpeechConfig(api_key="k", region="").is_configured is False
        assert SpeechConfig(api_key="", region="westus").is_configured is False

    def test_defaults(self):
        from nexus.config import SpeechConfig

        config = SpeechConfig()
        assert config.sample_rate == 16000
        assert config.chunk_size_bytes == 8000
        assert config.stream_timeout_s == 60.0


class TestMemoryConfig:
    """Tests for memory configuration."""

    def test_defaults(self):
        from nexus.config import MemoryConfig

        config = MemoryConfig()
        assert config.max_pairs == 8
        assert (config.question_chars, config.answer_chars) == (150, 200)
        assert config.context_pairs == 3
        assert (config.context_question_chars, config.context_answer_chars) == (80, 100)

    def test_validate_invalid_max_pairs(self):
        from nexus.config import MemoryConfig

        config = MemoryConfig()
        config.max_pairs = 0

        with pytest.raises(ValueError, match="positive"):
            config.validate()

    def test_validate_negative_context(self):
        from nexus.config import MemoryConfig

        config = MemoryConfig()
        config.context_pairs = -1

        with pytest.raises(ValueError, match="negative"):
            config.validate()


class TestSettings:
    """Tests for main Settings class."""

    def test_settings_singleton(self):
        from nexus.config import settings

        assert settings is not None
        assert hasattr(settings, "anthropic")
        assert hasattr(settings, "speech")
        assert hasattr(settings, "memory")

    def test_environment_flags(self):
        from nexus.config import Settings

        settings = Settings()
        settings.app_env = "production"
        assert settings.is_development is False
        settings.app_env = "development"
        assert settings.is_development is True

    def test_validate_all_ignores_missing_credentials(self):
        """Missing keys are reported at call time, not at startup."""
        from nexus.config import Settings, AnthropicConfig

        settings = Settings(anthropic=AnthropicConfig(api_key=""))
        assert settings.validate_all() is True
