"""
Unit tests for configuration loading and validation.

Tests strict validation and error handling for orchestrator configs.
"""

import os
import tempfile

import pytest
import yaml

from tutor_orchestrator.config.loader import (
    load_orchestrator_config,
    ApiConfig,
    ContextConfig,
    ModelsConfig,
    RetryConfig,
    TokenLimitsConfig
)


def _valid_config() -> dict:
    return {
        "token_limits": {
            "free_tier_daily": 3500,
            "pro_tier_daily": 35000,
            "per_request_max": 1000
        },
        "models": {
            "cheap": "gpt-4o-mini",
            "standard": "gpt-4o",
            "premium": "gpt-4.1"
        }
    }


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config = load_orchestrator_config(self._write_config(_valid_config()))

        assert config.token_limits.free_tier_daily == 3500
        assert config.token_limits.pro_tier_daily == 35000
        assert config.token_limits.per_request_max == 1000
        assert config.models.cheap == "gpt-4o-mini"
        assert config.models.standard == "gpt-4o"
        assert config.models.premium == "gpt-4.1"

    def test_optional_sections_default(self):
        """Test that context, retry and api fall back to defaults."""
        config = load_orchestrator_config(self._write_config(_valid_config()))

        assert config.context == ContextConfig(max_summaries=3, max_messages=10)
        assert config.retry == RetryConfig(max_attempts=3, initial_backoff_seconds=1.0)
        assert config.api.base_url is None
        assert config.api.api_key_env == "OPENAI_API_KEY"
        assert config.api.timeout_seconds == 60.0

    def test_optional_sections_override(self):
        """Test that optional sections are read when present."""
        data = _valid_config()
        data["context"] = {"max_summaries": 5, "max_messages": 20}
        data["retry"] = {"max_attempts": 5, "initial_backoff_seconds": 0}
        data["api"] = {
            "base_url": "http://localhost:8080/v1",
            "api_key_env": "TUTOR_KEY",
            "timeout_seconds": 30
        }

        config = load_orchestrator_config(self._write_config(data))

        assert config.context.max_summaries == 5
        assert config.context.max_messages == 20
        assert config.retry.max_attempts == 5
        assert config.retry.initial_backoff_seconds == 0.0
        assert config.api.base_url == "http://localhost:8080/v1"
        assert config.api.api_key_env == "TUTOR_KEY"
        assert config.api.timeout_seconds == 30.0

    def test_missing_file_raises_error(self):
        """Test that missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Orchestrator config file not found"):
            load_orchestrator_config(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml_raises_error(self):
        """Test that invalid YAML raises YAMLError."""
        config_path = os.path.join(self.temp_dir, "invalid.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("token_limits: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_orchestrator_config(config_path)

    def test_empty_config_raises_error(self):
        """Test that empty config raises ValueError."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("")

        with pytest.raises(ValueError, match="Configuration file is empty"):
            load_orchestrator_config(config_path)

    def test_non_dict_root_raises_error(self):
        """Test that a list root is rejected."""
        with pytest.raises(ValueError, match="must be a dictionary"):
            load_orchestrator_config(self._write_config(["token_limits"]))

    def test_unknown_top_level_keys_rejected(self):
        """Test that unknown top-level keys are rejected."""
        data = _valid_config()
        data["pricing"] = {"gpt-4o": 1.0}

        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_orchestrator_config(self._write_config(data))

    def test_missing_token_limits_section(self):
        """Test that token_limits is required."""
        data = _valid_config()
        del data["token_limits"]

        with pytest.raises(ValueError, match="Missing required 'token_limits' section"):
            load_orchestrator_config(self._write_config(data))

    def test_missing_models_section(self):
        """Test that models is required."""
        data = _valid_config()
        del data["models"]

        with pytest.raises(ValueError, match="Missing required 'models' section"):
            load_orchestrator_config(self._write_config(data))

    def test_missing_token_limit_field(self):
        """Test that every token limit is required."""
        data = _valid_config()
        del data["token_limits"]["per_request_max"]

        with pytest.raises(ValueError, match="Missing required 'per_request_max' in token_limits"):
            load_orchestrator_config(self._write_config(data))

    def test_missing_model_field(self):
        """Test that all three models are required."""
        data = _valid_config()
        del data["models"]["premium"]

        with pytest.raises(ValueError, match="Missing required 'premium' model"):
            load_orchestrator_config(self._write_config(data))

    def test_unknown_section_keys_rejected(self):
        """Test that unknown keys inside a section are rejected."""
        data = _valid_config()
        data["context"] = {"max_summaries": 3, "max_tokens": 10}

        with pytest.raises(ValueError, match="Unknown keys in context"):
            load_orchestrator_config(self._write_config(data))

    def test_non_integer_limit_rejected(self):
        """Test that token limits must be integers."""
        data = _valid_config()
        data["token_limits"]["free_tier_daily"] = "lots"

        with pytest.raises(ValueError, match="must be an integer"):
            load_orchestrator_config(self._write_config(data))

    def test_boolean_limit_rejected(self):
        """Test that booleans are not accepted as integers."""
        data = _valid_config()
        data["token_limits"]["pro_tier_daily"] = True

        with pytest.raises(ValueError, match="must be an integer"):
            load_orchestrator_config(self._write_config(data))

    def test_section_must_be_dict(self):
        """Test that sections must be mappings."""
        data = _valid_config()
        data["retry"] = [3]

        with pytest.raises(ValueError, match="'retry' must be a dictionary"):
            load_orchestrator_config(self._write_config(data))


class TestConfigDataclasses:
    """Test range validation on config dataclasses."""

    def test_zero_daily_limit_rejected(self):
        with pytest.raises(ValueError, match="free_tier_daily must be > 0"):
            TokenLimitsConfig(free_tier_daily=0, pro_tier_daily=10, per_request_max=10)

    def test_zero_per_request_max_rejected(self):
        with pytest.raises(ValueError, match="per_request_max must be > 0"):
            TokenLimitsConfig(free_tier_daily=10, pro_tier_daily=10, per_request_max=0)

    def test_blank_model_rejected(self):
        with pytest.raises(ValueError, match="model 'standard' must be a non-empty string"):
            ModelsConfig(cheap="a", standard="  ", premium="c")

    def test_negative_context_rejected(self):
        with pytest.raises(ValueError, match="max_messages cannot be negative"):
            ContextConfig(max_summaries=3, max_messages=-1)

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError, match="max_attempts must be >= 1"):
            RetryConfig(max_attempts=0)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout_seconds must be > 0"):
            ApiConfig(timeout_seconds=0)

    def test_configs_are_frozen(self):
        """Test that config objects are immutable."""
        config = RetryConfig()
        with pytest.raises(Exception):
            config.max_attempts = 10
