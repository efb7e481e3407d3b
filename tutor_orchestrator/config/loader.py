"""
Configuration management and loading.

Handles token limits, model identifiers, context window sizes, retry policy and
provider API settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml


@dataclass(frozen=True)
class TokenLimitsConfig:
    """Per-tier daily token caps and the per-request completion cap."""
    free_tier_daily: int
    pro_tier_daily: int
    per_request_max: int

    def __post_init__(self):
        """Validate token limits are positive."""
        if self.free_tier_daily <= 0:
            raise ValueError("free_tier_daily must be > 0")
        if self.pro_tier_daily <= 0:
            raise ValueError("pro_tier_daily must be > 0")
        if self.per_request_max <= 0:
            raise ValueError("per_request_max must be > 0")


@dataclass(frozen=True)
class ModelsConfig:
    """Model identifiers for the cheap, standard and premium tiers."""
    cheap: str
    standard: str
    premium: str

    def __post_init__(self):
        for name in ("cheap", "standard", "premium"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"model '{name}' must be a non-empty string")


@dataclass(frozen=True)
class ContextConfig:
    """How much history is loaded into a conversation transcript."""
    max_summaries: int = 3
    max_messages: int = 10

    def __post_init__(self):
        if self.max_summaries < 0:
            raise ValueError("max_summaries cannot be negative")
        if self.max_messages < 0:
            raise ValueError("max_messages cannot be negative")


@dataclass(frozen=True)
class RetryConfig:
    """Bounded retry policy for provider calls."""
    max_attempts: int = 3
    initial_backoff_seconds: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_backoff_seconds < 0:
            raise ValueError("initial_backoff_seconds cannot be negative")


@dataclass(frozen=True)
class ApiConfig:
    """Provider endpoint settings."""
    base_url: Optional[str] = None
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = 60.0

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


@dataclass(frozen=True)
class OrchestratorConfig:
    """Complete orchestration configuration."""
    token_limits: TokenLimitsConfig
    models: ModelsConfig
    context: ContextConfig = field(default_factory=ContextConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


_SECTION_KEYS: Dict[str, Set[str]] = {
    'token_limits': {'free_tier_daily', 'pro_tier_daily', 'per_request_max'},
    'models': {'cheap', 'standard', 'premium'},
    'context': {'max_summaries', 'max_messages'},
    'retry': {'max_attempts', 'initial_backoff_seconds'},
    'api': {'base_url', 'api_key_env', 'timeout_seconds'},
}

_REQUIRED_SECTIONS = ('token_limits', 'models')


def load_orchestrator_config(path: str) -> OrchestratorConfig:
    """Load and validate orchestration configuration from YAML file.

    Strict validation ensures no silent misconfigurations that could
    lead to unexpected token spend or calls against the wrong model.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated OrchestratorConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Orchestrator config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(_SECTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    for section in _REQUIRED_SECTIONS:
        if section not in raw_config:
            raise ValueError(f"Missing required '{section}' section")

    token_data = _section(raw_config, 'token_limits')
    for key in sorted(_SECTION_KEYS['token_limits']):
        if key not in token_data:
            raise ValueError(f"Missing required '{key}' in token_limits")
    token_limits = TokenLimitsConfig(
        free_tier_daily=_as_int(token_data['free_tier_daily'], 'token_limits.free_tier_daily'),
        pro_tier_daily=_as_int(token_data['pro_tier_daily'], 'token_limits.pro_tier_daily'),
        per_request_max=_as_int(token_data['per_request_max'], 'token_limits.per_request_max')
    )

    models_data = _section(raw_config, 'models')
    for key in ('cheap', 'standard', 'premium'):
        if key not in models_data:
            raise ValueError(f"Missing required '{key}' model")
    models = ModelsConfig(
        cheap=models_data['cheap'],
        standard=models_data['standard'],
        premium=models_data['premium']
    )

    context_data = _section(raw_config, 'context')
    context = ContextConfig(**{
        key: _as_int(value, f"context.{key}") for key, value in context_data.items()
    })

    retry_data = _section(raw_config, 'retry')
    retry_kwargs: Dict[str, Any] = {}
    if 'max_attempts' in retry_data:
        retry_kwargs['max_attempts'] = _as_int(retry_data['max_attempts'], 'retry.max_attempts')
    if 'initial_backoff_seconds' in retry_data:
        retry_kwargs['initial_backoff_seconds'] = _as_float(
            retry_data['initial_backoff_seconds'], 'retry.initial_backoff_seconds'
        )
    retry = RetryConfig(**retry_kwargs)

    api_data = _section(raw_config, 'api')
    api_kwargs: Dict[str, Any] = {}
    if api_data.get('base_url') is not None:
        api_kwargs['base_url'] = str(api_data['base_url'])
    if 'api_key_env' in api_data:
        api_kwargs['api_key_env'] = str(api_data['api_key_env'])
    if 'timeout_seconds' in api_data:
        api_kwargs['timeout_seconds'] = _as_float(api_data['timeout_seconds'], 'api.timeout_seconds')
    api = ApiConfig(**api_kwargs)

    return OrchestratorConfig(
        token_limits=token_limits,
        models=models,
        context=context,
        retry=retry,
        api=api
    )


def _section(raw_config: Dict, name: str) -> Dict:
    """Return a validated config section, or an empty dict when it is absent.

    Raises:
        ValueError: If the section is not a dictionary or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - _SECTION_KEYS[name]
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data


def _as_int(value: Any, path: str) -> int:
    # bool is an int subclass; "true" is never a valid limit
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{path}' must be an integer")
    return value


def _as_float(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{path}' must be a number")
    return float(value)
