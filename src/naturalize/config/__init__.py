"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_int, require_any_env_var
from .errors import ConfigurationError, InvalidSettingError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy, connect_only_retry_policy
from .logging import configure_logging
from .openrouter import OpenRouterConfig, get_openrouter_config
from .pipeline import PipelineConfig, get_pipeline_config
from .slack import SlackConfig, get_slack_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidSettingError",
    "MissingConfigurationError",
    "OpenRouterConfig",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SlackConfig",
    "StorageConfig",
    "configure_logging",
    "connect_only_retry_policy",
    "env_flag",
    "env_int",
    "get_database_config",
    "get_openrouter_config",
    "get_pipeline_config",
    "get_slack_config",
    "get_storage_config",
    "require_any_env_var",
]
