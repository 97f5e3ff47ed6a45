"""
Builder configuration.
"""

from .builder_config import BuilderConfig, BuilderConfigLoader, ConfigurationError, config_from_env

__all__ = [
    "BuilderConfig",
    "BuilderConfigLoader",
    "ConfigurationError",
    "config_from_env",
]
