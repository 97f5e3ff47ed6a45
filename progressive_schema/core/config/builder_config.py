"""
Schema builder configuration management.

Defines the tunables of the inference engine and loads them from dicts,
environment variables or YAML configuration files.
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


class ConfigurationError(ValueError):
    """Raised when a configuration file cannot be turned into a BuilderConfig."""
    pass


class BuilderConfig(BaseModel):
    """
    Tunables for ProgressiveSchemaBuilder.

    Attributes:
        max_samples: Capacity of the raw record sample buffer
        max_unique_values: Cap on tracked distinct values per field
        enum_threshold: Max unique values (count mode) or max unique/occurrence
            percentage (percentage mode) for an enum candidate
        enum_mode: "count" or "percentage"
        max_depth: Max traversal depth for nested objects/arrays
        use_inference_engine: Build documents with genson instead of the manual path
        language: ISO-639-3 code selecting field-role name patterns (English fallback)
    """

    max_samples: int = Field(100, gt=0)
    max_unique_values: int = Field(100, gt=0)
    enum_threshold: float = Field(50, gt=0)
    enum_mode: Literal["count", "percentage"] = "count"
    max_depth: int = Field(3, gt=0)
    use_inference_engine: bool = False
    language: str = Field("eng", min_length=3, max_length=3)

    @model_validator(mode="after")
    def check_threshold_for_mode(self) -> "BuilderConfig":
        """A percentage threshold above 100 can never be exceeded."""
        if self.enum_mode == "percentage" and self.enum_threshold > 100:
            raise ValueError(
                f"enum_threshold must be <= 100 in percentage mode, got {self.enum_threshold}"
            )
        return self

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "max_samples": 100,
                "max_unique_values": 100,
                "enum_threshold": 50,
                "enum_mode": "count",
                "max_depth": 3,
                "use_inference_engine": False,
                "language": "eng"
            }
        }


# Environment variable -> config field
ENV_VARS = {
    "SCHEMA_MAX_SAMPLES": "max_samples",
    "SCHEMA_MAX_UNIQUE_VALUES": "max_unique_values",
    "SCHEMA_ENUM_THRESHOLD": "enum_threshold",
    "SCHEMA_ENUM_MODE": "enum_mode",
    "SCHEMA_MAX_DEPTH": "max_depth",
    "SCHEMA_USE_INFERENCE_ENGINE": "use_inference_engine",
    "SCHEMA_LANGUAGE": "language",
}


def config_from_env(env_file: str | Path | None = None, **overrides: Any) -> BuilderConfig:
    """
    Build a config from SCHEMA_* environment variables.

    Args:
        env_file: Optional .env file loaded before reading the environment
        **overrides: Explicit values that win over the environment

    Returns:
        Validated BuilderConfig
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)

    values: dict[str, Any] = {}
    for env_name, field_name in ENV_VARS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw

    values.update(overrides)
    return BuilderConfig(**values)


class BuilderConfigLoader:
    """
    Loads builder configuration from a YAML file.

    Expected YAML format:
    ```yaml
    schema_builder:
      max_samples: 200
      max_unique_values: 100
      enum_threshold: 10
      enum_mode: percentage
      max_depth: 4
    ```
    """

    SECTION = "schema_builder"

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Schema builder configuration file not found: {config_path}")

    def load(self) -> BuilderConfig:
        """
        Parse the YAML file into a BuilderConfig.

        Returns:
            Validated BuilderConfig

        Raises:
            ConfigurationError: If the file lacks the schema_builder section
            pydantic.ValidationError: If a value is out of range
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict) or self.SECTION not in config:
            raise ConfigurationError(
                f"Configuration file must contain '{self.SECTION}' section"
            )

        section = config[self.SECTION] or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"'{self.SECTION}' section must be a mapping")

        unknown = set(section) - set(BuilderConfig.model_fields)
        if unknown:
            raise ConfigurationError(
                f"Unknown schema builder settings: {', '.join(sorted(unknown))}"
            )

        return BuilderConfig(**section)
