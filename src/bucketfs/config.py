"""Configuration loading with environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bucketfs.exceptions import ConfigError
from bucketfs.paths import DIRECTORY_DELIMITER
from bucketfs.utils.validation import normalize_prefix, validate_bucket_name

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class StoreOptions(BaseModel):
    """Bucket and key prefix a file store operates on.

    The prefix, when set, always ends with the path delimiter so that
    concatenating it with a logical path never merges two segments.
    """

    model_config = ConfigDict(frozen=True)

    bucket_name: str
    prefix: str | None = None

    @field_validator("bucket_name")
    @classmethod
    def _check_bucket_name(cls, value: str) -> str:
        return validate_bucket_name(value)

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, value: str | None) -> str | None:
        return normalize_prefix(value, DIRECTORY_DELIMITER)


class S3ClientConfig(BaseModel):
    """Connection settings for the S3 backend."""

    endpoint_url: str | None = None  # For S3-compatible services (R2, MinIO)
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    addressing_style: str = "auto"  # auto | path | virtual
    max_pool_connections: int = 10


class StorageConfig(BaseModel):
    """Object storage configuration."""

    backend: str = "s3"  # s3 | memory
    bucket_name: str | None = None
    prefix: str | None = None
    s3: S3ClientConfig = Field(default_factory=S3ClientConfig)

    def store_options(self) -> StoreOptions:
        """Build validated store options.

        Raises:
            ConfigError: If no bucket is configured or it is invalid
        """
        if not self.bucket_name:
            raise ConfigError("storage.bucket_name is required")
        try:
            return StoreOptions(bucket_name=self.bucket_name, prefix=self.prefix)
        except ValueError as e:
            raise ConfigError(f"Invalid storage configuration: {e}") from e


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"  # json | text


class Config(BaseModel):
    """Main configuration for bucketfs."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                import json
                data = json.load(f)

        # Substitute environment variables
        data = substitute_env_vars(data or {})
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
