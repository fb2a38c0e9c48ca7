"""Client settings with Pydantic Settings validation.

Secrets (the API key) are loaded from the environment or a .env file.
Non-sensitive configuration may also come from config/main.yaml, validated
against config/schemas/main.schema.json when that schema exists.
Environment values always take precedence over YAML values.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from runpod_serverless.adapters.http_transport import mask_api_key
from runpod_serverless.config.logging_config import get_logger
from runpod_serverless.domain.exceptions import ConfigurationError

DEFAULT_API_URL: Final[str] = "https://api.runpod.io/v2"
DEFAULT_REST_URL: Final[str] = "https://rest.runpod.io/v1"
DEFAULT_TIMEOUT_SECS: Final[float] = 30.0
MAX_TIMEOUT_SECS: Final[float] = 300.0
DEFAULT_CONFIG_PATH: Final[Path] = Path("config/main.yaml")
DEFAULT_SCHEMA_DIR: Final[Path] = Path("config/schemas")

logger = cast(Any, get_logger(__name__))


def load_schema(schema_name: str, schema_dir: Path = DEFAULT_SCHEMA_DIR) -> dict[str, Any]:
    """Load a JSON Schema, returning an empty dict if it is absent or unreadable."""
    schema_path = schema_dir / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(
            "config_schema_load_failed",
            schema=schema_name,
            error=str(e),
        )
        return {}


def load_yaml_config(
    config_path: Path = DEFAULT_CONFIG_PATH, schema_dir: Path = DEFAULT_SCHEMA_DIR
) -> dict[str, Any]:
    """Load non-secret defaults from a YAML file.

    Args:
        config_path: YAML file to read (missing file yields {})
        schema_dir: Directory holding ``main.schema.json``

    Returns:
        Parsed configuration mapping

    Raises:
        ConfigurationError: If the file is unreadable or fails schema validation
    """
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError(f"Failed to load {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file must be a mapping: {config_path}")

    schema = load_schema("main", schema_dir)
    if schema:
        try:
            validate(instance=config, schema=schema)
        except JSONSchemaValidationError as e:
            raise ConfigurationError(
                f"Config validation failed for {config_path}: {e.message}"
            ) from e

    logger.debug("config_file_loaded", path=str(config_path))
    return config


class Settings(BaseSettings):
    """Client settings.

    The API key is required; everything else has a default.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # === SECRETS ===

    runpod_api_key: SecretStr = Field(..., description="RunPod API key")

    # === NON-SENSITIVE CONFIG ===

    runpod_api_url: str = Field(
        default=DEFAULT_API_URL, description="Serverless endpoint API root"
    )
    runpod_rest_url: str = Field(
        default=DEFAULT_REST_URL,
        validation_alias=AliasChoices("runpod_rest_url", "runpod_base_url"),
        description="Management REST API root",
    )
    runpod_timeout_secs: float = Field(
        default=DEFAULT_TIMEOUT_SECS, description="Per-request timeout in seconds"
    )
    poll_interval_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Delay between status polls while awaiting a job",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON logs")

    @field_validator("runpod_api_key", mode="before")
    @classmethod
    def _ensure_secret(
        cls, value: SecretStr | str | None, info: ValidationInfo
    ) -> SecretStr:
        if value is None:
            raise ValueError(f"{info.field_name} must be provided")

        if isinstance(value, SecretStr):
            secret_value = value.get_secret_value()
        else:
            secret_value = str(value)

        if not secret_value.strip():
            raise ValueError(f"{info.field_name} must not be empty")

        return value if isinstance(value, SecretStr) else SecretStr(secret_value)

    @field_validator("runpod_timeout_secs")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeout must be greater than 0")
        if value > MAX_TIMEOUT_SECS:
            raise ValueError("Timeout cannot exceed 300 seconds (5 minutes)")
        return value

    @field_validator("runpod_api_url", "runpod_rest_url")
    @classmethod
    def _validate_url(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value.rstrip("/")

    def masked_api_key(self) -> str:
        """Return the API key with everything past the first 4 characters hidden."""
        return mask_api_key(self.runpod_api_key.get_secret_value())

    def apply_yaml_defaults(self, config: dict[str, Any]) -> "Settings":
        """Return a copy with YAML-sourced defaults applied.

        Fields explicitly provided (env, .env, keyword arguments) are kept.
        """
        fields_from_env = set(self.model_fields_set)
        updates: dict[str, Any] = {}

        def _assign(field_name: str, value: Any) -> None:
            if value is None or field_name in fields_from_env:
                return
            updates[field_name] = value

        api_config = config.get("api") or {}
        _assign("runpod_api_url", api_config.get("url"))
        _assign("runpod_rest_url", api_config.get("rest_url"))
        _assign("runpod_timeout_secs", api_config.get("timeout_secs"))

        polling_config = config.get("polling") or {}
        _assign("poll_interval_seconds", polling_config.get("interval_seconds"))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("json_logs", logging_config.get("json"))

        if not updates:
            return self

        data = self.model_dump()
        data.update(updates)
        return type(self).model_validate(data)


def load_settings(
    config_path: Path = DEFAULT_CONFIG_PATH, **overrides: Any
) -> Settings:
    """Build settings from env, .env, YAML defaults and keyword overrides.

    Raises:
        ConfigurationError: If any value is missing or invalid
    """
    try:
        settings = Settings(**overrides)
        settings = settings.apply_yaml_defaults(load_yaml_config(config_path))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e

    logger.info(
        "settings_loaded",
        api_url=settings.runpod_api_url,
        timeout_secs=settings.runpod_timeout_secs,
        api_key=settings.masked_api_key(),
    )
    return settings


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings instance."""
    global _settings
    _settings = None
