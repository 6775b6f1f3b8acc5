"""Application settings with Pydantic Settings validation.

Endpoint overrides and addresses are loaded from the environment or a .env file.
Non-sensitive polling defaults are loaded from config/*.yaml files, which are
merged and validated against JSON schemas in config/schemas/.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from completion_watcher.config.logging_config import get_logger
from completion_watcher.domain.models import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MAX_LINES_PER_CONTAINER,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_TRANSIENT_BACKOFF_FACTOR,
    DEFAULT_WINDOW_SIZE,
    ConfirmationLevel,
)

RPC_URL_DEFAULT: Final[str] = "http://127.0.0.1:8899"
RPC_TIMEOUT_SECONDS_DEFAULT: Final[float] = 10.0

CONFIG_DIR: Final[Path] = Path("config")
SCHEMA_DIR: Final[Path] = CONFIG_DIR / "schemas"

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str) -> dict[str, Any]:
    """Load JSON Schema from config/schemas/.

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return cast(dict[str, Any], json.load(f))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("config_schema_load_failed", schema=schema_name, error=str(e))
        return {}


def validate_config_section(
    config: dict[str, Any], schema_name: str, file_path: str = ""
) -> None:
    """Validate config section against JSON Schema.

    Raises:
        ValueError: If validation fails
    """
    schema = load_schema(schema_name)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ValueError(error_msg) from e


def load_all_configs() -> dict[str, Any]:
    """Load and merge all YAML configs from the config/ directory.

    config/main.yaml is loaded first; other *.yaml files follow in
    alphabetical order and override earlier values. Each file is validated
    against the schema named after its stem, when one exists.

    Returns:
        Merged configuration dictionary
    """
    merged_config: dict[str, Any] = {}
    if not CONFIG_DIR.is_dir():
        return merged_config

    main_path = CONFIG_DIR / "main.yaml"
    yaml_files = [main_path] if main_path.exists() else []
    yaml_files += sorted(f for f in CONFIG_DIR.glob("*.yaml") if f.name != "main.yaml")

    for yaml_file in yaml_files:
        try:
            with open(yaml_file, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.warning("config_file_load_failed", path=str(yaml_file), error=str(e))
            continue

        try:
            validate_config_section(file_config, yaml_file.stem, str(yaml_file))
        except ValueError as e:
            logger.error(
                "config_validation_failed",
                path=str(yaml_file),
                schema=yaml_file.stem,
                error=str(e),
            )
            raise

        merged_config = deep_merge(merged_config, file_config)
        logger.debug("config_file_loaded", path=str(yaml_file), schema=yaml_file.stem)

    logger.debug("config_load_complete", file_count=len(yaml_files))
    return merged_config


class Settings(BaseSettings):
    """Application settings.

    Environment values win over YAML values, which win over field defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""

        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return

            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        rpc_config = config.get("rpc") or {}
        _assign("rpc_url", rpc_config.get("url"))
        _assign("rpc_timeout_seconds", rpc_config.get("timeout_seconds"))

        watcher_config = config.get("watcher") or {}
        _assign("listing_address", watcher_config.get("listing_address"))
        _assign("emitter_address", watcher_config.get("emitter_address"))
        _assign("window_size", watcher_config.get("window_size"))
        _assign("poll_interval_seconds", watcher_config.get("poll_interval_seconds"))
        _assign("max_attempts", watcher_config.get("max_attempts"))
        _assign("timeout_seconds", watcher_config.get("timeout_seconds"))
        _assign(
            "transient_backoff_factor", watcher_config.get("transient_backoff_factor")
        )
        _assign("max_backoff_seconds", watcher_config.get("max_backoff_seconds"))
        _assign(
            "max_lines_per_container", watcher_config.get("max_lines_per_container")
        )
        confirmation = watcher_config.get("confirmation_level")
        if confirmation is not None:
            _assign("confirmation_level", ConfirmationLevel(confirmation))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("json_logs", logging_config.get("json"))

        metrics_config = config.get("metrics") or {}
        _assign("metrics_enabled", metrics_config.get("enabled"))

    # RPC endpoint
    rpc_url: str = Field(default=RPC_URL_DEFAULT, description="RPC node HTTP endpoint")
    rpc_timeout_seconds: float = Field(
        default=RPC_TIMEOUT_SECONDS_DEFAULT, gt=0.0, description="Per-request timeout"
    )

    # Addresses
    listing_address: str | None = Field(
        default=None,
        description="Address whose recent transactions are scanned (defaults to emitter)",
    )
    emitter_address: str | None = Field(
        default=None, description="Program expected to own the completion event"
    )

    # Polling
    window_size: int = Field(default=DEFAULT_WINDOW_SIZE, ge=1)
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=0.0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    confirmation_level: ConfirmationLevel = Field(default=ConfirmationLevel.CONFIRMED)
    timeout_seconds: float | None = Field(default=None, gt=0.0)
    transient_backoff_factor: float = Field(
        default=DEFAULT_TRANSIENT_BACKOFF_FACTOR, ge=1.0
    )
    max_backoff_seconds: float = Field(default=DEFAULT_MAX_BACKOFF_SECONDS, ge=0.0)
    max_lines_per_container: int = Field(default=DEFAULT_MAX_LINES_PER_CONTAINER, ge=1)

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    metrics_enabled: bool = Field(
        default=False, description="Start the Prometheus exporter in scripts"
    )

    @field_validator("listing_address", "emitter_address", mode="before")
    @classmethod
    def _blank_address_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def resolve_listing_address(self) -> str | None:
        return self.listing_address or self.emitter_address


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
