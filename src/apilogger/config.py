"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation,
with an optional config.yaml providing defaults.
"""

import json
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("APILOGGER_CONFIG_FILE")

    if config_path is None:
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/apilogger
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


def _parse_string_list(v: Any) -> Any:
    """Accept a JSON array or a comma separated string for list settings."""
    if isinstance(v, str):
        stripped = v.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                return []
            return parsed if isinstance(parsed, list) else []
        return [item.strip() for item in stripped.split(",") if item.strip()]
    return v


class RedactionSettings(BaseSettings):
    """Sensitive field redaction configuration."""

    sensitive_keys: List[str] = Field(
        default=["email", "phone_number", "password", "token", "api_key"],
        description="JSON keys whose values are replaced before emission",
    )

    @field_validator("sensitive_keys", mode="before")
    def parse_sensitive_keys(cls, v: Any) -> Any:
        return _parse_string_list(v)

    class Config:
        env_prefix = "APILOGGER_REDACTION_"


class PipelineSettings(BaseSettings):
    """Logging pipeline configuration."""

    skip_routes: List[str] = Field(
        default=["GET::/health", "GET::/ready", "GET::/metrics"],
        description="METHOD::path keys excluded from event emission",
    )

    @field_validator("skip_routes", mode="before")
    def parse_skip_routes(cls, v: Any) -> Any:
        return _parse_string_list(v)

    class Config:
        env_prefix = "APILOGGER_PIPELINE_"


class EmitterSettings(BaseSettings):
    """Event emitter queue and worker pool configuration."""

    queue_max_size: int = Field(default=1000, ge=1, description="Bounded queue capacity")
    workers: int = Field(default=4, ge=1, description="Number of publishing workers")
    drain_timeout_seconds: float = Field(
        default=10.0, ge=0, description="Time allowed to drain the queue on shutdown"
    )

    class Config:
        env_prefix = "APILOGGER_EMITTER_"


class PubSubSettings(BaseSettings):
    """Google Pub/Sub sink configuration."""

    project_id: str = Field(default="demo-project", description="Pub/Sub project ID")
    topic: str = Field(default="api-log-events", description="Topic receiving log events")
    emulator_host: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("APILOGGER_PUBSUB_EMULATOR_HOST", "PUBSUB_EMULATOR_HOST"),
        description="host:port of a local Pub/Sub emulator",
    )
    api_base_url: str = Field(
        default="https://pubsub.googleapis.com", description="Pub/Sub REST endpoint"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Static OAuth bearer token; Google access tokens expire after about an hour",
    )
    access_token_file: Optional[str] = Field(
        default=None,
        description="Bearer token file, re-read on every publish; overrides access_token",
    )
    timeout_seconds: float = Field(default=10.0, description="Publish request timeout")

    @property
    def base_url(self) -> str:
        """Emulator URL when configured, otherwise the public API."""
        if self.emulator_host:
            return f"http://{self.emulator_host}"
        return self.api_base_url.rstrip("/")

    @property
    def publish_url(self) -> str:
        """Full topics.publish URL."""
        return f"{self.base_url}/v1/projects/{self.project_id}/topics/{self.topic}:publish"

    class Config:
        env_prefix = "APILOGGER_PUBSUB_"
        populate_by_name = True


class SinkSettings(BaseSettings):
    """Event sink selection."""

    backend: str = Field(default="pubsub", description="Sink backend: pubsub or log")

    class Config:
        env_prefix = "APILOGGER_SINK_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    service_name: str = Field(default="api-pubsub-logger", description="Service name on events")
    version: str = Field(default="1.0.0", description="Service version")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="console or json")

    # Component settings
    redaction: RedactionSettings = Field(default_factory=RedactionSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    emitter: EmitterSettings = Field(default_factory=EmitterSettings)
    sink: SinkSettings = Field(default_factory=SinkSettings)
    pubsub: PubSubSettings = Field(default_factory=PubSubSettings)

    class Config:
        env_prefix = "APILOGGER_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    return Settings()


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "service_name"): "APILOGGER_SERVICE_NAME",
        ("server", "version"): "APILOGGER_VERSION",
        ("server", "host"): "APILOGGER_HOST",
        ("server", "port"): "APILOGGER_PORT",
        ("server", "debug"): "APILOGGER_DEBUG",
        ("server", "log_level"): "APILOGGER_LOG_LEVEL",
        ("server", "log_format"): "APILOGGER_LOG_FORMAT",
        ("emitter", "queue_max_size"): "APILOGGER_EMITTER_QUEUE_MAX_SIZE",
        ("emitter", "workers"): "APILOGGER_EMITTER_WORKERS",
        ("emitter", "drain_timeout_seconds"): "APILOGGER_EMITTER_DRAIN_TIMEOUT_SECONDS",
        ("sink", "backend"): "APILOGGER_SINK_BACKEND",
        ("pubsub", "project_id"): "APILOGGER_PUBSUB_PROJECT_ID",
        ("pubsub", "topic"): "APILOGGER_PUBSUB_TOPIC",
        ("pubsub", "emulator_host"): "APILOGGER_PUBSUB_EMULATOR_HOST",
        ("pubsub", "api_base_url"): "APILOGGER_PUBSUB_API_BASE_URL",
        ("pubsub", "access_token"): "APILOGGER_PUBSUB_ACCESS_TOKEN",
        ("pubsub", "access_token_file"): "APILOGGER_PUBSUB_ACCESS_TOKEN_FILE",
        ("pubsub", "timeout_seconds"): "APILOGGER_PUBSUB_TIMEOUT_SECONDS",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # List settings are passed through as JSON strings
    list_mappings = {
        ("redaction", "sensitive_keys"): "APILOGGER_REDACTION_SENSITIVE_KEYS",
        ("pipeline", "skip_routes"): "APILOGGER_PIPELINE_SKIP_ROUTES",
    }

    for (section, key), env_var in list_mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value:
                os.environ[env_var] = json.dumps(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
