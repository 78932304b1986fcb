"""Telemetry configuration helpers."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

_TRUTHY = {"1", "true", "yes", "on"}

# field -> (GRIDBATTLE_* switch, standard OTEL_* switch)
_SWITCHES = {
    "enable_tracing": ("GRIDBATTLE_ENABLE_TRACING", "OTEL_TRACES_ENABLED"),
    "enable_metrics": ("GRIDBATTLE_ENABLE_METRICS", "OTEL_METRICS_ENABLED"),
    "enable_logging": ("GRIDBATTLE_ENABLE_LOGGING", "OTEL_LOGS_ENABLED"),
}

# endpoint field -> (signal-specific env var, path under OTEL_EXPORTER_OTLP_ENDPOINT, switch)
_ENDPOINTS = {
    "otlp_traces_endpoint": ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "v1/traces", "enable_tracing"),
    "otlp_metrics_endpoint": (
        "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
        "v1/metrics",
        "enable_metrics",
    ),
    "otlp_logs_endpoint": ("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "v1/logs", "enable_logging"),
}


def _bool_from_env(*names: str) -> bool | None:
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value.strip().lower() in _TRUTHY
    return None


def _with_suffix(base: str | None, suffix: str) -> str | None:
    if not base:
        return None
    return f"{base.rstrip('/')}/{suffix}"


def parse_resource_attributes(raw: str) -> dict[str, str]:
    """Parse `key=value,key=value`; malformed parts are skipped."""
    attrs: dict[str, str] = {}
    for part in raw.split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            attrs[key.strip()] = value.strip()
    return attrs


class TelemetryConfig(BaseModel):
    """Runtime configuration for telemetry exporters and console logging."""

    enable_tracing: bool = False
    enable_metrics: bool = False
    enable_logging: bool = False
    otlp_traces_endpoint: str | None = None
    otlp_metrics_endpoint: str | None = None
    otlp_logs_endpoint: str | None = None
    service_name: str = "gridbattle"
    service_namespace: str = "game"
    log_level: str = "WARNING"
    resource_attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls, **overrides: Any) -> "TelemetryConfig":
        """Construct config from env vars (`GRIDBATTLE_*` + `OTEL_*`).

        An endpoint, whether explicit or derived from
        `OTEL_EXPORTER_OTLP_ENDPOINT`, switches its exporter on.
        """

        data: Dict[str, Any] = cls().model_dump()
        data.update(overrides)

        for field, env_names in _SWITCHES.items():
            env_value = _bool_from_env(*env_names)
            if env_value is not None:
                data[field] = env_value

        base_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        for field, (env_name, suffix, switch) in _ENDPOINTS.items():
            if not data.get(field):
                data[field] = os.getenv(env_name) or _with_suffix(base_endpoint, suffix)
            if data[field]:
                data[switch] = True

        for field, env_name in (
            ("service_name", "OTEL_SERVICE_NAME"),
            ("service_namespace", "OTEL_SERVICE_NAMESPACE"),
            ("log_level", "GRIDBATTLE_LOG_LEVEL"),
        ):
            value = os.getenv(env_name)
            if value:
                data[field] = value

        resource_env = os.getenv("OTEL_RESOURCE_ATTRIBUTES")
        if resource_env:
            data["resource_attributes"] = {
                **data.get("resource_attributes", {}),
                **parse_resource_attributes(resource_env),
            }

        return cls(**data)

    def resource(self) -> dict[str, str]:
        """OpenTelemetry resource attributes for every provider."""
        attributes = {
            "service.name": self.service_name,
            "service.namespace": self.service_namespace,
        }
        attributes.update(self.resource_attributes)
        return attributes


@lru_cache(maxsize=1)
def load_telemetry_config() -> TelemetryConfig:
    """Load and cache telemetry config from the environment."""

    return TelemetryConfig.from_env()


def init_telemetry(config: TelemetryConfig | None = None) -> TelemetryConfig:
    """Initialise telemetry subsystems lazily."""

    from .logger import init_logging
    from .metrics import init_metrics
    from .tracer import init_tracing

    resolved = config or load_telemetry_config()

    if resolved.enable_tracing:
        init_tracing(resolved)
    if resolved.enable_metrics:
        init_metrics(resolved)
    if resolved.enable_logging:
        init_logging(resolved)
    return resolved
