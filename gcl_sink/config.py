"""Configuration for the Cloud Logging sink and its batching pipeline."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .errors import ConfigurationError

DEFAULT_LOG_NAME = "Default"
DEFAULT_BATCH_SIZE_LIMIT = 100
DEFAULT_PERIOD_SECONDS = 5.0
DEFAULT_FLUSH_TIMEOUT_SECONDS = 30.0


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _int_env(value: str | None, default: int | None) -> int | None:
    if value is None or value == "":
        return default

    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _comma_mapping(value: str | None) -> dict[str, str]:
    """Convert ``"k1=v1,k2=v2"`` into a mapping; entries without ``=`` are skipped."""

    if not value:
        return {}

    pairs = {}
    for part in value.split(","):
        key, sep, item = part.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = item.strip()

    return pairs


def _freeze(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class SinkOptions:
    """Immutable options describing where and how entries are written."""

    project_id: Optional[str] = None
    resource_type: Optional[str] = None
    log_name: str = DEFAULT_LOG_NAME
    labels: Mapping[str, str] = field(default_factory=dict)
    resource_labels: Mapping[str, str] = field(default_factory=dict)
    use_source_context_as_log_name: bool = True
    use_json_output: bool = False
    use_log_correlation: bool = True
    google_credential_json: Optional[str] = None
    service_name: Optional[str] = None
    service_version: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _freeze(self.labels))
        object.__setattr__(self, "resource_labels", _freeze(self.resource_labels))

    def with_overrides(self, **kwargs: Any) -> "SinkOptions":
        return replace(self, **kwargs)


@dataclass(frozen=True)
class BatchSettings:
    """Immutable batching parameters; ``period`` and timeouts are in seconds."""

    batch_size_limit: int = DEFAULT_BATCH_SIZE_LIMIT
    period: float = DEFAULT_PERIOD_SECONDS
    queue_limit: Optional[int] = None
    flush_timeout: float = DEFAULT_FLUSH_TIMEOUT_SECONDS
    output_template: Optional[str] = None

    def __post_init__(self) -> None:
        if self.batch_size_limit <= 0:
            raise ConfigurationError("batch_size_limit must be positive")

        if self.period <= 0:
            raise ConfigurationError("period must be positive")

        if self.queue_limit is not None and self.queue_limit <= 0:
            raise ConfigurationError("queue_limit must be positive when set")

    def with_overrides(self, **kwargs: Any) -> "BatchSettings":
        return replace(self, **kwargs)


@dataclass(frozen=True)
class SinkSettings:
    """The sink options together with the batching parameters."""

    options: SinkOptions = field(default_factory=SinkOptions)
    batch: BatchSettings = field(default_factory=BatchSettings)

    def with_overrides(self, **kwargs: Any) -> "SinkSettings":
        return replace(self, **kwargs)


_SETTINGS_LOCK = threading.RLock()
_SETTINGS: SinkSettings | None = None


def load_options(env: Mapping[str, str] | None = None) -> SinkOptions:
    source = env if env is not None else os.environ

    return SinkOptions(
        project_id=source.get("GCL_PROJECT_ID") or None,
        resource_type=source.get("GCL_RESOURCE_TYPE") or None,
        log_name=source.get("GCL_LOG_NAME", DEFAULT_LOG_NAME),
        labels=_comma_mapping(source.get("GCL_LABELS")),
        resource_labels=_comma_mapping(source.get("GCL_RESOURCE_LABELS")),
        use_source_context_as_log_name=_bool_env(
            source.get("GCL_USE_SOURCE_CONTEXT_AS_LOG_NAME"), True
        ),
        use_json_output=_bool_env(source.get("GCL_USE_JSON_OUTPUT"), False),
        use_log_correlation=_bool_env(source.get("GCL_USE_LOG_CORRELATION"), True),
        google_credential_json=source.get("GCL_CREDENTIAL_JSON") or None,
        service_name=source.get("GCL_SERVICE_NAME") or None,
        service_version=source.get("GCL_SERVICE_VERSION") or None,
    )


def load_batch_settings(env: Mapping[str, str] | None = None) -> BatchSettings:
    source = env if env is not None else os.environ

    period_ms = _int_env(source.get("GCL_PERIOD_MS"), None)
    timeout_ms = _int_env(source.get("GCL_FLUSH_TIMEOUT_MS"), None)

    return BatchSettings(
        batch_size_limit=_int_env(source.get("GCL_BATCH_SIZE"), DEFAULT_BATCH_SIZE_LIMIT),
        period=period_ms / 1000.0 if period_ms is not None else DEFAULT_PERIOD_SECONDS,
        queue_limit=_int_env(source.get("GCL_QUEUE_LIMIT"), None),
        flush_timeout=(
            timeout_ms / 1000.0 if timeout_ms is not None else DEFAULT_FLUSH_TIMEOUT_SECONDS
        ),
        output_template=source.get("GCL_OUTPUT_TEMPLATE") or None,
    )


def load_settings(env: Mapping[str, str] | None = None) -> SinkSettings:
    return SinkSettings(options=load_options(env), batch=load_batch_settings(env))


def configure_settings(
    settings: SinkSettings | None = None, **overrides: Any
) -> SinkSettings:
    with _SETTINGS_LOCK:
        resolved = settings or load_settings()
        if overrides:
            resolved = resolved.with_overrides(**overrides)
        global _SETTINGS
        _SETTINGS = resolved
        return _SETTINGS


def get_settings() -> SinkSettings:
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            return configure_settings()
        return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
