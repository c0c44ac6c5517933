"""Tests for sink configuration loading."""

from __future__ import annotations

import pytest

from gcl_sink.config import (
    BatchSettings,
    SinkOptions,
    SinkSettings,
    configure_settings,
    get_settings,
    load_batch_settings,
    load_options,
    load_settings,
)
from gcl_sink.errors import ConfigurationError


def test_options_defaults():
    options = load_options({})

    assert options.project_id is None
    assert options.resource_type is None
    assert options.log_name == "Default"
    assert dict(options.labels) == {}
    assert dict(options.resource_labels) == {}
    assert options.use_source_context_as_log_name is True
    assert options.use_json_output is False
    assert options.use_log_correlation is True
    assert options.google_credential_json is None
    assert options.service_name is None
    assert options.service_version is None


def test_options_from_environment():
    env = {
        "GCL_PROJECT_ID": "my-project",
        "GCL_RESOURCE_TYPE": "k8s_container",
        "GCL_LOG_NAME": "api",
        "GCL_LABELS": "env=prod, team = core ,broken",
        "GCL_RESOURCE_LABELS": "cluster_name=c1",
        "GCL_USE_SOURCE_CONTEXT_AS_LOG_NAME": "false",
        "GCL_USE_JSON_OUTPUT": "YES",
        "GCL_USE_LOG_CORRELATION": "0",
        "GCL_CREDENTIAL_JSON": '{"type": "service_account"}',
        "GCL_SERVICE_NAME": "billing",
        "GCL_SERVICE_VERSION": "1.4.2",
    }

    options = load_options(env)

    assert options.project_id == "my-project"
    assert options.resource_type == "k8s_container"
    assert options.log_name == "api"
    assert dict(options.labels) == {"env": "prod", "team": "core"}
    assert dict(options.resource_labels) == {"cluster_name": "c1"}
    assert options.use_source_context_as_log_name is False
    assert options.use_json_output is True
    assert options.use_log_correlation is False
    assert options.google_credential_json == '{"type": "service_account"}'
    assert options.service_name == "billing"
    assert options.service_version == "1.4.2"


def test_option_mappings_are_read_only():
    options = SinkOptions(labels={"env": "prod"})

    with pytest.raises(TypeError):
        options.labels["env"] = "dev"  # type: ignore[index]


def test_options_copy_caller_mappings():
    labels = {"env": "prod"}
    options = SinkOptions(labels=labels)

    labels["env"] = "dev"

    assert options.labels["env"] == "prod"


def test_with_overrides_returns_a_new_value():
    options = SinkOptions(project_id="a")

    changed = options.with_overrides(project_id="b", use_json_output=True)

    assert options.project_id == "a"
    assert changed.project_id == "b"
    assert changed.use_json_output is True


def test_batch_defaults():
    batch = load_batch_settings({})

    assert batch.batch_size_limit == 100
    assert batch.period == 5.0
    assert batch.queue_limit is None
    assert batch.flush_timeout == 30.0
    assert batch.output_template is None


def test_batch_from_environment():
    env = {
        "GCL_BATCH_SIZE": "25",
        "GCL_PERIOD_MS": "250",
        "GCL_QUEUE_LIMIT": "1000",
        "GCL_FLUSH_TIMEOUT_MS": "1500",
        "GCL_OUTPUT_TEMPLATE": "{Level:u3} {Message}",
    }

    batch = load_batch_settings(env)

    assert batch.batch_size_limit == 25
    assert batch.period == 0.25
    assert batch.queue_limit == 1000
    assert batch.flush_timeout == 1.5
    assert batch.output_template == "{Level:u3} {Message}"


def test_unparseable_numbers_fall_back_to_defaults():
    batch = load_batch_settings({"GCL_BATCH_SIZE": "lots", "GCL_PERIOD_MS": ""})

    assert batch.batch_size_limit == 100
    assert batch.period == 5.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"batch_size_limit": 0},
        {"period": 0},
        {"period": -1.0},
        {"queue_limit": 0},
    ],
)
def test_invalid_batch_settings_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        BatchSettings(**overrides)


def test_invalid_environment_batch_size_is_rejected():
    with pytest.raises(ConfigurationError):
        load_batch_settings({"GCL_BATCH_SIZE": "-5"})


def test_configuration_error_is_a_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_load_settings_combines_both_parts():
    settings = load_settings({"GCL_PROJECT_ID": "p", "GCL_BATCH_SIZE": "7"})

    assert settings.options.project_id == "p"
    assert settings.batch.batch_size_limit == 7


def test_configure_settings_applies_overrides():
    base = SinkSettings(options=SinkOptions(project_id="p"))

    resolved = configure_settings(base, batch=BatchSettings(batch_size_limit=3))

    assert resolved.options.project_id == "p"
    assert resolved.batch.batch_size_limit == 3
    assert get_settings() is resolved


def test_get_settings_loads_from_environment(monkeypatch):
    monkeypatch.setenv("GCL_PROJECT_ID", "env-project")
    monkeypatch.setenv("GCL_USE_JSON_OUTPUT", "true")

    settings = get_settings()

    assert settings.options.project_id == "env-project"
    assert settings.options.use_json_output is True
    assert get_settings() is settings
