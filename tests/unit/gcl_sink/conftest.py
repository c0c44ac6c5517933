"""Fixtures for Cloud Logging sink unit tests."""

from __future__ import annotations

from typing import Any, List, Mapping

import pytest
from google.api import monitored_resource_pb2

from gcl_sink import selflog
from gcl_sink.config import BatchSettings, SinkOptions, SinkSettings, reset_settings
from gcl_sink.context import clear_context
from gcl_sink.events import LogEvent, LogLevel
from gcl_sink.formatter import clear_log_name_cache
from gcl_sink.logger import LoggerManager
from gcl_sink.sink import GoogleCloudLoggingSink

from tests.utils.logging import PROJECT_ID, RecordingTransport, reset_sink_metrics


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `gcl_sink` marker."""

    for item in items:
        item.add_marker(pytest.mark.gcl_sink)


@pytest.fixture(autouse=True)
def _reset_sink_state():
    """Reset metrics, context, caches and self-log around each test."""

    reset_sink_metrics()
    clear_context()
    clear_log_name_cache()
    reset_settings()
    selflog.disable()
    yield
    selflog.enable()
    reset_settings()
    clear_context()
    reset_sink_metrics()


@pytest.fixture
def diagnostics():
    """Capture self-log output written during the test."""

    lines: List[str] = []
    selflog.enable(lines.append)
    return lines


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def global_resource():
    return monitored_resource_pb2.MonitoredResource(
        type="global", labels={"project_id": PROJECT_ID}
    )


@pytest.fixture
def make_sink(transport, global_resource):
    """Factory building a sink wired to the recording transport."""

    def _make(**option_overrides: Any) -> GoogleCloudLoggingSink:
        text_formatter = option_overrides.pop("text_formatter", None)
        options = SinkOptions(project_id=PROJECT_ID).with_overrides(**option_overrides)
        return GoogleCloudLoggingSink(
            options,
            text_formatter=text_formatter,
            transport=transport,
            resource=global_resource,
            flush_timeout=10.0,
        )

    return _make


@pytest.fixture
def make_event():
    def _make(
        message: str = "hello",
        level: LogLevel = LogLevel.INFORMATION,
        properties: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> LogEvent:
        return LogEvent(
            level=level,
            message_template=message,
            properties=dict(properties or {}),
            **kwargs,
        )

    return _make


@pytest.fixture
def logger_manager(transport, global_resource):
    """Test-scoped logger manager with a short flush period."""

    manager = LoggerManager()
    manager.configure(
        SinkSettings(
            options=SinkOptions(project_id=PROJECT_ID),
            batch=BatchSettings(batch_size_limit=10, period=0.05),
        ),
        transport=transport,
        resource=global_resource,
    )

    yield manager

    manager.reset()
