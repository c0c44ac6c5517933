"""Monitored-resource discovery for the host environment."""

from __future__ import annotations

from typing import Mapping, Optional

from google.api import monitored_resource_pb2
from google.cloud.logging_v2.handlers._monitored_resources import detect_resource

GLOBAL_RESOURCE_TYPE = "global"


def global_resource(project_id: Optional[str]) -> monitored_resource_pb2.MonitoredResource:
    """The fallback resource used when the platform is not recognised."""

    return monitored_resource_pb2.MonitoredResource(
        type=GLOBAL_RESOURCE_TYPE,
        labels={"project_id": project_id or ""},
    )


def discover_resource(project_id: Optional[str] = None) -> monitored_resource_pb2.MonitoredResource:
    """Describe the platform this process runs on.

    Detection covers Compute Engine, GKE, App Engine, Cloud Run and Cloud
    Functions through the metadata server and well-known environment
    variables. Anything else falls back to the ``global`` resource.
    """

    detected = detect_resource(project_id or "")

    if detected is None or not detected.type or detected.type == GLOBAL_RESOURCE_TYPE:
        return global_resource(project_id)

    return monitored_resource_pb2.MonitoredResource(
        type=detected.type,
        labels={key: str(value) for key, value in (detected.labels or {}).items()},
    )


def apply_overrides(
    resource: monitored_resource_pb2.MonitoredResource,
    resource_type: Optional[str],
    resource_labels: Mapping[str, str],
) -> monitored_resource_pb2.MonitoredResource:
    """Copy ``resource`` with the configured type and extra labels applied."""

    merged = monitored_resource_pb2.MonitoredResource()
    merged.CopyFrom(resource)

    if resource_type:
        merged.type = resource_type

    for key, value in resource_labels.items():
        merged.labels[key] = value

    return merged
