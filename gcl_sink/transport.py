"""Transport for ``WriteLogEntries`` calls to Google Cloud Logging."""

from __future__ import annotations

import json
from typing import Mapping, Optional, Protocol, Sequence

from google.api import monitored_resource_pb2
from google.api_core.exceptions import GoogleAPIError
from google.cloud.logging_v2.services.logging_service_v2 import LoggingServiceV2Client
from google.cloud.logging_v2.types import LogEntry
from google.oauth2 import service_account

from .errors import ConfigurationError, EmissionError

LOGGING_WRITE_SCOPE = "https://www.googleapis.com/auth/logging.write"


class Transport(Protocol):
    """Anything able to write a batch of entries; must tolerate concurrent calls."""

    def write_log_entries(
        self,
        log_name: str,
        resource: monitored_resource_pb2.MonitoredResource,
        labels: Mapping[str, str],
        entries: Sequence[LogEntry],
        *,
        timeout: Optional[float] = None,
    ) -> None:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...


def load_credentials(credential_json: str) -> service_account.Credentials:
    """Build service-account credentials from the JSON text of a key file."""

    try:
        info = json.loads(credential_json)
    except ValueError as exc:
        raise ConfigurationError("google_credential_json is not valid JSON") from exc

    return service_account.Credentials.from_service_account_info(
        info, scopes=[LOGGING_WRITE_SCOPE]
    )


class CloudLoggingTransport:
    """Writes batches through the generated Cloud Logging v2 client."""

    def __init__(self, client: Optional[LoggingServiceV2Client] = None) -> None:
        self._client = client or LoggingServiceV2Client()

    @classmethod
    def from_credential_json(cls, credential_json: Optional[str]) -> "CloudLoggingTransport":
        """Use explicit key material when given, Application Default Credentials otherwise."""

        if not credential_json:
            return cls()

        return cls(LoggingServiceV2Client(credentials=load_credentials(credential_json)))

    def write_log_entries(
        self,
        log_name: str,
        resource: monitored_resource_pb2.MonitoredResource,
        labels: Mapping[str, str],
        entries: Sequence[LogEntry],
        *,
        timeout: Optional[float] = None,
    ) -> None:
        try:
            self._client.write_log_entries(
                log_name=log_name,
                resource=resource,
                labels=dict(labels),
                entries=list(entries),
                timeout=timeout,
            )
        except GoogleAPIError as exc:
            raise EmissionError(
                f"WriteLogEntries failed for {len(entries)} entries: {exc}"
            ) from exc

    def close(self) -> None:
        self._client.transport.close()
