"""Exception types raised by the Cloud Logging sink."""


class SinkError(Exception):
    pass


class ConfigurationError(SinkError, ValueError):
    """Raised while constructing the sink from unusable options."""


class ProjectionError(SinkError):
    """Raised when a single event cannot be projected onto a log entry."""


class EmissionError(SinkError):
    """Raised when a batch could not be handed to Cloud Logging."""
