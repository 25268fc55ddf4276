"""
Chiller Custom Exceptions

Simple exception hierarchy for error handling.
"""


class ChillerError(Exception):
    """Base exception for Chiller."""

    pass


class ConfigurationError(ChillerError):
    """Application settings are invalid."""

    pass


class NotFoundError(ChillerError):
    """Persisted configuration or daily log does not exist."""

    pass


class CorruptDataError(ChillerError):
    """Persisted configuration or log line is malformed."""

    pass


class SensorError(ChillerError):
    """Sensor data is unavailable or invalid."""

    pass


class AuthorizationError(ChillerError):
    """Caller is not allowed to change the configuration."""

    pass


class InvalidRequestError(ChillerError):
    """A request is missing a required field or carries an invalid value."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")
