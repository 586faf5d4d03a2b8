"""
Error handling for Redis instrumentation.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class InstrumentingException(Exception):
    """Base exception for the instrumentation layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class InvalidConfigError(InstrumentingException):
    """Recorder configuration is invalid."""

    def __init__(self, message: str = "Invalid recorder configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_CONFIG", message, details)


class AlreadyRegisteredError(InstrumentingException):
    """A metric family with the same name is already registered."""

    def __init__(self, metric_name: str, details: Optional[Dict[str, Any]] = None):
        self.metric_name = metric_name
        super().__init__(
            "ALREADY_REGISTERED",
            f"{metric_name}: metric family already registered",
            details
        )


class RecorderUnregisteredError(InstrumentingException):
    """The recorder was used after its metrics were unregistered."""

    def __init__(self, message: str = "Recorder has been unregistered", details: Optional[Dict[str, Any]] = None):
        super().__init__("RECORDER_UNREGISTERED", message, details)
