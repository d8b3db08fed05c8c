"""
Error taxonomy for the diagnosis pipeline.

Every error that can reach a caller carries the HTTP status it maps to and a
generic user-facing message; internal detail stays in the logs.
"""
from typing import Optional


class DiagnosisError(Exception):
    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)


class RateLimited(DiagnosisError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class ServiceUnavailable(DiagnosisError):
    status_code = 503
    default_message = "AI service is not configured."


class InvalidInput(DiagnosisError):
    status_code = 400
    default_message = "Face analysis data is required."


class ModelInvocationFailure(DiagnosisError):
    status_code = 500
    default_message = "AI diagnosis failed. Please try again."


class MalformedResponse(ModelInvocationFailure):
    """The model reply held no recoverable JSON object."""

    def __init__(self, parse_error: str):
        self.parse_error = parse_error
        super().__init__()

    def __str__(self) -> str:
        return f"JSON parse failed: {self.parse_error}"


class PersistenceFailure(Exception):
    """Raised by the usage store; logged by the caller, never returned."""
