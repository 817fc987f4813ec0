"""Exception hierarchy shared by the provider clients and the API layer."""
from __future__ import annotations

from typing import Optional


class EVChargeError(RuntimeError):
    """Base class for errors raised by the charging/route pipeline."""


class ConfigError(EVChargeError):
    """Raised when a required provider credential is not configured."""


class ValidationError(EVChargeError, ValueError):
    """Raised for malformed coordinates or missing search inputs."""


class NetworkError(EVChargeError):
    """Raised when a provider could not be reached."""


class ApiError(EVChargeError):
    """Raised when a provider answers with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
