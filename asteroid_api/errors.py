from __future__ import annotations
from typing import Any


class ImpactAnalysisError(Exception):
    """Base class for everything the analysis service raises on purpose."""


class InvalidInputError(ImpactAnalysisError, ValueError):
    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}.")


class ExternalServiceError(ImpactAnalysisError):
    """Remote engine failure: network, timeout, empty/non-JSON body, schema violation."""

    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(ImpactAnalysisError):
    pass
