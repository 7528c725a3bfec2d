"""
campus-fetch error types.

Attempt-level errors (timeouts, transport failures) stay inside the retry
loop; callers only ever see ExhaustedError or the backend's own ActionError.
"""

from typing import Any, Optional


class CampusFetchError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(CampusFetchError):
    def __init__(self, message: str):
        super().__init__("config_error", message)


class TransportError(CampusFetchError):
    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict[str, Any]] = None):
        super().__init__("transport_error", message, details)
        self.status_code = status_code


class FetchTimeoutError(CampusFetchError):
    def __init__(self, timeout_ms: int):
        super().__init__("timeout", f"Attempt timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ExhaustedError(CampusFetchError):
    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(
            "exhausted",
            f"All {attempts} attempt(s) failed: {last_error}",
            {"attempts": attempts, "last_error": str(last_error)},
        )
        self.attempts = attempts
        self.last_error = last_error


class ActionError(CampusFetchError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("action_error", message, details)
