"""Error types shared by the connection layer, services and MCP tools."""

from typing import Optional


class HulyError(Exception):
    """Base class for errors reported back to MCP clients."""

    kind = "internal_error"


class ConfigurationError(HulyError):
    """Raised when the workspace or credentials are not configured."""

    kind = "configuration_error"

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []


class PlatformConnectionError(HulyError):
    """Raised when a session to the platform cannot be established or used."""

    kind = "connection_error"


class PlatformError(PlatformConnectionError):
    """Raised when the platform answers a request with an error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(HulyError):
    """Raised when a referenced project, issue, milestone, label or person is missing."""

    kind = "not_found"

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ValidationError(HulyError):
    """Raised for malformed issue identifiers, dates and similar input."""

    kind = "validation_error"
