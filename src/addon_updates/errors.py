"""Exceptions raised by addon_updates."""

from typing import Any, Optional

# Remote codes meaning the license key does not exist at all.
LICENSE_NOT_FOUND_CODES = frozenset({"hizzle_licenses_not_found", "license_not_found"})


class UpdatesError(Exception):
    """Base class for all addon_updates errors.

    Attributes:
        code: Short machine-readable error code.
        message: Human-readable message.
    """

    code = "updates_error"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class TransportError(UpdatesError):
    """Raised when the remote service cannot be reached or times out."""

    code = "http_request_failed"


class InvalidResponse(UpdatesError):
    """Raised when the remote returns an empty or undecodable body."""

    code = "invalid_response"

    def __init__(self, message: str = "Invalid response from the server.") -> None:
        super().__init__(message)


class ApplicationError(UpdatesError):
    """Raised when the remote returns a structured ``{code, message}`` error.

    Attributes:
        data: The optional ``data`` object of the error envelope.
    """

    def __init__(
        self, code: str, message: str, data: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, code=code)
        self.data = data or {}

    @property
    def is_license_not_found(self) -> bool:
        return self.code in LICENSE_NOT_FOUND_CODES


class MissingConfiguration(UpdatesError):
    """Raised when a required configuration value is absent."""

    code = "missing_configuration"

    def __init__(self, setting: str) -> None:
        super().__init__(f"Missing required config key: {setting}")
        self.setting = setting
