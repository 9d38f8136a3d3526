"""
Exceptions for Tempest weather API operations.
"""

from typing import Optional


class TempestError(Exception):
    """Base exception for Tempest-related errors."""

    pass


class TempestConfigurationError(TempestError):
    """A required identifier (API key, device id) is missing."""

    pass


class TempestConnectionError(TempestError):
    """Error connecting to the Tempest API."""

    pass


class TempestStatusError(TempestError):
    """The API answered with a non-zero status code or an error body.

    The message is the vendor's text, passed through unchanged.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TempestDecodeError(TempestError):
    """An observation row could not be decoded or used."""

    pass
