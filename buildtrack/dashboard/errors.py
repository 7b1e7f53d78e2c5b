"""
Dashboard failure taxonomy
"""
from typing import Optional

FALLBACK_ERROR_MESSAGE = "Something went wrong. Please try again."


class DashboardError(Exception):
    """Base class for every failure a dashboard operation can surface"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or FALLBACK_ERROR_MESSAGE)

    @property
    def message(self) -> str:
        return self.args[0]


class ValidationError(DashboardError, ValueError):
    """Draft rejected locally; nothing was sent"""


class NetworkError(DashboardError):
    """The request never produced an HTTP response"""


class APIError(DashboardError):
    """Non-2xx status or an envelope with success=false"""

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UploadError(DashboardError):
    """A single file failed to upload; the parent operation continues"""

    def __init__(self, filename: str, message: Optional[str] = None):
        super().__init__(message)
        self.filename = filename


class UnsupportedOperationError(DashboardError):
    """The resource has no endpoint for the requested write"""
