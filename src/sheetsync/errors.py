"""Exceptions raised by SheetSync."""

from typing import Any, Optional


class SheetSyncError(Exception):
    """Base class for SheetSync errors."""

    pass


class MalformedAddressError(SheetSyncError):
    """Raised when a cell address has no parsable row component."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Malformed cell address: {address!r}")


class UnsupportedSourceError(SheetSyncError):
    """Raised when a source location uses a scheme no backend handles."""

    pass


class ConfigurationError(SheetSyncError):
    """Raised when the merged configuration or field mapping is unusable."""

    pass


class SessionError(SheetSyncError):
    """Raised when a workbook session cannot be opened or closed."""

    pass


class UnexpectedStatusError(SheetSyncError):
    """Raised when an HTTP call returns a status outside the expected set."""

    def __init__(self, status: int, operation: str, body: Optional[Any] = None):
        self.status = status
        self.operation = operation
        self.body = body
        message = f"{operation} failed with HTTP {status}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class AuthExpiredError(UnexpectedStatusError):
    """A 401 whose body says the access token is invalid or expired."""

    pass
