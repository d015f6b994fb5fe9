"""Custom exception classes for the SecureVault client."""

from typing import Optional


class VaultError(Exception):
    """
    Base exception class for all client-side errors.

    ``user_message`` is the text shown to the user.
    """

    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ConfigurationError(VaultError):
    """
    Raised when required settings are missing or malformed.
    """
    default_message = "Client is not configured"


class AuthRequiredError(VaultError):
    """
    Raised when an authenticated endpoint is needed and no credential is available.
    """
    default_message = "Authentication required"


class TooLargeError(VaultError):
    """
    Raised when a file exceeds the preview size ceiling for its kind.
    """

    def __init__(self, kind: str, size: int, limit: int):
        self.kind = kind
        self.size = size
        self.limit = limit
        super().__init__(
            f"{kind.capitalize()} file too large for preview "
            f"({size} bytes, max {limit} bytes)"
        )


class PreviewTimeoutError(VaultError):
    """
    Raised when a preview fetch loses the race against its timer.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request timeout after {timeout:g}s - large files may take longer to load"
        )


class NetworkError(VaultError):
    """
    Raised on transport failures and non-2xx responses.
    """
    default_message = "Network error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransportTimeoutError(NetworkError):
    """
    Raised when the HTTP transport itself gives up waiting on the server.
    """
    default_message = "Request timed out. Server may be overloaded."


class UnsupportedTypeError(VaultError):
    """
    Raised when no previewer exists for a mime type.
    """

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"No preview available for {mime_type or 'unknown type'}")


class RelocationFailedError(VaultError):
    """
    Raised when an uploaded file could not be moved into its destination folder.
    """

    def __init__(self, file_id: str, folder_id: str, reason: str):
        self.file_id = file_id
        self.folder_id = folder_id
        self.reason = reason
        super().__init__(f"Failed to move file to folder: {reason}")
