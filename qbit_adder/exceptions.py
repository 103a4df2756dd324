"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class QbitAdderError(Exception):
    """Base exception for all application-specific errors."""


class ParseError(QbitAdderError, ValueError):
    """Raised when a torrent file is not valid bencode or not a torrent at all."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset


class BencodeTypeError(QbitAdderError, TypeError):
    """Raised when a decoded value does not have the type the caller asked for."""


class TorrentFileNotFoundError(QbitAdderError, FileNotFoundError):
    """Raised when the torrent file to inspect or submit cannot be found or read."""


class ServiceConnectionError(QbitAdderError, ConnectionError):
    """Raised when the qBittorrent WebUI cannot be reached."""


class ServiceTimeoutError(ServiceConnectionError, TimeoutError):
    """Raised when a request to the qBittorrent WebUI exceeds its time budget."""


class AuthenticationError(QbitAdderError):
    """Raised when the WebUI rejects the credentials or the session has expired."""


class NotConnectedError(QbitAdderError):
    """Raised when the user has explicitly disconnected from the WebUI."""


class DuplicateTorrentError(QbitAdderError):
    """Raised when the torrent is already present in the download list."""

    def __init__(self, info_hash: str):
        super().__init__(f"Torrent {info_hash} is already in the download list.")
        self.info_hash = info_hash


class PayloadFormatError(QbitAdderError):
    """Raised when the WebUI reports the uploaded torrent as malformed (HTTP 415)."""


class ServerRejectionError(QbitAdderError):
    """Raised when the WebUI answers 'Fails.' to an add request."""


class UnknownServerError(QbitAdderError):
    """Raised for any WebUI response that does not match a known outcome."""

    def __init__(self, status: int, body: str):
        detail = body.strip() or f"HTTP {status}"
        super().__init__(f"Unexpected response from WebUI (HTTP {status}): {detail}")
        self.status = status
        self.body = body


class ConfigurationError(QbitAdderError):
    """Raised for issues related to configuration loading or validation."""
