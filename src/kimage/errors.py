"""
Exception types raised by the kimage client and server.

Server-side failures derive from RequestError and carry the HTTP status
they are answered with. Client-side failures end the CLI with exit code 1.
"""

from typing import Optional


class KimageError(Exception):
    """Base class for all kimage errors."""


# Configuration

class ConfigError(KimageError):
    """The config file could not be loaded."""


class ConfigReadError(ConfigError):
    """The config file is missing or unreadable."""


class ConfigParseError(ConfigError):
    """The config file is not valid TOML or does not match the schema."""


# Server

class RequestError(KimageError):
    """A request that is answered with a specific HTTP status."""

    status_code = 500
    reason = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.reason)


class AuthMissingError(RequestError):
    status_code = 401
    reason = "Missing Authorization header"


class AuthMismatchError(RequestError):
    status_code = 401
    reason = "Unauthorized"


class MultipartFieldMissingError(RequestError):
    status_code = 400
    reason = "No image field found in payload"


class Base64DecodeError(RequestError):
    status_code = 400
    reason = "Invalid base64 data"


class FileWriteError(RequestError):
    status_code = 500
    reason = "Failed to write file"


class ImageNotFoundError(RequestError):
    status_code = 404
    reason = "Image not found"


class StoredImageReadError(RequestError):
    status_code = 500
    reason = "Failed to read file"


# Client

class FileReadError(KimageError):
    """The local image file could not be read."""


class ImageDecodeError(KimageError):
    """The local file is not a recognised image."""


class ImageEncodeError(KimageError):
    """The image could not be re-encoded as PNG."""


class NetworkError(KimageError):
    """The upload request did not reach the server."""


class ServerStatusError(KimageError):
    """The server answered with a non-success status."""

    def __init__(self, status_code: int):
        super().__init__(f"Server returned error: {status_code}")
        self.status_code = status_code


class InvalidResponseFormatError(KimageError):
    """The server response has no string "url" field."""


class ClipboardError(KimageError):
    """The system clipboard is not available."""
