"""
Custom exceptions for the JuiceFS cloud API client.
"""


class JuiceFSClientError(Exception):
    """Base exception for JuiceFS client errors."""
    pass


class ConfigurationError(JuiceFSClientError):
    """Raised when client configuration is invalid."""
    pass


class MissingHeaderError(JuiceFSClientError):
    """Raised when a header required for signing is absent or empty."""

    def __init__(self, header: str):
        super().__init__(f"header {header} is required")
        self.header = header


class SerializationError(JuiceFSClientError):
    """Raised when a payload, token or response cannot be (de)serialized."""
    pass


class RequestConstructionError(JuiceFSClientError):
    """Raised when the outbound request cannot be built (e.g. malformed URL)."""
    pass


class TransportError(JuiceFSClientError):
    """Raised when the HTTP request fails at the network level."""
    pass


class UnexpectedStatusError(JuiceFSClientError):
    """Raised when an API call returns a status code outside the expected set."""

    def __init__(self, message: str, status_code: int, body: bytes = b""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotFoundError(UnexpectedStatusError):
    """Raised when the requested resource does not exist (HTTP 404)."""
    pass


class PollTimeoutError(JuiceFSClientError):
    """Raised when a polled condition is still false after the attempt limit."""
    pass
