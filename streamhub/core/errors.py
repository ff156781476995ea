"""
Error Types
Typed failures raised by the addon protocol, registry and Trakt layers
"""
from typing import Optional


class StreamHubError(Exception):
    """Base class for all StreamHub errors"""


class TransportError(StreamHubError):
    """Connection failure, timeout or non-2xx response"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"HTTP {self.status}: {self.message}"
        return self.message


class ParseError(StreamHubError):
    """Malformed or structurally incomplete JSON body"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotFoundError(StreamHubError):
    """No installed addon serves the resource, or no addon has the given id"""


class AuthError(StreamHubError):
    """Trakt call attempted without a valid or refreshable token"""
