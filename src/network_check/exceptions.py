"""
Exception classes for the network check system.

All exceptions inherit from NetworkCheckError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class NetworkCheckError(Exception):
    """Base exception for all network check errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(NetworkCheckError):
    """Raised when a configuration file cannot be loaded or is invalid."""

    pass


class PersistenceError(NetworkCheckError):
    """Raised when a series file cannot be read, written or rotated."""

    pass


class ProbeError(NetworkCheckError):
    """Raised by probe collaborators when a probe cannot be executed at all."""

    pass
