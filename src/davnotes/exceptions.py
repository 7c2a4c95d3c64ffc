"""Custom exceptions for DavNotes.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every error renders a stable,
human-readable message through ``str()``.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Protocol errors (1xxx)
    PROTOCOL_ERROR = 1001
    NETWORK_ERROR = 1002

    # Connection errors (2xxx)
    NOT_CONNECTED = 2001
    INVALID_CREDENTIALS = 2002

    # Note errors (3xxx)
    NOTE_NOT_FOUND = 3001

    # Format errors (4xxx)
    PARSE_ERROR = 4001
    INVALID_TIMESTAMP = 4002

    # Local storage errors (5xxx)
    LOCAL_STORAGE_ERROR = 5001

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001


class DavNotesError(Exception):
    """Base exception for all DavNotes errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PROTOCOL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ProtocolError(DavNotesError):
    """Raised when the WebDAV server answers with an unexpected status."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        details = {}
        if status_code is not None:
            details["status"] = status_code
        super().__init__(
            f"WebDAV error: {detail}",
            code=ErrorCode.PROTOCOL_ERROR,
            details=details,
        )
        self.detail = detail
        self.status_code = status_code


class NotConnectedError(DavNotesError):
    """Raised when an operation needs a server connection and none is active."""

    def __init__(self):
        super().__init__("Not connected to server", code=ErrorCode.NOT_CONNECTED)


class NoteNotFoundError(DavNotesError):
    """Raised when a note cannot be found on the server."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note not found: {note_id}",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id},
        )
        self.note_id = note_id


class ParseError(DavNotesError):
    """Raised for malformed JSON records or mirror documents."""

    def __init__(self, detail: str):
        super().__init__(f"Parse error: {detail}", code=ErrorCode.PARSE_ERROR)
        self.detail = detail


class InvalidCredentialsError(DavNotesError):
    """Raised when the server rejects the configured username or password."""

    def __init__(self):
        super().__init__("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)


class NetworkError(DavNotesError):
    """Raised for transport-level failures (DNS, TLS, timeouts, resets)."""

    def __init__(self, detail: str):
        super().__init__(f"Network error: {detail}", code=ErrorCode.NETWORK_ERROR)
        self.detail = detail


class InvalidTimestampError(DavNotesError):
    """Raised when a timestamp string matches none of the accepted formats."""

    def __init__(self, text: str):
        super().__init__(
            f"Invalid timestamp: {text}",
            code=ErrorCode.INVALID_TIMESTAMP,
            details={"value": text[:100]},
        )
        self.text = text


class LocalStorageError(DavNotesError):
    """Raised for failures persisting local settings or credentials."""

    def __init__(self, detail: str, path: Optional[str] = None):
        details = {}
        if path:
            # Don't expose full paths in error messages
            details["path_hint"] = path.split("/")[-1] if "/" in path else path
        super().__init__(
            f"Storage error: {detail}",
            code=ErrorCode.LOCAL_STORAGE_ERROR,
            details=details,
        )
        self.detail = detail
        self.path = path


class ConfigurationError(DavNotesError):
    """Raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, code=ErrorCode.CONFIG_INVALID, details=details)
        self.config_key = config_key
