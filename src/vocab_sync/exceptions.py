"""Custom exceptions for vocab-sync.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from vocab_sync.models.schema import ImportResult


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_CONSTRAINT_VIOLATED = 4005

    # Import errors (5xxx)
    IMPORT_PHASE_FAILED = 5001
    IMPORT_CANCELLED = 5002
    SERIALIZATION_FAILED = 5003

    # Source errors (55xx)
    SOURCE_READ_FAILED = 5501
    SOURCE_INVALID = 5502

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001
    CONFIG_MISSING = 6002


class VocabSyncError(Exception):
    """Base exception for all vocab-sync errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.IMPORT_PHASE_FAILED,
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


class StorageError(VocabSyncError):
    """Raised when a repository call fails.

    Carries the name of the failing operation and the record key being
    processed so a caller sees which step broke and on what.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[Any] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if key is not None:
            details["key"] = str(key)[:200]
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.key = key
        self.original_error = original_error


class SerializationError(VocabSyncError):
    """Raised when a dictionary payload cannot be encoded."""

    def __init__(
        self,
        message: str,
        word: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if word:
            details["word"] = word
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=ErrorCode.SERIALIZATION_FAILED, details=details)
        self.word = word
        self.original_error = original_error


class ImportCancelledError(VocabSyncError):
    """Raised when cancellation is observed before a repository call."""

    def __init__(self, operation: str):
        super().__init__(
            f"Import cancelled before {operation}",
            code=ErrorCode.IMPORT_CANCELLED,
            details={"operation": operation},
        )
        self.operation = operation


class ImportPhaseError(VocabSyncError):
    """Raised by the driver when one import phase fails.

    Attributes:
        phase: Name of the failing phase ("notes", "learning_logs", "dictionary")
        partial_result: Counters of the phases that completed before the failure
    """

    def __init__(
        self,
        phase: str,
        partial_result: "ImportResult",
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"phase": phase}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(
            f"Import phase '{phase}' failed",
            code=ErrorCode.IMPORT_PHASE_FAILED,
            details=details,
        )
        self.phase = phase
        self.partial_result = partial_result
        self.original_error = original_error


class SourceLoadError(VocabSyncError):
    """Raised when a source file cannot be read or validated."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.SOURCE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.path = path
        self.original_error = original_error


class ConfigurationError(VocabSyncError):
    """Raised when a setting cannot be used, e.g. an unusable database path."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if value is not None:
            details["value"] = str(value)
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
        self.value = value
        self.original_error = original_error
