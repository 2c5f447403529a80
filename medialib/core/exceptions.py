# File: medialib/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class MediaLibException(Exception):
    """Base exception for all media library errors."""

    # HTTP status used when the exception reaches the application handler
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a media library exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(MediaLibException):
    """Base exception for domain-related errors."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


class DuplicateEntityException(MediaLibException):
    """Raised when an attempt is made to create an entity that already exists."""

    status_code = 409

    def __init__(
        self,
        message: str = "Duplicate entity detected",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "DUPLICATE_ENTITY", details or {})


class ValidationException(MediaLibException):
    """Raised when input validation fails."""

    status_code = 400

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Security exceptions
class SecurityException(MediaLibException):
    """Base exception for security-related errors."""

    CODE_PREFIX = "SECURITY_"


class ForbiddenException(SecurityException):
    """Raised when the caller may not perform an operation."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized", operation: Optional[str] = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message, f"{self.CODE_PREFIX}001", details)


# Storage exceptions
class StorageException(MediaLibException):
    """Base exception for filesystem errors."""

    CODE_PREFIX = "STORAGE_"

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if file_path:
            error_details["file_path"] = file_path
        if operation:
            error_details["operation"] = operation
        super().__init__(message, f"{self.CODE_PREFIX}001", error_details)


class InvalidPathException(StorageException):
    """Raised when a path is malformed or resolves outside the media root."""

    status_code = 400

    def __init__(self, path: str, reason: Optional[str] = None):
        details = {"path": path}
        if reason:
            details["reason"] = reason
        message = f"Invalid path: {path}"
        if reason:
            message += f" - {reason}"
        super().__init__(message=message, details=details)


class DatabaseException(MediaLibException):
    """
    Exception raised for database-related errors.
    """

    CODE_PREFIX = "DATABASE_"

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        entity_type: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if query:
            error_details["query"] = query
        if entity_type:
            error_details["entity_type"] = entity_type
        code = error_code or f"{self.CODE_PREFIX}001"
        super().__init__(message=message, code=code, details=error_details)


class CacheUnavailableException(MediaLibException):
    """Raised by cache backends when the store cannot be reached."""

    CODE_PREFIX = "CACHE_"

    def __init__(self, backend: str, original_error: Optional[str] = None):
        details = {"backend": backend}
        if original_error:
            details["original_error"] = original_error
        super().__init__(
            f"Cache backend {backend} is unavailable",
            f"{self.CODE_PREFIX}001",
            details,
        )
