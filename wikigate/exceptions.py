"""Custom exception hierarchy for wikigate."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Resource errors
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"

    # Authorization internals
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    VISIBILITY_UNRESOLVED = "VISIBILITY_UNRESOLVED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class WikiException(Exception):
    """
    Base exception for all wikigate errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class PageNotFoundError(WikiException):
    """Page not found in database."""

    def __init__(self, page_id: int):
        super().__init__(
            f"Page not found: {page_id}",
            ErrorCode.PAGE_NOT_FOUND,
            status_code=404,
            details={"page_id": page_id}
        )


class StoredFileNotFoundError(WikiException):
    """File record not found in database."""

    def __init__(self, file_id: str):
        super().__init__(
            f"File not found: {file_id}",
            ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details={"file_id": file_id}
        )


class FolderNotFoundError(WikiException):
    """Folder not found in database."""

    def __init__(self, folder_id: int):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id}
        )


class ValidationError(WikiException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(WikiException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(WikiException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class LoginRequiredError(WikiException):
    """Anonymous request was denied; the client should be sent to log in.

    Rendered as a redirect to the login entry point rather than a JSON body.
    """

    def __init__(self, return_url: Optional[str] = None):
        super().__init__(
            "Login required",
            ErrorCode.LOGIN_REQUIRED,
            status_code=303,
            details={"return_url": return_url} if return_url else {},
        )
        self.return_url = return_url


class UnsupportedOperationError(WikiException):
    """Operation is not defined for this kind of resource (programmer error)."""

    def __init__(self, operation: str, resource_kind: str):
        super().__init__(
            f"Operation {operation!r} is not supported for {resource_kind} resources",
            ErrorCode.UNSUPPORTED_OPERATION,
            status_code=500,
            details={"operation": operation, "resource_kind": resource_kind}
        )


class VisibilityResolutionError(WikiException):
    """Inherited visibility could not be resolved to a concrete value."""

    def __init__(self, message: str, folder_id: Optional[int] = None):
        details = {"folder_id": folder_id} if folder_id is not None else {}
        super().__init__(
            message,
            ErrorCode.VISIBILITY_UNRESOLVED,
            status_code=500,
            details=details
        )
