"""Custom exception hierarchy for mediafolders."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Folder errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    FOLDER_NOT_EMPTY = "FOLDER_NOT_EMPTY"
    FOLDER_EXISTS = "FOLDER_EXISTS"
    FOLDER_BUSY = "FOLDER_BUSY"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Remote store errors
    REMOTE_EXECUTION_FAILED = "REMOTE_EXECUTION_FAILED"
    REMOTE_TARGET_NOT_CONFIGURED = "REMOTE_TARGET_NOT_CONFIGURED"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MediaFoldersError(Exception):
    """
    Base exception for all mediafolders errors.

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


class ValidationError(MediaFoldersError):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(MediaFoldersError):
    """Request does not identify a known owner."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class FolderNotFoundError(MediaFoldersError):
    """Folder not found in the catalog."""

    def __init__(self, folder_id: str):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id}
        )


class FolderConflictError(MediaFoldersError):
    """Folder state blocks the requested change.

    ``reason`` is ``"media_present"`` or ``"remote_files_present"`` for a
    non-empty folder (with ``count``), ``"target_exists"`` for a rename onto
    an existing folder, ``"folder_changed"`` when the folder kept being
    renamed while the operation waited for it.
    """

    def __init__(self, message: str, reason: str, count: Optional[int] = None, folder: Optional[str] = None):
        details: Dict[str, Any] = {"reason": reason}
        if count is not None:
            details["count"] = count
        if folder is not None:
            details["folder"] = folder
        if reason == "target_exists":
            error_code = ErrorCode.FOLDER_EXISTS
        elif reason == "folder_changed":
            error_code = ErrorCode.FOLDER_BUSY
        else:
            error_code = ErrorCode.FOLDER_NOT_EMPTY
        super().__init__(
            message,
            error_code,
            status_code=409,
            details=details
        )
        self.reason = reason
        self.count = count


class RemoteExecutionError(MediaFoldersError):
    """A command against the remote store failed or could not be delivered.

    The remote side exposes no structured error codes; ``stderr`` is passed
    through as opaque text.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        stderr: str = "",
        exit_code: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if command is not None:
            details["command"] = command
        if stderr:
            details["stderr"] = stderr
        if exit_code is not None:
            details["exit_code"] = exit_code
        super().__init__(
            message,
            ErrorCode.REMOTE_EXECUTION_FAILED,
            status_code=502,
            details=details
        )
        self.command = command
        self.stderr = stderr
        self.exit_code = exit_code


class RemoteTargetNotConfiguredError(MediaFoldersError):
    """No remote target can be resolved for an owner."""

    def __init__(self, owner_id: int, target_id: Optional[int] = None):
        details: Dict[str, Any] = {"owner_id": owner_id}
        if target_id is not None:
            details["remote_target_id"] = target_id
        super().__init__(
            f"No remote target configured for owner {owner_id}",
            ErrorCode.REMOTE_TARGET_NOT_CONFIGURED,
            status_code=500,
            details=details
        )


class DatabaseError(MediaFoldersError):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
