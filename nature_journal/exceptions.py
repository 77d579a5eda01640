"""
Nature Journal — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one per failed pipeline step.
How:   Each exception carries a user-facing message, an optional context dict
       (logged, never shown) and a `notice_title` naming the failed step.
Who:   Raised by services; caught by the handlers at the pipeline boundary,
       which turn them into blocking notices.

Exception Hierarchy:
    JournalError (base)
    ├── ValidationError           → "Invalid Photo" (bad or missing image)
    ├── PermissionDeniedError     → "Permission Needed"
    ├── AcquisitionError          → "Capture Failed"
    ├── IdentityUnavailableError  → "Connection Error"
    ├── UploadFailedError         → "Save Failed"
    ├── WriteFailedError          → "Save Failed"
    ├── QueryFailedError          → "Error"
    ├── DeleteFailedError         → "Error"
    └── PipelineBusyError         → "Busy"

A cancelled picker is not an error and has no class here; see
`PickResult.cancelled`.
"""

from typing import Any, Dict, Optional


class JournalError(Exception):
    """
    Base exception for all Nature Journal errors.

    Attributes:
        message:  User-facing error description (safe to show in a notice)
        context:  Additional debug info (logged but NOT shown to the user)
    """

    notice_title = "Error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(JournalError):
    """
    Raised when a staged image cannot be used as-is.

    When:  Unsupported extension, empty file, file over `max_file_size`,
           or no image staged at all.
    """

    notice_title = "Invalid Photo"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class PermissionDeniedError(JournalError):
    """Raised when the camera or gallery permission is not granted."""

    notice_title = "Permission Needed"

    MESSAGES = {
        "camera": "Camera permission is required to take photos.",
        "gallery": "Gallery access is required to select photos.",
    }

    def __init__(self, mode: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["mode"] = mode
        super().__init__(
            message=self.MESSAGES.get(mode, "Permission is required to acquire photos."),
            context=ctx,
        )
        self.mode = mode


class AcquisitionError(JournalError):
    """
    Raised when the device fails to produce an image.

    When:  Capture binary missing, capture process failed or timed out,
           capture completed without writing a frame.
    """

    notice_title = "Capture Failed"

    def __init__(
        self,
        message: str = "Could not capture a photo from the camera.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityUnavailableError(JournalError):
    """
    Raised when no identity can be established or none is present.

    Recovery:
        None automatic. A failed bootstrap requires an application restart.
    """

    notice_title = "Connection Error"

    def __init__(
        self,
        message: str = "User not authenticated.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UploadFailedError(JournalError):
    """
    Raised when the image could not be transmitted to the media host.

    Covers network failure, non-2xx status and malformed response bodies.
    The persistence step must not run after this error.
    """

    notice_title = "Save Failed"

    def __init__(
        self,
        message: str = "Upload failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class WriteFailedError(JournalError):
    """
    Raised when the entry record could not be inserted.

    If the upload already succeeded, the uploaded object is left without a
    referencing record. This is not detected or reported.
    """

    notice_title = "Save Failed"

    def __init__(
        self,
        message: str = "Could not store the journal entry.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class QueryFailedError(JournalError):
    """Raised when the entries of an identity could not be fetched."""

    def __init__(
        self,
        message: str = "Failed to load entries",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DeleteFailedError(JournalError):
    """Raised when an entry record could not be deleted."""

    def __init__(
        self,
        message: str = "Failed to delete entry",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PipelineBusyError(JournalError):
    """
    Raised when a composer step is requested outside its legal state.

    The composer runs at most one acquire or save sequence at a time; any
    other request made meanwhile is rejected with this error.
    """

    notice_title = "Busy"

    def __init__(self, state: str, requested: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx.update({"state": state, "requested": requested})
        super().__init__(
            message=f"Cannot {requested} while the journal is {state}. Please wait.",
            context=ctx,
        )
        self.state = state
        self.requested = requested
