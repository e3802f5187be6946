"""Exception hierarchy shared by the object model, session and transport."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cpmgmt.models.enums import DetailLevel


class ManagementError(Exception):
    """Base class for every error raised by this package."""


class DetailLevelError(ManagementError):
    """A gated property was read below its required detail level."""

    def __init__(self, actual: DetailLevel, required: DetailLevel):
        super().__init__(
            f"Detail level of {actual.wire} does not meet requirement of {required.wire}"
        )
        self.actual = actual
        self.required = required


class InvalidMembershipOperationError(ManagementError):
    """A membership add/remove cannot be expressed for the parent's state."""


class StaleIdentifierError(ManagementError):
    """An existing object has neither a uid nor a server-side name to address it by."""


class ObjectStateError(ManagementError):
    """The requested operation does not apply to the object's lifecycle state."""


class ManagementAPIError(ManagementError):
    """The management server rejected a command."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        code: str | None = None,
        warnings: list[str] | None = None,
        errors: list[str] | None = None,
        blocking_errors: list[str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.warnings = warnings or []
        self.errors = errors or []
        self.blocking_errors = blocking_errors or []

    def __str__(self) -> str:
        details = [*self.blocking_errors, *self.errors]
        if not details:
            return self.message
        return f"{self.message} ({'; '.join(details)})"


class LoginFailedError(ManagementAPIError):
    pass


class ObjectNotFoundError(ManagementAPIError):
    pass


class ValidationFailedError(ManagementAPIError):
    pass


class ObjectLockedError(ManagementAPIError):
    pass


class SessionExpiredError(ManagementAPIError):
    pass


class NotImplementedByServerError(ManagementAPIError):
    pass


API_ERROR_CODES: dict[str, type[ManagementAPIError]] = {
    "err_login_failed": LoginFailedError,
    "err_login_failed_more_than_one_opened_session": LoginFailedError,
    "err_login_failed_wrong_username_or_password": LoginFailedError,
    "err_validation_failed": ValidationFailedError,
    "generic_err_object_not_found": ObjectNotFoundError,
    "generic_err_object_locked": ObjectLockedError,
    "generic_err_session_expired": SessionExpiredError,
    "generic_err_wrong_session_id": SessionExpiredError,
    "not_implemented": NotImplementedByServerError,
}
