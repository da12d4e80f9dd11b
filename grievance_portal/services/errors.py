"""
Errors raised by the account registry and the workflow engine.

None of these are fatal. Each carries a stable ``code`` and enough context
in ``details`` for the caller to show a user-facing message; the HTTP layer
maps them to status codes in one place.
"""
from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for every refusal the portal reports to a caller."""

    code = "PORTAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class NotFound(PortalError):
    code = "NOT_FOUND"


class DuplicateEmail(PortalError):
    code = "DUPLICATE_EMAIL"


class InvalidCredential(PortalError):
    code = "INVALID_CREDENTIAL"


class AccountPending(PortalError):
    code = "ACCOUNT_PENDING"


class AccountRejected(PortalError):
    code = "ACCOUNT_REJECTED"


class IllegalTransition(PortalError):
    """The trigger is not legal from the grievance's current status."""
    code = "ILLEGAL_TRANSITION"


class InvalidAssignee(PortalError):
    """Target of an assignment is not an Approved Faculty account."""
    code = "INVALID_ASSIGNEE"


class ValidationError(PortalError):
    code = "VALIDATION_ERROR"


class PermissionDenied(PortalError):
    """The acting account's role (or assignment) does not allow the action."""
    code = "PERMISSION_DENIED"


class SubmissionsClosed(PortalError):
    code = "SUBMISSIONS_CLOSED"
