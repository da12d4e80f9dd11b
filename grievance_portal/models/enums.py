"""Enums for the portal - these define the valid values for roles and statuses."""
from enum import Enum


class UserRole(str, Enum):
    """The three actors of the portal."""
    STUDENT = "Student"
    FACULTY = "Faculty"
    ADMIN = "Admin"


class AccountStatus(str, Enum):
    """Registration gate. Only Approved accounts may log in."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class GrievanceStatus(str, Enum):
    """The six states a Grievance can be in. No other states are allowed."""
    SUBMITTED = "Submitted"
    ASSIGNED = "Assigned"
    IN_REVIEW = "In Review"
    PENDING_APPROVAL = "Pending Approval"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"


TERMINAL_STATUSES = (GrievanceStatus.RESOLVED, GrievanceStatus.REJECTED)


class GrievanceType(str, Enum):
    """What the student is disputing."""
    REVALUATION = "Revaluation"
    RECOUNTING = "Recounting"
    MISSING_MARKS = "Missing Marks"
    QP_CORRECTION = "Question Paper Correction"
    OTHER = "Other"


class WorkflowTrigger(str, Enum):
    """Actions that move an existing grievance to its next state."""
    ASSIGN = "assign"
    START_REVIEW = "start_review"
    SUBMIT_FINDINGS = "submit_findings"
    APPROVE = "approve"
    REJECT = "reject"


class SortOrder(str, Enum):
    """Listing order by filing time."""
    NEWEST = "newest"
    OLDEST = "oldest"
