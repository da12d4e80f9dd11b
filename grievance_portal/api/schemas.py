"""Pydantic schemas for request/response validation."""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from grievance_portal.models.enums import (
    UserRole,
    AccountStatus,
    GrievanceStatus,
    GrievanceType,
    WorkflowTrigger
)


# Account schemas
class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    credential: str = Field(..., min_length=1)
    role: UserRole
    roll_number: Optional[str] = None  # Student
    course: Optional[str] = None  # Student
    department: Optional[str] = None  # Faculty


class AccountResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    status: AccountStatus
    roll_number: Optional[str]
    course: Optional[str]
    department: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class SessionCreate(BaseModel):
    email: str
    credential: str


class AccountStatusUpdate(BaseModel):
    status: AccountStatus


# Grievance schemas
class GrievanceCreate(BaseModel):
    exam_session: str = Field(..., min_length=1)
    exam_date: date
    subject_code: str = Field(..., min_length=1)
    subject_name: str = Field(..., min_length=1)
    type: GrievanceType
    description: str = Field(..., min_length=1)
    attachment_url: Optional[str] = None


class WorkflowLogResponse(BaseModel):
    id: str
    sequence: int
    status: GrievanceStatus
    updated_by: str
    timestamp: datetime
    note: Optional[str]

    class Config:
        from_attributes = True


class GrievanceResponse(BaseModel):
    id: str
    student_id: str
    student_name: str
    student_roll: str
    course: str
    exam_session: str
    exam_date: date
    subject_code: str
    subject_name: str
    type: GrievanceType
    description: str
    attachment_url: Optional[str]
    status: GrievanceStatus
    assigned_faculty_id: Optional[str]
    assigned_faculty_name: Optional[str]
    faculty_findings: Optional[str]
    faculty_proposed_marks: Optional[float]
    final_resolution_note: Optional[str]
    final_marks: Optional[float]
    created_at: datetime
    updated_at: datetime
    history: List[WorkflowLogResponse]

    class Config:
        from_attributes = True


class TransitionRequest(BaseModel):
    """A workflow trigger and whichever inputs it needs."""
    trigger: WorkflowTrigger
    faculty_id: Optional[str] = None  # assign
    findings: Optional[str] = None  # submit_findings
    proposed_marks: Optional[float] = None  # submit_findings
    resolution_note: Optional[str] = Field(None, max_length=2000)  # approve / reject
    final_marks: Optional[float] = None  # approve


class GrievanceStats(BaseModel):
    total: int
    open: int
    closed: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]


class SummaryResponse(BaseModel):
    grievance_id: str
    summary: str


# Error response
class ErrorResponse(BaseModel):
    """Response when an action is refused."""
    code: str
    message: str
    details: Dict[str, Any] = {}
