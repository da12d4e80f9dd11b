"""Domain models - accounts and the grievances they file, review and resolve."""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Float, Date, DateTime, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship

from grievance_portal.database import Base
from grievance_portal.models.enums import (
    UserRole,
    AccountStatus,
    GrievanceStatus,
    GrievanceType
)


def _new_account_id() -> str:
    return f"u-{uuid.uuid4().hex[:12]}"


class Account(Base):
    """
    A portal user. Created Pending on registration and never deleted.

    Invariants enforced here:
    - Email is unique (case-insensitively, enforced in the registry)
    - Status is always one of Pending / Approved / Rejected
    """
    __tablename__ = "accounts"

    id = Column(String, primary_key=True, default=_new_account_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    credential = Column(String, nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    status = Column(SQLEnum(AccountStatus), nullable=False, default=AccountStatus.PENDING)

    # Student only
    roll_number = Column(String, nullable=True)
    course = Column(String, nullable=True)

    # Faculty only
    department = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Grievance(Base):
    """
    A grievance progresses: Submitted → Assigned → In Review → Pending Approval → Resolved/Rejected.

    Invariants:
    - Student, exam and subject fields are fixed at filing time
    - Workflow fields change only through GrievanceStateMachine
    - status always equals the status of the last history entry
    """
    __tablename__ = "grievances"

    id = Column(String, primary_key=True)  # Short code, e.g. GR-1A2B3C

    # Filed by
    student_id = Column(String, nullable=False, index=True)
    student_name = Column(String, nullable=False)
    student_roll = Column(String, nullable=False)
    course = Column(String, nullable=False)

    # What is being disputed
    exam_session = Column(String, nullable=False)
    exam_date = Column(Date, nullable=False)
    subject_code = Column(String, nullable=False)
    subject_name = Column(String, nullable=False)
    type = Column(SQLEnum(GrievanceType), nullable=False)
    description = Column(Text, nullable=False)
    attachment_url = Column(String, nullable=True)  # Reference only, storage is external

    # Workflow
    status = Column(SQLEnum(GrievanceStatus), nullable=False, default=GrievanceStatus.SUBMITTED)
    assigned_faculty_id = Column(String, nullable=True, index=True)
    assigned_faculty_name = Column(String, nullable=True)
    faculty_findings = Column(Text, nullable=True)
    faculty_proposed_marks = Column(Float, nullable=True)
    final_resolution_note = Column(Text, nullable=True)
    final_marks = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    history = relationship(
        "WorkflowLog",
        back_populates="grievance",
        order_by="WorkflowLog.sequence",
        cascade="save-update, merge",
    )
