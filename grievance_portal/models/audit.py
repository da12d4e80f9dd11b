"""
Workflow audit trail - one entry per grievance transition.

Entries are embedded in their Grievance (``Grievance.history``) and share its
lifetime. There is no separate API for reading or writing them.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, UniqueConstraint, Enum as SQLEnum, event
from sqlalchemy.orm import relationship

from grievance_portal.database import Base
from grievance_portal.models.enums import GrievanceStatus

# Actor recorded for engine-internal transitions
SYSTEM_ACTOR = "System"


class WorkflowLog(Base):
    """
    Immutable record of one status transition.

    Invariants:
    - Once written, never edited or deleted
    - Append-only; sequence gives chronological order within a grievance
    """
    __tablename__ = "workflow_logs"
    __table_args__ = (
        UniqueConstraint("grievance_id", "sequence", name="uq_workflow_log_sequence"),
    )

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex[:9])
    grievance_id = Column(String, ForeignKey("grievances.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(SQLEnum(GrievanceStatus), nullable=False)  # Resulting status
    updated_by = Column(String, nullable=False)  # Actor display name
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
    note = Column(Text, nullable=True)

    grievance = relationship("Grievance", back_populates="history")


@event.listens_for(WorkflowLog, "before_update")
def _refuse_log_update(mapper, connection, target):
    raise ValueError(
        f"IMMUTABILITY VIOLATION: workflow log {target.id} cannot be modified once appended"
    )


@event.listens_for(WorkflowLog, "before_delete")
def _refuse_log_delete(mapper, connection, target):
    raise ValueError(
        f"IMMUTABILITY VIOLATION: workflow log {target.id} cannot be deleted"
    )
