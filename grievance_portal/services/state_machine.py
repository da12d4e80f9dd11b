"""
State machine that enforces the grievance workflow.

This is the core enforcement mechanism - every status change MUST go through here.
"""
import secrets
import threading
import weakref
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from grievance_portal import config
from grievance_portal.logging_config import get_logger
from grievance_portal.models.audit import WorkflowLog
from grievance_portal.models.domain import Account, Grievance
from grievance_portal.models.enums import (
    AccountStatus,
    GrievanceStatus,
    GrievanceType,
    UserRole,
    WorkflowTrigger
)
from grievance_portal.services.errors import (
    IllegalTransition,
    InvalidAssignee,
    NotFound,
    PermissionDenied,
    SubmissionsClosed,
    ValidationError
)

log = get_logger("GrievanceStateMachine")

SUBMITTED_NOTE = "Grievance submitted successfully"
FINDINGS_NOTE = "Review completed, submitted for approval."

# trigger -> (required current status, resulting status, acting role)
TRANSITIONS: Dict[WorkflowTrigger, tuple] = {
    WorkflowTrigger.ASSIGN: (GrievanceStatus.SUBMITTED, GrievanceStatus.ASSIGNED, UserRole.ADMIN),
    WorkflowTrigger.START_REVIEW: (GrievanceStatus.ASSIGNED, GrievanceStatus.IN_REVIEW, UserRole.FACULTY),
    WorkflowTrigger.SUBMIT_FINDINGS: (GrievanceStatus.IN_REVIEW, GrievanceStatus.PENDING_APPROVAL, UserRole.FACULTY),
    WorkflowTrigger.APPROVE: (GrievanceStatus.PENDING_APPROVAL, GrievanceStatus.RESOLVED, UserRole.ADMIN),
    WorkflowTrigger.REJECT: (GrievanceStatus.PENDING_APPROVAL, GrievanceStatus.REJECTED, UserRole.ADMIN),
}

_registry_lock = threading.Lock()
# Entries vanish once no transition holds the lock
_record_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


@contextmanager
def record_lock(grievance_id: str) -> Iterator[None]:
    """Serialize transitions on one grievance. Other grievances are not blocked."""
    with _registry_lock:
        lock = _record_locks.get(grievance_id)
        if lock is None:
            lock = threading.Lock()
            _record_locks[grievance_id] = lock
    with lock:
        yield


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class GrievanceStateMachine:
    """Enforces state transition invariants and business rules."""

    def __init__(self, db: Session, submissions_enabled: Optional[bool] = None):
        self.db = db
        self.submissions_enabled = (
            config.SUBMISSIONS_ENABLED if submissions_enabled is None else submissions_enabled
        )

    def get(self, grievance_id: str) -> Grievance:
        grievance = self.db.get(Grievance, grievance_id)
        if grievance is None:
            raise NotFound(f"Grievance {grievance_id} not found", details={"grievance_id": grievance_id})
        return grievance

    def allowed_triggers(self, grievance: Grievance) -> List[WorkflowTrigger]:
        """Triggers legal from the grievance's current status (empty once terminal)."""
        return [
            trigger for trigger, (source, _, _) in TRANSITIONS.items()
            if source == grievance.status
        ]

    def file_grievance(
        self,
        actor: Account,
        exam_session: str,
        exam_date: date,
        subject_code: str,
        subject_name: str,
        grievance_type: GrievanceType,
        description: str,
        attachment_url: Optional[str] = None
    ) -> Grievance:
        """
        File a new grievance in Submitted state.

        Invariants:
        - Only an Approved Student can file
        - The first history entry is written together with the record
        """
        if not self.submissions_enabled:
            raise SubmissionsClosed("New grievance submissions are currently closed")

        if actor.role != UserRole.STUDENT or actor.status != AccountStatus.APPROVED:
            raise PermissionDenied(
                "Only an approved Student can file a grievance",
                details={"actor_id": actor.id}
            )

        missing = [
            field for field, value in (
                ("exam_session", exam_session),
                ("subject_code", subject_code),
                ("subject_name", subject_name),
                ("description", description),
            )
            if _blank(value)
        ]
        if missing or exam_date is None:
            if exam_date is None:
                missing.append("exam_date")
            raise ValidationError(
                f"Required fields are empty: {', '.join(missing)}",
                details={"fields": missing}
            )

        now = datetime.utcnow()
        grievance = Grievance(
            id=self._new_grievance_id(),
            student_id=actor.id,
            student_name=actor.name,
            student_roll=actor.roll_number or "N/A",
            course=actor.course or "N/A",
            exam_session=exam_session.strip(),
            exam_date=exam_date,
            subject_code=subject_code.strip(),
            subject_name=subject_name.strip(),
            type=grievance_type,
            description=description.strip(),
            attachment_url=attachment_url or None,
            status=GrievanceStatus.SUBMITTED,
            created_at=now,
            updated_at=now
        )
        grievance.history.append(WorkflowLog(
            sequence=1,
            status=GrievanceStatus.SUBMITTED,
            updated_by=actor.name,
            timestamp=now,
            note=SUBMITTED_NOTE
        ))
        self.db.add(grievance)
        self.db.commit()
        self.db.refresh(grievance)

        log.info(
            "grievance_filed",
            grievance_id=grievance.id,
            student_id=actor.id,
            type=grievance_type.value
        )
        return grievance

    def assign_reviewer(self, grievance: Grievance, actor: Account, faculty_id: str) -> Grievance:
        """
        Submitted → Assigned.

        The target must be an Approved Faculty account.
        """
        with record_lock(grievance.id):
            self._check(grievance, WorkflowTrigger.ASSIGN, actor)

            faculty = self.db.get(Account, faculty_id) if faculty_id else None
            if (
                faculty is None
                or faculty.role != UserRole.FACULTY
                or faculty.status != AccountStatus.APPROVED
            ):
                log.warning(
                    "transition_refused",
                    grievance_id=grievance.id,
                    trigger=WorkflowTrigger.ASSIGN.value,
                    reason="invalid_assignee",
                    faculty_id=faculty_id
                )
                raise InvalidAssignee(
                    f"{faculty_id} is not an approved Faculty account",
                    details={"grievance_id": grievance.id, "faculty_id": faculty_id}
                )

            return self._apply(
                grievance,
                actor,
                GrievanceStatus.ASSIGNED,
                note=f"Assigned to {faculty.name}",
                assigned_faculty_id=faculty.id,
                assigned_faculty_name=faculty.name
            )

    def start_review(self, grievance: Grievance, actor: Account) -> Grievance:
        """Assigned → In Review. Only the assigned faculty member can start."""
        with record_lock(grievance.id):
            self._check(grievance, WorkflowTrigger.START_REVIEW, actor)
            return self._apply(
                grievance,
                actor,
                GrievanceStatus.IN_REVIEW,
                note=f"Status updated to {GrievanceStatus.IN_REVIEW.value}"
            )

    def submit_findings(
        self,
        grievance: Grievance,
        actor: Account,
        findings: str,
        proposed_marks: Optional[float] = None
    ) -> Grievance:
        """In Review → Pending Approval. Findings text is required."""
        with record_lock(grievance.id):
            self._check(grievance, WorkflowTrigger.SUBMIT_FINDINGS, actor)

            if _blank(findings):
                raise ValidationError(
                    "Findings are required to submit a review",
                    details={"grievance_id": grievance.id, "fields": ["findings"]}
                )
            self._check_marks(grievance, "proposed_marks", proposed_marks)

            return self._apply(
                grievance,
                actor,
                GrievanceStatus.PENDING_APPROVAL,
                note=FINDINGS_NOTE,
                faculty_findings=findings.strip(),
                faculty_proposed_marks=proposed_marks
            )

    def approve(
        self,
        grievance: Grievance,
        actor: Account,
        resolution_note: str,
        final_marks: Optional[float]
    ) -> Grievance:
        """
        Pending Approval → Resolved.

        An empty resolution note is refused and nothing is logged.
        """
        with record_lock(grievance.id):
            self._check(grievance, WorkflowTrigger.APPROVE, actor)

            if _blank(resolution_note):
                raise ValidationError(
                    "A resolution note is required to approve",
                    details={"grievance_id": grievance.id, "fields": ["resolution_note"]}
                )
            if final_marks is None:
                raise ValidationError(
                    "Final marks are required to approve",
                    details={"grievance_id": grievance.id, "fields": ["final_marks"]}
                )
            self._check_marks(grievance, "final_marks", final_marks)

            note = resolution_note.strip()
            return self._apply(
                grievance,
                actor,
                GrievanceStatus.RESOLVED,
                note=note,
                final_resolution_note=note,
                final_marks=final_marks
            )

    def reject(self, grievance: Grievance, actor: Account, resolution_note: Optional[str] = None) -> Grievance:
        """Pending Approval → Rejected. The note is optional."""
        with record_lock(grievance.id):
            self._check(grievance, WorkflowTrigger.REJECT, actor)

            note = None if _blank(resolution_note) else resolution_note.strip()
            return self._apply(
                grievance,
                actor,
                GrievanceStatus.REJECTED,
                note=note or f"Status updated to {GrievanceStatus.REJECTED.value}",
                final_resolution_note=note
            )

    def transition(self, grievance: Grievance, trigger: WorkflowTrigger, actor: Account, **inputs) -> Grievance:
        """Dispatch a trigger with its inputs to the matching transition."""
        if trigger == WorkflowTrigger.ASSIGN:
            return self.assign_reviewer(grievance, actor, inputs.get("faculty_id"))
        if trigger == WorkflowTrigger.START_REVIEW:
            return self.start_review(grievance, actor)
        if trigger == WorkflowTrigger.SUBMIT_FINDINGS:
            return self.submit_findings(
                grievance, actor, inputs.get("findings"), inputs.get("proposed_marks")
            )
        if trigger == WorkflowTrigger.APPROVE:
            return self.approve(
                grievance, actor, inputs.get("resolution_note"), inputs.get("final_marks")
            )
        if trigger == WorkflowTrigger.REJECT:
            return self.reject(grievance, actor, inputs.get("resolution_note"))
        raise ValidationError(f"Unknown trigger: {trigger}", details={"trigger": str(trigger)})

    def _check(self, grievance: Grievance, trigger: WorkflowTrigger, actor: Account) -> None:
        """
        Refuse the trigger unless the current status and the actor allow it.

        Reloads the record first so the check sees the latest committed status.
        """
        self.db.refresh(grievance)
        source, target, role = TRANSITIONS[trigger]

        if grievance.status != source:
            log.warning(
                "transition_refused",
                grievance_id=grievance.id,
                trigger=trigger.value,
                status=grievance.status.value,
                reason="illegal_transition"
            )
            raise IllegalTransition(
                f"Cannot {trigger.value.replace('_', ' ')} a grievance in status "
                f"{grievance.status.value}",
                details={
                    "grievance_id": grievance.id,
                    "trigger": trigger.value,
                    "status": grievance.status.value,
                    "allowed": [t.value for t in self.allowed_triggers(grievance)]
                }
            )

        if actor.role != role or actor.status != AccountStatus.APPROVED:
            raise PermissionDenied(
                f"Only an approved {role.value} can move a grievance to {target.value}",
                details={"grievance_id": grievance.id, "actor_id": actor.id}
            )

        if role == UserRole.FACULTY and grievance.assigned_faculty_id != actor.id:
            raise PermissionDenied(
                "Only the assigned faculty member can review this grievance",
                details={"grievance_id": grievance.id, "actor_id": actor.id}
            )

    def _check_marks(self, grievance: Grievance, field: str, marks: Optional[float]) -> None:
        if marks is not None and marks < 0:
            raise ValidationError(
                f"{field} cannot be negative",
                details={"grievance_id": grievance.id, "fields": [field]}
            )

    def _apply(self, grievance: Grievance, actor: Account, new_status: GrievanceStatus, note: Optional[str], **fields) -> Grievance:
        """
        Write the field updates, the new status and one log entry in a single commit.

        Rolls back on any failure so no partial transition is ever visible.
        """
        now = datetime.utcnow()
        previous = grievance.status
        sequence = len(grievance.history) + 1
        try:
            for name, value in fields.items():
                setattr(grievance, name, value)
            grievance.status = new_status
            grievance.updated_at = now
            grievance.history.append(WorkflowLog(
                sequence=sequence,
                status=new_status,
                updated_by=actor.name,
                timestamp=now,
                note=note
            ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(grievance)
        log.info(
            "grievance_transitioned",
            grievance_id=grievance.id,
            previous=previous.value,
            status=new_status.value,
            actor_id=actor.id
        )
        return grievance

    def _new_grievance_id(self) -> str:
        while True:
            grievance_id = f"GR-{secrets.token_hex(3).upper()}"
            if self.db.get(Grievance, grievance_id) is None:
                return grievance_id
