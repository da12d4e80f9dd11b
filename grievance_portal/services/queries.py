"""Read-only queries over grievances for the dashboards. No locks, no writes."""
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from grievance_portal.models.domain import Grievance
from grievance_portal.models.enums import GrievanceStatus, GrievanceType, SortOrder, TERMINAL_STATUSES
from grievance_portal.services.errors import ValidationError

ALL_STATUSES = "ALL"


def _parse_status(status: Optional[str]) -> Optional[GrievanceStatus]:
    if status is None or status == "" or status.upper() == ALL_STATUSES:
        return None
    try:
        return GrievanceStatus(status)
    except ValueError:
        raise ValidationError(
            f"Unknown grievance status: {status}",
            details={"status": status, "allowed": [s.value for s in GrievanceStatus]}
        )


def _parse_sort(sort: Optional[str]) -> SortOrder:
    if not sort:
        return SortOrder.NEWEST
    try:
        return SortOrder(sort.lower())
    except ValueError:
        raise ValidationError(
            f"Unknown sort order: {sort}",
            details={"sort": sort, "allowed": [s.value for s in SortOrder]}
        )


class GrievanceQueries:
    """Filtering, searching and counting over the current grievance set."""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None
    ) -> List[Grievance]:
        """
        List grievances the way the admin dashboard does.

        - status: exact status, or "ALL"/None for every status
        - search: case-insensitive substring of student name, subject name or id
        - sort: "newest" (default) or "oldest" by filing time
        """
        status_filter = _parse_status(status)
        order = _parse_sort(sort)

        query = self.db.query(Grievance)
        if status_filter is not None:
            query = query.filter(Grievance.status == status_filter)

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                func.lower(Grievance.student_name).like(pattern),
                func.lower(Grievance.subject_name).like(pattern),
                func.lower(Grievance.id).like(pattern)
            ))

        if order == SortOrder.NEWEST:
            query = query.order_by(Grievance.created_at.desc(), Grievance.id.desc())
        else:
            query = query.order_by(Grievance.created_at.asc(), Grievance.id.asc())
        return query.all()

    def list_for_student(self, student_id: str) -> List[Grievance]:
        """A student's own grievances, newest first."""
        return self.db.query(Grievance).filter(
            Grievance.student_id == student_id
        ).order_by(Grievance.created_at.desc()).all()

    def list_for_faculty(self, faculty_id: str) -> List[Grievance]:
        """Cases assigned to a faculty member, newest first."""
        return self.db.query(Grievance).filter(
            Grievance.assigned_faculty_id == faculty_id
        ).order_by(Grievance.created_at.desc()).all()

    def stats(self) -> Dict[str, object]:
        """
        Dashboard counters.

        open counts everything not yet Resolved or Rejected; closed counts the rest.
        """
        by_status: Dict[str, int] = {s.value: 0 for s in GrievanceStatus}
        for status, count in self.db.query(
            Grievance.status, func.count(Grievance.id)
        ).group_by(Grievance.status).all():
            by_status[status.value] = count

        by_type: Dict[str, int] = {t.value: 0 for t in GrievanceType}
        for grievance_type, count in self.db.query(
            Grievance.type, func.count(Grievance.id)
        ).group_by(Grievance.type).all():
            by_type[grievance_type.value] = count

        total = sum(by_status.values())
        closed = sum(by_status[s.value] for s in TERMINAL_STATUSES)
        return {
            "total": total,
            "open": total - closed,
            "closed": closed,
            "by_status": by_status,
            "by_type": by_type
        }
