"""Tests for the dashboard queries: filter, search, sort and counters."""
from datetime import date, datetime, timedelta

import pytest

from grievance_portal.models.enums import GrievanceStatus, GrievanceType
from grievance_portal.services.errors import ValidationError
from grievance_portal.services.queries import GrievanceQueries


@pytest.fixture
def queries(db_session):
    return GrievanceQueries(db_session)


@pytest.fixture
def three_grievances(db_session, sm, student, admin, faculty):
    """Data Structures (oldest, assigned), Linear Algebra, Operating Systems (newest)."""
    filed = []
    for code, name, grievance_type in (
        ("CS201", "Data Structures", GrievanceType.REVALUATION),
        ("MA102", "Linear Algebra", GrievanceType.RECOUNTING),
        ("CS301", "Operating Systems", GrievanceType.REVALUATION),
    ):
        filed.append(sm.file_grievance(
            student,
            exam_session="Spring 2024",
            exam_date=date(2024, 5, 14),
            subject_code=code,
            subject_name=name,
            grievance_type=grievance_type,
            description=f"Please re-check my {name} paper."
        ))

    # Spread filing times so ordering is unambiguous
    base = datetime(2024, 6, 1, 9, 0, 0)
    for offset, grievance in enumerate(filed):
        grievance.created_at = base + timedelta(days=offset)
    db_session.commit()

    sm.assign_reviewer(filed[0], admin, faculty.id)
    return filed


class TestListing:

    def test_default_is_newest_first(self, queries, three_grievances):
        names = [g.subject_name for g in queries.list()]
        assert names == ["Operating Systems", "Linear Algebra", "Data Structures"]

    def test_oldest_first(self, queries, three_grievances):
        names = [g.subject_name for g in queries.list(sort="oldest")]
        assert names == ["Data Structures", "Linear Algebra", "Operating Systems"]

    def test_unknown_sort_is_refused(self, queries, three_grievances):
        with pytest.raises(ValidationError):
            queries.list(sort="sideways")

    def test_status_filter(self, queries, three_grievances):
        assigned = queries.list(status="Assigned")
        assert [g.id for g in assigned] == [three_grievances[0].id]

        assert len(queries.list(status="ALL")) == 3
        assert len(queries.list(status="Submitted")) == 2

    def test_unknown_status_is_refused(self, queries, three_grievances):
        with pytest.raises(ValidationError):
            queries.list(status="Lost")

    def test_search_matches_subject_case_insensitively(self, queries, three_grievances):
        results = queries.list(search="linear")
        assert [g.subject_name for g in results] == ["Linear Algebra"]

    def test_search_matches_student_name(self, queries, three_grievances):
        assert len(queries.list(search="asha")) == 3

    def test_search_matches_id(self, queries, three_grievances):
        target = three_grievances[2]
        results = queries.list(search=target.id.lower())
        assert [g.id for g in results] == [target.id]

    def test_search_and_status_combine(self, queries, three_grievances):
        assert queries.list(status="Assigned", search="linear") == []

    def test_lists_per_student_and_faculty(self, queries, three_grievances, student, faculty):
        assert len(queries.list_for_student(student.id)) == 3
        assert [g.id for g in queries.list_for_faculty(faculty.id)] == [three_grievances[0].id]


class TestStats:

    def test_counts(self, queries, three_grievances):
        stats = queries.stats()

        assert stats["total"] == 3
        assert stats["open"] == 3
        assert stats["closed"] == 0
        assert stats["by_status"]["Submitted"] == 2
        assert stats["by_status"]["Assigned"] == 1
        assert stats["by_status"]["Resolved"] == 0
        assert stats["by_type"]["Revaluation"] == 2
        assert stats["by_type"]["Recounting"] == 1
        assert stats["by_type"]["Other"] == 0

    def test_closed_counts_resolved_and_rejected(self, queries, sm, pending_approval_grievance, admin):
        sm.reject(pending_approval_grievance, admin)
        stats = queries.stats()

        assert stats["total"] == 1
        assert stats["closed"] == 1
        assert stats["open"] == 0
        assert stats["by_status"][GrievanceStatus.REJECTED.value] == 1

    def test_empty_portal(self, queries):
        stats = queries.stats()
        assert stats["total"] == 0
        assert set(stats["by_status"]) == {s.value for s in GrievanceStatus}
