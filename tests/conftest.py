"""Pytest configuration and shared fixtures."""
from datetime import date

import pytest
from sqlalchemy.orm import sessionmaker

from grievance_portal.database import Base, build_engine
# Import models to register them with SQLAlchemy Base
from grievance_portal.models.domain import Account, Grievance
from grievance_portal.models.audit import WorkflowLog
from grievance_portal.models.enums import AccountStatus, GrievanceType, UserRole
from grievance_portal.services.accounts import AccountRegistry
from grievance_portal.services.state_machine import GrievanceStateMachine


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    # Static pool so TestClient worker threads see the same database
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def registry(db_session):
    return AccountRegistry(db_session)


@pytest.fixture
def sm(db_session):
    return GrievanceStateMachine(db_session, submissions_enabled=True)


@pytest.fixture
def admin(registry):
    """An Approved admin, seeded the way the app does at startup."""
    return registry.seed_admin("Exam Cell Admin", "admin@univ.edu", "admin-pass")


@pytest.fixture
def student(registry, admin):
    """An Approved student."""
    account = registry.register(
        name="Asha Rao",
        email="asha.rao@univ.edu",
        credential="student-pass",
        role=UserRole.STUDENT,
        roll_number="CS21-042",
        course="B.Tech CSE"
    )
    return registry.set_account_status(admin, account.id, AccountStatus.APPROVED)


@pytest.fixture
def faculty(registry, admin):
    """An Approved faculty member named Smith."""
    account = registry.register(
        name="Smith",
        email="smith@univ.edu",
        credential="faculty-pass",
        role=UserRole.FACULTY,
        department="Computer Science"
    )
    return registry.set_account_status(admin, account.id, AccountStatus.APPROVED)


@pytest.fixture
def submitted_grievance(sm, student):
    """A Revaluation grievance against Data Structures, in Submitted state."""
    return sm.file_grievance(
        student,
        exam_session="Spring 2024",
        exam_date=date(2024, 5, 14),
        subject_code="CS201",
        subject_name="Data Structures",
        grievance_type=GrievanceType.REVALUATION,
        description="Question 4 appears to have been marked against the wrong answer key."
    )


@pytest.fixture
def pending_approval_grievance(sm, submitted_grievance, admin, faculty):
    """The same grievance, reviewed and waiting for the admin's decision."""
    sm.assign_reviewer(submitted_grievance, admin, faculty.id)
    sm.start_review(submitted_grievance, faculty)
    return sm.submit_findings(submitted_grievance, faculty, "Answer key error on Q4", proposed_marks=78)
