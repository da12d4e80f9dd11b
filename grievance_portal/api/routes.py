"""API routes for accounts and the grievance workflow."""
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from grievance_portal.api.deps import get_actor, get_summarizer
from grievance_portal.api.schemas import (
    AccountCreate,
    AccountResponse,
    AccountStatusUpdate,
    SessionCreate,
    GrievanceCreate,
    GrievanceResponse,
    GrievanceStats,
    TransitionRequest,
    SummaryResponse,
    ErrorResponse
)
from grievance_portal.database import get_db
from grievance_portal.models.domain import Account, Grievance
from grievance_portal.models.enums import UserRole
from grievance_portal.services import errors
from grievance_portal.services.accounts import AccountRegistry
from grievance_portal.services.queries import GrievanceQueries
from grievance_portal.services.state_machine import GrievanceStateMachine
from grievance_portal.services.summarizer import GrievanceSummarizer

router = APIRouter()

STATUS_BY_ERROR = {
    errors.NotFound: status.HTTP_404_NOT_FOUND,
    errors.DuplicateEmail: status.HTTP_409_CONFLICT,
    errors.InvalidCredential: status.HTTP_401_UNAUTHORIZED,
    errors.AccountPending: status.HTTP_403_FORBIDDEN,
    errors.AccountRejected: status.HTTP_403_FORBIDDEN,
    errors.IllegalTransition: status.HTTP_409_CONFLICT,
    errors.InvalidAssignee: 422,
    errors.ValidationError: 422,
    errors.PermissionDenied: status.HTTP_403_FORBIDDEN,
    errors.SubmissionsClosed: status.HTTP_403_FORBIDDEN,
}

REFUSALS = {
    code: {"model": ErrorResponse}
    for code in (400, 401, 403, 404, 409, 422)
}


async def portal_error_handler(request: Request, exc: errors.PortalError) -> JSONResponse:
    """Turn any PortalError into its HTTP status with a {code, message, details} body."""
    return JSONResponse(
        status_code=STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST),
        content=exc.to_dict()
    )


def _require_role(actor: Account, *roles: UserRole) -> None:
    if actor.role not in roles:
        raise errors.PermissionDenied(
            f"This action requires role: {', '.join(r.value for r in roles)}",
            details={"actor_id": actor.id}
        )


def _require_visible(grievance: Grievance, actor: Account) -> None:
    """Admins see everything, students their own cases, faculty their assigned cases."""
    if actor.role == UserRole.ADMIN:
        return
    if actor.role == UserRole.STUDENT and grievance.student_id == actor.id:
        return
    if actor.role == UserRole.FACULTY and grievance.assigned_faculty_id == actor.id:
        return
    raise errors.PermissionDenied(
        "You cannot view this grievance",
        details={"grievance_id": grievance.id, "actor_id": actor.id}
    )


# Account endpoints
@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED, responses=REFUSALS)
def register_account(account_data: AccountCreate, db: Session = Depends(get_db)):
    """Register a new account. It stays Pending until an Admin approves it."""
    return AccountRegistry(db).register(
        name=account_data.name,
        email=account_data.email,
        credential=account_data.credential,
        role=account_data.role,
        roll_number=account_data.roll_number,
        course=account_data.course,
        department=account_data.department
    )


@router.post("/sessions", response_model=AccountResponse, responses=REFUSALS)
def create_session(session_data: SessionCreate, db: Session = Depends(get_db)):
    """
    Log in.

    WILL REFUSE if the email is unknown, the credential is wrong,
    or the account is Pending or Rejected.
    """
    return AccountRegistry(db).authenticate(session_data.email, session_data.credential)


@router.get("/accounts/pending", response_model=List[AccountResponse], responses=REFUSALS)
def list_pending_accounts(actor: Account = Depends(get_actor), db: Session = Depends(get_db)):
    """Accounts awaiting approval."""
    _require_role(actor, UserRole.ADMIN)
    return AccountRegistry(db).list_pending()


@router.get("/accounts/faculty", response_model=List[AccountResponse], responses=REFUSALS)
def list_faculty(actor: Account = Depends(get_actor), db: Session = Depends(get_db)):
    """Approved faculty, i.e. everyone a grievance can be assigned to."""
    _require_role(actor, UserRole.ADMIN)
    return AccountRegistry(db).list_approved_faculty()


@router.patch("/accounts/{account_id}/status", response_model=AccountResponse, responses=REFUSALS)
def set_account_status(
    account_id: str,
    status_data: AccountStatusUpdate,
    actor: Account = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Approve, reject or otherwise change an account's status. Admin only."""
    return AccountRegistry(db).set_account_status(actor, account_id, status_data.status)


# Grievance endpoints
@router.post("/grievances", response_model=GrievanceResponse, status_code=status.HTTP_201_CREATED, responses=REFUSALS)
def file_grievance(
    grievance_data: GrievanceCreate,
    actor: Account = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """File a grievance. It starts in Submitted with one history entry."""
    return GrievanceStateMachine(db).file_grievance(
        actor,
        exam_session=grievance_data.exam_session,
        exam_date=grievance_data.exam_date,
        subject_code=grievance_data.subject_code,
        subject_name=grievance_data.subject_name,
        grievance_type=grievance_data.type,
        description=grievance_data.description,
        attachment_url=grievance_data.attachment_url
    )


@router.get("/grievances", response_model=List[GrievanceResponse], responses=REFUSALS)
def list_grievances(
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    actor: Account = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    List grievances visible to the caller.

    Admins get the filterable, searchable list; students get their own
    cases and faculty their assigned ones.
    """
    queries = GrievanceQueries(db)
    if actor.role == UserRole.STUDENT:
        return queries.list_for_student(actor.id)
    if actor.role == UserRole.FACULTY:
        return queries.list_for_faculty(actor.id)
    return queries.list(status=status, search=search, sort=sort)


@router.get("/grievances/stats", response_model=GrievanceStats, responses=REFUSALS)
def grievance_stats(actor: Account = Depends(get_actor), db: Session = Depends(get_db)):
    """Totals for the admin dashboard."""
    _require_role(actor, UserRole.ADMIN)
    return GrievanceQueries(db).stats()


@router.get("/grievances/{grievance_id}", response_model=GrievanceResponse, responses=REFUSALS)
def get_grievance(grievance_id: str, actor: Account = Depends(get_actor), db: Session = Depends(get_db)):
    """Get one grievance with its full history."""
    grievance = GrievanceStateMachine(db).get(grievance_id)
    _require_visible(grievance, actor)
    return grievance


@router.patch("/grievances/{grievance_id}/transition", response_model=GrievanceResponse, responses=REFUSALS)
def transition_grievance(
    grievance_id: str,
    transition_data: TransitionRequest,
    actor: Account = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Move a grievance along the workflow.

    WILL REFUSE if the trigger is not legal from the current status,
    the caller's role does not own the step, or a required input is missing.
    """
    sm = GrievanceStateMachine(db)
    grievance = sm.get(grievance_id)
    _require_visible(grievance, actor)
    return sm.transition(
        grievance,
        transition_data.trigger,
        actor,
        faculty_id=transition_data.faculty_id,
        findings=transition_data.findings,
        proposed_marks=transition_data.proposed_marks,
        resolution_note=transition_data.resolution_note,
        final_marks=transition_data.final_marks
    )


def _summary_source(
    grievance_id: str,
    actor: Account = Depends(get_actor),
    db: Session = Depends(get_db)
) -> Tuple[str, str]:
    """Load the description and subject in the threadpool, off the event loop."""
    _require_role(actor, UserRole.ADMIN)
    grievance = GrievanceStateMachine(db).get(grievance_id)
    return grievance.description, grievance.subject_name


@router.get("/grievances/{grievance_id}/summary", response_model=SummaryResponse, responses=REFUSALS)
async def summarize_grievance(
    grievance_id: str,
    source: Tuple[str, str] = Depends(_summary_source),
    summarizer: GrievanceSummarizer = Depends(get_summarizer)
):
    """AI synopsis of the grievance for the admin. Falls back to a message on any failure."""
    description, subject = source
    summary = await summarizer.summarize(description, subject)
    return SummaryResponse(grievance_id=grievance_id, summary=summary)
