"""
Account registry - who may use the portal and whether they have been let in.

Accounts are created Pending and only an Admin moves them on.
"""
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from grievance_portal.logging_config import get_logger
from grievance_portal.models.domain import Account
from grievance_portal.models.enums import UserRole, AccountStatus
from grievance_portal.services.errors import (
    NotFound,
    DuplicateEmail,
    InvalidCredential,
    AccountPending,
    AccountRejected,
    ValidationError,
    PermissionDenied
)

log = get_logger("AccountRegistry")


class AccountRegistry:
    """Registers, authenticates and approves accounts."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: str) -> Account:
        account = self.db.get(Account, account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found", details={"account_id": account_id})
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        """Case-insensitive email lookup."""
        return self.db.query(Account).filter(
            func.lower(Account.email) == email.strip().lower()
        ).first()

    def register(
        self,
        name: str,
        email: str,
        credential: str,
        role: UserRole,
        roll_number: Optional[str] = None,
        course: Optional[str] = None,
        department: Optional[str] = None
    ) -> Account:
        """
        Create a Pending account.

        Role-specific fields are kept only for the role they belong to:
        roll number and course for students, department for faculty.
        """
        missing = [
            field for field, value in (("name", name), ("email", email), ("credential", credential))
            if not value or not value.strip()
        ]
        if missing:
            raise ValidationError(
                f"Required fields are empty: {', '.join(missing)}",
                details={"fields": missing}
            )

        if self.find_by_email(email) is not None:
            log.warning("registration_refused_duplicate_email", email=email)
            raise DuplicateEmail(
                f"An account with email {email} already exists",
                details={"email": email}
            )

        account = Account(
            name=name.strip(),
            email=email.strip(),
            credential=credential,
            role=role,
            status=AccountStatus.PENDING,
            roll_number=roll_number if role == UserRole.STUDENT else None,
            course=course if role == UserRole.STUDENT else None,
            department=department if role == UserRole.FACULTY else None
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)

        log.info("account_registered", account_id=account.id, role=role.value)
        return account

    def authenticate(self, email: str, credential: str) -> Account:
        """
        Resolve credentials to an account that may log in.

        Checks run in a fixed order so each failure has one stable kind:
        unknown email, wrong secret, still pending, rejected.
        """
        account = self.find_by_email(email)
        if account is None:
            raise NotFound("User not found.", details={"email": email})

        if account.credential != credential:
            log.warning("login_failed", account_id=account.id, reason="invalid_credential")
            raise InvalidCredential("Invalid password.", details={"account_id": account.id})

        if account.status == AccountStatus.PENDING:
            raise AccountPending("Account pending approval by Admin.", details={"account_id": account.id})

        if account.status == AccountStatus.REJECTED:
            raise AccountRejected("Account has been rejected.", details={"account_id": account.id})

        log.info("login_succeeded", account_id=account.id, role=account.role.value)
        return account

    def set_account_status(self, actor: Account, account_id: str, new_status: AccountStatus) -> Account:
        """
        Set an account's status. Admin only.

        Deliberately unrestricted: any status may follow any other, including
        Approved → Pending, so an admin can undo an approval.
        """
        if actor.role != UserRole.ADMIN:
            raise PermissionDenied(
                "Only an Admin can change account status",
                details={"actor_id": actor.id}
            )

        account = self.get(account_id)
        previous = account.status
        account.status = new_status
        self.db.commit()
        self.db.refresh(account)

        log.info(
            "account_status_changed",
            account_id=account.id,
            previous=previous.value,
            status=new_status.value,
            actor_id=actor.id
        )
        return account

    def list_pending(self) -> List[Account]:
        """Accounts waiting for an admin decision, oldest first."""
        return self.db.query(Account).filter(
            Account.status == AccountStatus.PENDING
        ).order_by(Account.created_at.asc()).all()

    def list_approved_faculty(self) -> List[Account]:
        """Faculty who can be assigned as reviewers."""
        return self.db.query(Account).filter(
            Account.role == UserRole.FACULTY,
            Account.status == AccountStatus.APPROVED
        ).order_by(Account.name.asc()).all()

    def seed_admin(self, name: str, email: str, credential: str) -> Account:
        """Create an Approved admin at startup. Returns the existing account if the email is taken."""
        existing = self.find_by_email(email)
        if existing is not None:
            return existing

        account = Account(
            name=name,
            email=email.strip(),
            credential=credential,
            role=UserRole.ADMIN,
            status=AccountStatus.APPROVED
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)

        log.info("admin_seeded", account_id=account.id)
        return account
