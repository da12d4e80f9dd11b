"""Request dependencies: the acting account and the AI summarizer."""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from grievance_portal.database import get_db
from grievance_portal.models.domain import Account
from grievance_portal.models.enums import AccountStatus
from grievance_portal.services.summarizer import GrievanceSummarizer


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> Account:
    """
    Resolve the X-Actor-Id header to an Approved account.

    Session mechanics are outside the portal: whatever authenticated the
    caller passes the account id along, and every mutation is stamped with it.
    """
    if not x_actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Actor-Id header required")

    actor = db.get(Account, x_actor_id)
    if actor is None or actor.status != AccountStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown or unapproved account")
    return actor


@lru_cache(maxsize=None)
def get_summarizer() -> GrievanceSummarizer:
    """One summarizer per process, so the AI client and its connection pool are shared."""
    return GrievanceSummarizer()
