from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.policy import EmailAllowListPolicy, Principal
from app.repository import SqlBookingRepository
from app.settings import Settings, get_settings
from app.workflow import BookingWorkflow


def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Principal:
    """Identity asserted by the upstream identity provider."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity.")
    email = x_user_email or ""
    display_name = x_user_name or (email.split("@")[0] if email else "User")
    return Principal(id=x_user_id, email=email, display_name=display_name)


def get_admin_policy(settings: Settings = Depends(get_settings)) -> EmailAllowListPolicy:
    return EmailAllowListPolicy(settings.admin_email_list)


def get_repository(db: Session = Depends(get_db)) -> SqlBookingRepository:
    return SqlBookingRepository(db)


def get_workflow(
    repository: SqlBookingRepository = Depends(get_repository),
    policy: EmailAllowListPolicy = Depends(get_admin_policy),
    settings: Settings = Depends(get_settings),
) -> BookingWorkflow:
    return BookingWorkflow(
        repository,
        admin_policy=policy,
        revalidate_on_approve=settings.revalidate_on_approve,
        reason_max_length=settings.decision_reason_max_length,
    )
