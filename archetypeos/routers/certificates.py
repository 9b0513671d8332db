"""Certificates and notifications for the current user."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.audit.schemas import AuditEventOut
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.users.models import User

router = APIRouter(tags=["Certificates"])


@router.get("/certificates", response_model=List[AuditEventOut])
def list_certificates(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AuditLog(db).certificates_for(current_user.id)


@router.get("/notifications", response_model=List[AuditEventOut])
def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AuditLog(db).notifications_for(current_user.id)
