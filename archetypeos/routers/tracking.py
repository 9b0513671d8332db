"""Learning sessions and the weekly tracker for the current user."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.tracking.schemas import LearningSessionOut, SessionStart, WeeklyStats
from archetypeos.modules.tracking.service import TrackingService
from archetypeos.modules.users.models import User

router = APIRouter(tags=["Tracking"])


@router.post(
    "/learning-sessions",
    response_model=LearningSessionOut,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    payload: SessionStart,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).start_session(current_user, payload.course_id)


@router.patch("/learning-sessions/{session_id}/end", response_model=LearningSessionOut)
def end_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).end_session(current_user, session_id)


@router.get("/learning-sessions", response_model=List[LearningSessionOut])
def list_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).list_sessions(current_user)


@router.get("/sessions/weekly", response_model=WeeklyStats)
def weekly_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Minutes per day for the current week (Sunday start), total and goal."""
    return TrackingService(db).weekly_stats(current_user)
