"""Admin router: user administration, candidate decisions and test definitions.

Candidate decisions are also open to a candidate's own supervisor.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.assessments.schemas import TestAdminOut, TestCreate
from archetypeos.modules.assessments.service import AssessmentService
from archetypeos.modules.users.models import User
from archetypeos.modules.users.schemas import (
    CandidateDecisionOut,
    CandidateDecisionRequest,
    UserAdminUpdate,
    UserOut,
)
from archetypeos.modules.users.service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.patch("/candidates/{user_id}/decision", response_model=CandidateDecisionOut)
def decide_candidate(
    user_id: int,
    payload: CandidateDecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """
    Accept or reject a candidate.

    - **accept**: promotes the candidate to learner once they have passed a test.
    - **reject**: records the decision; the role stays candidate.
    """
    candidate = UserService(db).decide_candidate(current_user, user_id, payload.decision)
    return CandidateDecisionOut(decision=payload.decision, role=candidate.role)


@router.get("/users", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return UserService(db).list_users(current_user)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserAdminUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Change a user's role, archetype or supervisor."""
    return UserService(db).update_user(current_user, user_id, payload)


@router.get("/tests", response_model=List[TestAdminOut])
def list_tests(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AssessmentService(db).list_all(current_user)


@router.post("/tests", response_model=TestAdminOut, status_code=status.HTTP_201_CREATED)
def create_test(
    payload: TestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AssessmentService(db).create_test(current_user, payload)
