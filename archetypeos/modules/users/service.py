"""High-level business services for the users domain."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.exceptions import (
    CandidateNotEligibleException,
    PermissionDeniedException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)
from archetypeos.modules.assessments.models import TestResult
from archetypeos.modules.assessments.status import AttemptStatus
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.users.models import User, UserRole
from archetypeos.modules.users.schemas import UserAdminUpdate, UserCreate

logger = logging.getLogger(__name__)


class UserService:
    """Role, archetype and supervisor management plus candidate promotion."""

    def __init__(self, db: Session):
        self.db = db

    # ----- Creation & lookup -----
    def create_user(self, payload: UserCreate) -> User:
        existing = self.db.query(User).filter(User.email == payload.email).first()
        if existing:
            raise ResourceAlreadyExistsException("User", field="email")
        if payload.supervisor_id is not None:
            self._validate_supervisor(payload.supervisor_id)

        user = User(**payload.model_dump())
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_user_or_404(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundException("User", user_id)
        return user

    def get_user(self, actor: User, user_id: int) -> User:
        user = self.get_user_or_404(user_id)
        require(actor, Operation.READ_DATA, AccessTarget(user=user))
        return user

    def list_users(self, actor: User) -> List[User]:
        require(actor, Operation.MANAGE_USERS)
        return self.db.query(User).order_by(User.id).all()

    def learners_in_scope(self, actor: User) -> List[User]:
        """Candidates and learners the actor oversees; admins see all of them."""
        role = UserRole.parse(actor.role)
        if not role.has_oversight:
            raise PermissionDeniedException("Supervisor access required")
        query = self.db.query(User).filter(
            User.role.in_([UserRole.CANDIDATE, UserRole.LEARNER])
        )
        if role is UserRole.SUPERVISOR:
            query = query.filter(User.supervisor_id == actor.id)
        return query.order_by(User.id).all()

    # ----- Role management -----
    def has_passed_attempt(self, user_id: int) -> bool:
        return (
            self.db.query(TestResult.id)
            .filter(
                TestResult.user_id == user_id,
                TestResult.status == AttemptStatus.PASSED,
            )
            .first()
            is not None
        )

    def set_role(self, actor: User, user_id: int, new_role: UserRole | str) -> User:
        require(actor, Operation.SET_ROLE)
        user = self.get_user_or_404(user_id)
        self._apply_role(user, UserRole.parse(new_role))
        self.db.commit()
        self.db.refresh(user)
        return user

    def _apply_role(self, user: User, new_role: UserRole) -> None:
        current = UserRole.parse(user.role)
        if current is new_role:
            return
        if (
            current is UserRole.CANDIDATE
            and new_role is UserRole.LEARNER
            and not self.has_passed_attempt(user.id)
        ):
            raise CandidateNotEligibleException(user.id)
        user.role = new_role
        self.db.flush()
        logger.info(
            f"User {user.id} role changed {current.value} -> {new_role.value}",
            extra={"user_id": user.id},
        )

    def promote_candidate(self, user: User) -> bool:
        """Move a candidate with a passed attempt to learner.

        Guarded on the current role so concurrent promoters update the row once.
        Returns whether this call changed the role. Flushes only.
        """
        if not self.has_passed_attempt(user.id):
            raise CandidateNotEligibleException(user.id)
        updated = (
            self.db.query(User)
            .filter(User.id == user.id, User.role == UserRole.CANDIDATE)
            .update({User.role: UserRole.LEARNER}, synchronize_session=False)
        )
        self.db.expire(user, ["role"])
        if updated:
            logger.info(f"Candidate {user.id} promoted to learner", extra={"user_id": user.id})
        return bool(updated)

    def decide_candidate(self, actor: User, user_id: int, decision: str) -> User:
        """Record a supervisor/admin decision on a candidate.

        Accepting promotes the candidate (only once they have passed a test);
        rejecting records the decision and leaves the role unchanged.
        """
        candidate = self.get_user_or_404(user_id)
        require(
            actor,
            Operation.DECIDE_CANDIDATE,
            AccessTarget(user=candidate),
            message="Candidate is not assigned to you",
        )
        previous = UserRole.parse(candidate.role)
        if previous is not UserRole.CANDIDATE:
            raise ValidationException("Only candidates can be reviewed", field="userId")

        if decision == "accept":
            self.promote_candidate(candidate)

        new_role = UserRole.parse(candidate.role)
        audit = AuditLog(self.db)
        audit.record_candidate_decision(
            candidate_id=candidate.id,
            actor_id=actor.id,
            decision=decision,
            previous_role=previous.value,
            new_role=new_role.value,
        )
        audit.notify(
            recipient_id=candidate.id,
            actor_id=actor.id,
            title="Candidate review",
            message=(
                "You have been accepted as a learner"
                if decision == "accept"
                else "Your candidacy was not accepted"
            ),
            priority="high",
        )
        self.db.commit()
        self.db.refresh(candidate)
        logger.info(
            f"Candidate {candidate.id} decision: {decision}",
            extra={"user_id": actor.id, "candidate_id": candidate.id},
        )
        return candidate

    # ----- Profile administration -----
    def _validate_supervisor(self, supervisor_id: int, user_id: Optional[int] = None) -> User:
        if user_id is not None and supervisor_id == user_id:
            raise ValidationException("A user cannot supervise themselves", field="supervisorId")
        supervisor = self.get_user_or_404(supervisor_id)
        if not UserRole.parse(supervisor.role).has_oversight:
            raise ValidationException(
                "Supervisor must have the supervisor or admin role", field="supervisorId"
            )
        return supervisor

    def update_user(self, actor: User, user_id: int, payload: UserAdminUpdate) -> User:
        require(actor, Operation.MANAGE_USERS)
        user = self.get_user_or_404(user_id)
        changes = payload.model_dump(exclude_unset=True)

        if "supervisor_id" in changes:
            if changes["supervisor_id"] is not None:
                self._validate_supervisor(changes["supervisor_id"], user.id)
            user.supervisor_id = changes["supervisor_id"]
        if "archetype" in changes:
            user.archetype = changes["archetype"]
        if changes.get("role") is not None:
            self._apply_role(user, UserRole.parse(changes["role"]))

        self.db.commit()
        self.db.refresh(user)
        return user


__all__ = ["UserService"]
