"""Attempt status state machine.

    in_progress --submit--> needs_review | passed | failed
    needs_review --grade--> passed | failed

`passed` and `failed` are terminal. Statuses are stored lowercase; older rows
written as `submitted`/`pending` read back as `needs_review`.
"""

from __future__ import annotations

import enum
from typing import Dict, Optional

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    NEEDS_REVIEW = "needs_review"
    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: "AttemptStatus | str") -> "AttemptStatus":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown attempt status: {value!r}") from None

    @property
    def is_finished(self) -> bool:
        """Counts against the attempt limit."""
        return self is not AttemptStatus.IN_PROGRESS


_ALIASES: Dict[str, str] = {
    "submitted": "needs_review",
    "pending": "needs_review",
    "inprogress": "in_progress",
}

def outcome_for(score: int, passing_score: int) -> AttemptStatus:
    return AttemptStatus.PASSED if score >= passing_score else AttemptStatus.FAILED


class AttemptStatusType(TypeDecorator):
    """Persist AttemptStatus as its lowercase value."""

    impl = String(20)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        if value is None:
            return None
        return AttemptStatus.parse(value).value

    def process_result_value(self, value, dialect) -> Optional[AttemptStatus]:
        if value is None:
            return None
        return AttemptStatus.parse(value)


__all__ = ["AttemptStatus", "AttemptStatusType", "outcome_for"]
