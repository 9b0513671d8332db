"""normalize_attempt_statuses

Revision ID: 8d24e6b1c0f5
Revises: 3f9c1a7d2b10
Create Date: 2026-10-18 09:40:02.551874

Imported attempt rows may carry legacy statuses in any casing (`SUBMITTED`,
`IN_PROGRESS`, `graded`, ...). Rewrite them to the canonical four:
`submitted`/`pending` become `needs_review`; `graded` resolves to
`passed`/`failed` against the test's passing score, or `needs_review` when the
row has no score.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d24e6b1c0f5"
down_revision: Union[str, None] = "3f9c1a7d2b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Lowercase every status, then map legacy values onto the canonical set."""
    op.execute("UPDATE test_results SET status = LOWER(TRIM(status))")
    op.execute("UPDATE test_results SET status = 'in_progress' WHERE status IN ('inprogress', 'in-progress')")
    op.execute(
        "UPDATE test_results SET status = 'needs_review' "
        "WHERE status IN ('submitted', 'pending', 'needs-review')"
    )
    op.execute(
        "UPDATE test_results SET status = 'needs_review' "
        "WHERE status = 'graded' AND score IS NULL"
    )
    op.execute(
        sa.text(
            "UPDATE test_results SET status = CASE "
            "WHEN score >= (SELECT passing_score FROM tests WHERE tests.id = test_results.test_id) "
            "THEN 'passed' ELSE 'failed' END "
            "WHERE status = 'graded'"
        )
    )


def downgrade() -> None:
    # Legacy spellings are not restored; canonical statuses remain valid.
    pass
