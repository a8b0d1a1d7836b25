from __future__ import annotations

from typing import TYPE_CHECKING

from app.classroom.modules.submissions.models import Submission

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def create_submission(s: "Session", *, name: str | None, email: str | None, message: str | None) -> Submission:
    """Create a submission. Fields are stored as given; email need not belong to a user."""
    sub = Submission(name=name, email=email, message=message)
    s.add(sub)
    s.flush()
    return sub


def get_submission(s: "Session", submission_id: int) -> Submission | None:
    return s.get(Submission, submission_id)


def latest_submission_for_email(s: "Session", email: str) -> Submission | None:
    """Newest submission for an email. Same-timestamp ties fall back to the higher id."""
    return (
        s.query(Submission)
        .filter(Submission.email == email)
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .first()
    )


def list_submissions(s: "Session") -> list[Submission]:
    # No pagination: the list page shows every submission.
    return s.query(Submission).order_by(Submission.created_at.desc(), Submission.id.desc()).all()
