from __future__ import annotations

from flask import Blueprint, current_app, g, render_template, request
from sqlalchemy.exc import SQLAlchemyError

from app.classroom.db import db_session
from app.classroom.identity import require_registered
from app.classroom.modules.submissions.service import create_submission, get_submission, list_submissions
from app.classroom.utils import body_value

bp = Blueprint("submissions", __name__)

_PLAIN = {"Content-Type": "text/plain; charset=utf-8"}


def _request_id() -> str | None:
    return getattr(g, "request_id", None)


# Each action is mounted at its short path and under /submissions. The
# bottom-most rule is registered first, so url_for() builds the short path.


# ---------- Create ----------
@bp.post("/submissions/submit")
@bp.post("/submit")
def submit():
    s = db_session()
    try:
        sub = create_submission(
            s,
            name=body_value(request, "name"),
            email=body_value(request, "email"),
            message=body_value(request, "message"),
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Save submission failed (request_id=%s)", _request_id())
        return "Error saving submission", 500, _PLAIN

    return render_template("submissions/result.html", submission=sub)


# ---------- Profile ----------
# Ids are matched as text so malformed ids still pass the gate and get the
# same plain-text 404 as unknown ones.
@bp.get("/submissions/profile/<submission_id>")
@bp.get("/profile/<submission_id>")
@require_registered
def profile(submission_id: str):
    if not submission_id.isdecimal() or len(submission_id) > 18:
        return "Not found", 404, _PLAIN
    try:
        sub = get_submission(db_session(), int(submission_id))
    except SQLAlchemyError:
        current_app.logger.exception("Fetch submission %s failed (request_id=%s)", submission_id, _request_id())
        return "Error fetching submission", 500, _PLAIN
    if not sub:
        return "Not found", 404, _PLAIN
    return render_template("submissions/profile.html", submission=sub, viewer=g.registered_user)


# ---------- List ----------
@bp.get("/submissions/list")
@bp.get("/list")
def submissions_list():
    try:
        subs = list_submissions(db_session())
    except SQLAlchemyError:
        current_app.logger.exception("List submissions failed (request_id=%s)", _request_id())
        return "Error fetching submissions", 500, _PLAIN
    return render_template("submissions/list.html", submissions=subs)
