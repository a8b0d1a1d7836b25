from __future__ import annotations

from flask import Blueprint, current_app, g, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.classroom.db import db_session
from app.classroom.modules.submissions.service import latest_submission_for_email
from app.classroom.users import DuplicateEmailError, create_user, find_user_by_email
from app.classroom.utils import body_value, clean_email

bp = Blueprint("auth", __name__)

NO_SUBMISSIONS_MESSAGE = "Logged in - no submissions yet. Submit the form first."


def _message(message: str, status: int = 200):
    return render_template("auth/message.html", message=message), status


# Registration and login are also reachable under /auth; one handler serves
# both paths and url_for() builds the short (bottom-most) one.
@bp.post("/auth/register")
@bp.post("/register")
def register():
    name = body_value(request, "name")
    email = clean_email(body_value(request, "email"))
    if not email:
        return _message("Email is required", 400)

    s = db_session()
    try:
        if find_user_by_email(s, email):
            return _message("User already registered")
        try:
            user = create_user(s, name=name, email=email)
        except DuplicateEmailError:
            # Lost a race with a concurrent registration; the unique index caught it.
            current_app.logger.info("Duplicate registration rejected by store (email=%s)", email)
            return _message("User already registered")
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Register failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        return _message("Error registering user", 500)

    current_app.logger.info("Registered user id=%s", user.id)
    return _message("Registered successfully")


@bp.post("/auth/login")
@bp.post("/login")
def login():
    email = clean_email(body_value(request, "email"))
    if not email:
        return _message("Email is required", 400)

    s = db_session()
    try:
        if not find_user_by_email(s, email):
            return _message("User has not registered")
        latest = latest_submission_for_email(s, email)
    except SQLAlchemyError:
        current_app.logger.exception("Login failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        return _message("Error during login", 500)

    if latest:
        return redirect(url_for("submissions.profile", submission_id=latest.id, email=email))
    return _message(NO_SUBMISSIONS_MESSAGE)
