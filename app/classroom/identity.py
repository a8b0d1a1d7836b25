"""
Email-existence gate for views.

This is not authentication: there is no secret or session, and anyone who
knows a registered email passes. It only confirms that the email supplied with
the request belongs to a user record.
"""
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, render_template, request
from sqlalchemy.exc import SQLAlchemyError

from app.classroom.db import db_session
from app.classroom.users import find_user_by_email
from app.classroom.utils import body_value, clean_email


def requested_email() -> str | None:
    """Email from the request body if present, otherwise from the query string."""
    return clean_email(body_value(request, "email")) or clean_email(request.args.get("email"))


def require_registered(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        email = requested_email()
        if not email:
            return render_template("errors/400.html", message="Email is required for this action"), 400

        try:
            user = find_user_by_email(db_session(), email)
        except SQLAlchemyError:
            current_app.logger.exception("Identity check failed (request_id=%s)", getattr(g, "request_id", None))
            return "Server error", 500, {"Content-Type": "text/plain; charset=utf-8"}

        if not user:
            return render_template("errors/401.html", message="User has not registered", email=email), 401

        g.registered_user = user
        return fn(*args, **kwargs)

    return wrapped
