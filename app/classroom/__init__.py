import logging
import uuid

from flask import Flask, g, render_template, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.classroom.config import load_config
from app.classroom.db import init_db, teardown_db_session
from app.classroom.routes import bp as routes_bp
from app.classroom.auth import bp as auth_bp
from app.classroom.modules.submissions.views import bp as submissions_bp

REQUIRED_TABLES = ("users", "submissions")
_EXEMPT_PATHS = ("/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.logger.setLevel(app.config["LOG_LEVEL"])

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d %H:%M") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")

    store = init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                store.dispose()
                app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(submissions_bp)

    @app.before_request
    def _assign_request_id():
        # Per-request id for log correlation.
        if not getattr(g, "request_id", None):
            g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    app.teardown_appcontext(teardown_db_session)

    # Schema health (lean): detect a store that has not been migrated yet.
    app.config.setdefault("_schema_health_ok", True)
    app.config.setdefault("_schema_health_missing", [])
    app.config.setdefault("_schema_health_logged", False)

    def _run_schema_health_check() -> None:
        missing: list[str] = []
        try:
            insp = sa_inspect(store.engine)
            missing = [f"{name} (table)" for name in REQUIRED_TABLES if not insp.has_table(name)]
        except Exception as e:
            # An unreachable store is reported per request by the handlers themselves.
            app.logger.exception("Schema health check failed: %s", e)

        if missing:
            app.config["_schema_health_missing"] = missing
            if not app.config.get("_schema_health_logged"):
                app.config["_schema_health_logged"] = True
                app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
        else:
            app.config["_schema_health_missing"] = []

        app.config["_schema_health_ok"] = not missing

    _run_schema_health_check()

    @app.before_request
    def _schema_health_guardrail():  # type: ignore[no-redef]
        if app.config.get("_schema_health_ok"):
            return None
        if request.path.startswith("/static/") or request.path in _EXEMPT_PATHS:
            return None
        # Tables may have been created since startup.
        _run_schema_health_check()
        if app.config.get("_schema_health_ok"):
            return None
        return render_template("errors/schema_out_of_date.html", missing=app.config.get("_schema_health_missing") or []), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
