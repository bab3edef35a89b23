# intake/__init__.py
from __future__ import annotations

import logging
from typing import Any

from flask import Flask, redirect, render_template, session, url_for
from werkzeug.exceptions import HTTPException, NotFound as HTTPNotFound

from .attachments import AttachmentStore
from .auth import AuthGate
from .config import Config
from .errors import NotFound, PersistenceError, Unauthorized
from .frontend import frontend_bp
from .records import JsonRecordStore, RecordStore, SqlRecordStore
from .services import Services
from .users import UserStore

from intake.admin import admin_bp

log = logging.getLogger(__name__)


def build_record_store(cfg: Config) -> RecordStore:
    if cfg.record_backend == "sql":
        from .db import init_db

        return SqlRecordStore(init_db(cfg.sql_url))
    if cfg.record_backend != "json":
        raise ValueError(f"unknown RECORD_BACKEND: {cfg.record_backend!r}")

    store = JsonRecordStore(cfg.records_path)
    store.bootstrap()
    return store


def create_app(config_override: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # --- Configuration ---
    cfg = Config.from_env()
    if config_override:
        cfg.override({k: v for k, v in config_override.items() if not k.isupper()})
    app.config.update(cfg.to_flask_dict())
    if config_override:
        # direct Flask config keys (TESTING, ...)
        app.config.update({k: v for k, v in config_override.items() if k.isupper()})

    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # --- Storage bootstrap (directories, empty records file, seeded admin) ---
    records = build_record_store(cfg)
    log.info("Using %s record backend", cfg.record_backend)
    attachments = AttachmentStore(cfg.upload_dir)
    attachments.bootstrap()
    users = UserStore(cfg.users_path, bcrypt_rounds=cfg.bcrypt_rounds)
    users.bootstrap(cfg.admin_username, cfg.admin_password)

    app.extensions["intake"] = Services(
        records=records,
        attachments=attachments,
        users=users,
        auth=AuthGate(users, admin_username=cfg.admin_username),
    )

    app.register_blueprint(frontend_bp)
    app.register_blueprint(admin_bp)

    @app.context_processor
    def inject_session_info() -> dict[str, Any]:
        return {
            "is_logged_in": AuthGate.is_logged_in(session),
            "username": session.get("username"),
        }

    register_error_handlers(app)
    return app


def render_error(status: int, message: str, description: str):
    return (
        render_template("error.html", status=status, message=message, description=description),
        status,
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(Unauthorized)
    def _handle_unauthorized(ex: Unauthorized):
        return redirect(url_for("admin.login_page"))

    @app.errorhandler(NotFound)
    def _handle_not_found(ex: NotFound):
        return render_error(404, "Not found", "The requested record does not exist.")

    @app.errorhandler(PersistenceError)
    def _handle_persistence(ex: PersistenceError):
        app.logger.exception("Storage failure")
        return render_error(500, "Server error", "The data could not be saved or loaded.")

    @app.errorhandler(HTTPNotFound)
    def _h404(ex: HTTPNotFound):
        return render_error(404, "Page not found", "The page you requested does not exist.")

    @app.errorhandler(Exception)
    def _h500(ex: Exception):
        if isinstance(ex, HTTPException):
            return ex
        app.logger.exception("Unhandled exception")
        return render_error(500, "Server error", "Something went wrong on our side.")
