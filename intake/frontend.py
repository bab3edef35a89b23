# intake/frontend.py
"""
Public routes:
- Submission form and its POST handler (with the two file uploads)
- Logout
- Health check
"""
from __future__ import annotations

import logging

from flask import (
    Blueprint,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from .errors import PersistenceError
from .records import RecordFields
from .services import services

log = logging.getLogger(__name__)

frontend_bp = Blueprint("frontend", __name__)


@frontend_bp.get("/")
def home():
    """Public submission form."""
    return render_template("index.html", error=None, form={})


@frontend_bp.post("/submit")
def submit():
    """
    Store the uploaded files, then append the record.

    Form fields: name, surname, phone (required), residence, workplace.
    File fields: document, photo (both optional).
    """
    svc = services()
    fields = RecordFields.from_form(request.form)

    missing = fields.missing()
    if missing:
        return (
            render_template(
                "index.html",
                error="Please fill in: " + ", ".join(missing),
                form=request.form,
            ),
            400,
        )

    stored: list[str] = []
    try:
        document_file = svc.attachments.store_optional(request.files.get("document"), "document")
        if document_file:
            stored.append(document_file)
        photo_file = svc.attachments.store_optional(request.files.get("photo"), "photo")
        if photo_file:
            stored.append(photo_file)

        svc.records.append(fields, document_file=document_file, photo_file=photo_file)
    except PersistenceError:
        # Don't leave files behind for a record that was never saved
        for name in stored:
            svc.attachments.release(name)
        raise

    log.info("New submission saved (document=%s, photo=%s)", bool(document_file), bool(photo_file))
    return render_template("success.html", message="Your data was saved successfully!")


@frontend_bp.get("/logout")
def logout():
    services().auth.logout(session)
    return redirect(url_for("frontend.home"))


@frontend_bp.get("/health")
def health():
    """Simple health endpoint used by tests."""
    return jsonify({"status": "ok"})
