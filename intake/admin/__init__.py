# intake/admin/__init__.py
from __future__ import annotations

import io
import logging

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)

from intake.auth import admin_required
from intake.errors import InvalidCredentials
from intake.export import DEFAULT_DATE_FORMAT, csv_filename, record_to_csv
from intake.records import RecordFields
from intake.services import services

log = logging.getLogger(__name__)

# Blueprint for the admin panel
admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# -------------------------------------------------------------------
# Login
# -------------------------------------------------------------------

@admin_bp.get("/")
def login_page():
    """Login form. An admin who is already logged in goes straight to the list."""
    if services().auth.is_admin(session):
        return redirect(url_for("admin.records_list"))
    return render_template("login.html", error=None)


@admin_bp.post("/login")
def login():
    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""

    try:
        services().auth.login(session, username, password)
    except InvalidCredentials:
        return render_template("login.html", error="Invalid username or password"), 401

    return redirect(url_for("admin.records_list"))


# -------------------------------------------------------------------
# Records
# -------------------------------------------------------------------

@admin_bp.get("/records")
@admin_required
def records_list():
    records = services().records.list()
    return render_template("records.html", records=records)


@admin_bp.get("/records/<int:index>")
@admin_required
def record_detail(index: int):
    record = services().records.get(index)
    return render_template("record_view.html", record=record, index=index)


@admin_bp.get("/records/<int:index>/edit")
@admin_required
def record_edit(index: int):
    record = services().records.get(index)
    return render_template("record_edit.html", record=record, index=index, error=None)


@admin_bp.post("/records/<int:index>/edit")
@admin_required
def record_update(index: int):
    """
    Replace name/surname/phone/residence/workplace.

    created_at and attachment filenames are never touched here.
    """
    svc = services()
    fields = RecordFields.from_form(request.form)

    missing = fields.missing()
    if missing:
        record = svc.records.get(index)
        return (
            render_template(
                "record_edit.html",
                record=record,
                index=index,
                error="Please fill in: " + ", ".join(missing),
            ),
            400,
        )

    svc.records.update(index, fields)
    log.info("Record %s updated", index)
    flash("Record updated successfully.")
    return redirect(url_for("admin.records_list"))


@admin_bp.post("/records/<int:index>/delete")
@admin_required
def record_delete(index: int):
    svc = services()
    removed = svc.records.delete(index)
    for filename in removed.attachments:
        svc.attachments.release(filename)

    log.info("Record %s deleted (%d attachment(s) released)", index, len(removed.attachments))
    flash("Record deleted successfully.")
    return redirect(url_for("admin.records_list"))


@admin_bp.get("/records/<int:index>/csv")
@admin_required
def record_csv(index: int):
    record = services().records.get(index)
    body = record_to_csv(record, current_app.config.get("CSV_DATE_FORMAT", DEFAULT_DATE_FORMAT))
    return send_file(
        io.BytesIO(body.encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=csv_filename(record),
    )


# -------------------------------------------------------------------
# Uploaded files
# -------------------------------------------------------------------

@admin_bp.get("/uploads/<path:filename>")
@admin_required
def uploaded_file(filename: str):
    attachments = services().attachments
    if not attachments.exists(filename):
        abort(404)
    return send_file(attachments.path_for(filename))
