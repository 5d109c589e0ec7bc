from datetime import datetime

from flask import Blueprint, current_app, flash, redirect, render_template, request, send_file, url_for
from flask_login import current_user, login_required
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app.contacts.forms import ReplyForm, StatusForm
from app.models import CONTACT_STATUSES, ContactSubmission
from app.utils.audit import add_audit_log
from app.utils.authz import role_required
from app.utils.contact_triage import STATUS_LABELS, InvalidStatusError, send_reply, set_status, status_counts
from app.utils.emailer import EmailDeliveryError
from app.utils.exports import contact_submissions_workbook


contacts_bp = Blueprint("contacts", __name__, url_prefix="/admin/contacts")


def _filtered_submissions():
    q = (request.args.get("q") or "").strip()
    status = (request.args.get("status") or "").strip()

    query = ContactSubmission.query
    if status in CONTACT_STATUSES:
        query = query.filter(ContactSubmission.status == status)
    else:
        status = ""
    if q:
        like_q = f"%{q}%"
        query = query.filter(
            or_(
                ContactSubmission.first_name.ilike(like_q),
                ContactSubmission.last_name.ilike(like_q),
                ContactSubmission.email.ilike(like_q),
                ContactSubmission.subject.ilike(like_q),
            )
        )
    rows = query.order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc()).all()
    return rows, q, status


@contacts_bp.route("/")
@login_required
@role_required("admin")
def submissions_list():
    rows, q, status = _filtered_submissions()
    return render_template(
        "contacts/list.html",
        submissions=rows,
        q=q,
        status=status,
        counts=status_counts(),
        status_labels=STATUS_LABELS,
    )


@contacts_bp.route("/<int:submission_id>")
@login_required
@role_required("admin")
def submission_detail(submission_id):
    row = ContactSubmission.query.get_or_404(submission_id)
    status_form = StatusForm(status=row.status)
    return render_template(
        "contacts/detail.html",
        submission=row,
        status_form=status_form,
        reply_form=ReplyForm(),
        status_labels=STATUS_LABELS,
    )


@contacts_bp.route("/<int:submission_id>/status", methods=["POST"])
@login_required
@role_required("admin")
def submission_status(submission_id):
    row = ContactSubmission.query.get_or_404(submission_id)
    new_status = (request.form.get("status") or "").strip()
    previous = row.status
    try:
        set_status(row, new_status)
    except InvalidStatusError:
        flash("Invalid status.", "warning")
        return redirect(url_for("contacts.submission_detail", submission_id=row.id))
    except SQLAlchemyError as exc:
        current_app.logger.error("Contact status update failed: %s", exc)
        flash("Failed to update status.", "danger")
        return redirect(url_for("contacts.submission_detail", submission_id=row.id))

    add_audit_log(current_user.id, "contact_status", f"Submission #{row.id}: {previous} -> {row.status}")
    flash("Status updated.", "success")
    return redirect(url_for("contacts.submission_detail", submission_id=row.id))


@contacts_bp.route("/<int:submission_id>/reply", methods=["POST"])
@login_required
@role_required("admin")
def submission_reply(submission_id):
    row = ContactSubmission.query.get_or_404(submission_id)
    form = ReplyForm()
    if not form.validate_on_submit():
        flash("Reply text is required.", "warning")
        return redirect(url_for("contacts.submission_detail", submission_id=row.id))

    try:
        send_reply(row, form.reply.data)
    except EmailDeliveryError:
        flash("Failed to send the reply email. The submission status was not changed.", "danger")
        return redirect(url_for("contacts.submission_detail", submission_id=row.id))
    except SQLAlchemyError as exc:
        current_app.logger.error("Reply sent but status update failed for #%s: %s", row.id, exc)
        flash("Reply sent, but the status could not be updated.", "warning")
        return redirect(url_for("contacts.submission_detail", submission_id=row.id))

    add_audit_log(current_user.id, "contact_reply", f"Reply sent to {row.email} for submission #{row.id}")
    flash("Reply sent and submission marked as resolved.", "success")
    return redirect(url_for("contacts.submission_detail", submission_id=row.id))


@contacts_bp.route("/export.xlsx")
@login_required
@role_required("admin")
def submissions_export():
    rows, _q, _status = _filtered_submissions()
    buffer = contact_submissions_workbook(rows, site_name=current_app.config.get("SITE_NAME") or "Contact submissions")
    filename = f"contact_submissions_{datetime.utcnow().strftime('%Y%m%d_%H%M')}.xlsx"
    add_audit_log(current_user.id, "contact_export", f"{len(rows)} submissions")
    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
