import html
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import CONTACT_STATUSES, ContactSubmission
from app.utils.emailer import EmailDeliveryError, send_email


STATUS_LABELS = {
    "new": "New",
    "in_progress": "In progress",
    "resolved": "Resolved",
}


class InvalidStatusError(ValueError):
    pass


def create_submission(first_name, last_name, email, subject, message, phone=None):
    now = datetime.utcnow()
    row = ContactSubmission(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone or None,
        subject=subject,
        message=message,
        status="new",
        created_at=now,
        updated_at=now,
    )
    db.session.add(row)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return row


def set_status(submission, status):
    # Staff may move a ticket anywhere, including back to "new".
    if status not in CONTACT_STATUSES:
        raise InvalidStatusError(f"Unknown contact status: {status!r}")
    submission.status = status
    submission.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return submission


def status_counts():
    counts = {status: 0 for status in CONTACT_STATUSES}
    rows = db.session.query(ContactSubmission.status, db.func.count(ContactSubmission.id)).group_by(ContactSubmission.status).all()
    for status, total in rows:
        if status in counts:
            counts[status] = total
    return counts


def build_reply_email(submission, reply_text, site_name=None):
    site_name = site_name or current_app.config.get("SITE_NAME") or "Our team"
    subject = f"Re: {submission.subject}"
    greeting = f"Dear {submission.first_name},"
    signature = f"Best regards,\n{site_name} Team"

    body_text = f"{greeting}\n\n{reply_text}\n\n{signature}\n"
    paragraphs = "".join(
        f"<p>{html.escape(chunk).replace(chr(10), '<br>')}</p>"
        for chunk in reply_text.split("\n\n")
        if chunk.strip()
    )
    body_html = (
        f"<p>{html.escape(greeting)}</p>"
        f"{paragraphs}"
        f"<p>Best regards,<br>{html.escape(site_name)} Team</p>"
        "<hr>"
        f"<p style=\"color:#6b7280\">In reply to your message: &ldquo;{html.escape(submission.subject)}&rdquo;</p>"
    )
    return subject, body_html, body_text


def send_reply(submission, reply_text):
    """Email ``reply_text`` to the submitter, then mark the submission resolved.

    The reply itself is not stored. When delivery fails, EmailDeliveryError
    propagates and the submission keeps its current status.
    """
    reply_text = (reply_text or "").strip()
    if not reply_text:
        raise ValueError("Reply text is required.")
    subject, body_html, body_text = build_reply_email(submission, reply_text)
    send_email(submission.email, subject, body_html, body_text)
    return set_status(submission, "resolved")


def notify_new_submission(submission):
    """Tell the configured inbox about a new submission; never fails the caller."""
    recipient = current_app.config.get("CONTACT_NOTIFY_EMAIL")
    if not recipient:
        return False
    subject = f"New contact message: {submission.subject}"
    body_text = (
        f"From: {submission.full_name} <{submission.email}>\n"
        f"Phone: {submission.phone or '-'}\n\n"
        f"{submission.message}\n"
    )
    body_html = (
        f"<p><strong>From:</strong> {html.escape(submission.full_name)} &lt;{html.escape(submission.email)}&gt;</p>"
        f"<p><strong>Phone:</strong> {html.escape(submission.phone or '-')}</p>"
        f"<p>{html.escape(submission.message).replace(chr(10), '<br>')}</p>"
    )
    try:
        send_email(recipient, subject, body_html, body_text)
    except EmailDeliveryError as exc:
        current_app.logger.warning("Contact notification for #%s not sent: %s", submission.id, exc)
        return False
    return True
