from flask import current_app

from app.extensions import db
from app.models import AuditLog


def add_audit_log(user_id, type_event, details=None, action=None):
    row = AuditLog(
        user_id=user_id,
        type_event=type_event,
        details=details,
        action=action or type_event,
    )
    db.session.add(row)
    db.session.commit()
    current_app.logger.info("audit %s user=%s %s", type_event, user_id, details or "")
    return row
