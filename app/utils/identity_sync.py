"""Mirror identity-provider user lifecycle events into ``user_profiles``."""

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import OWNED_CONTENT_MODELS, AuditLog, UserProfile


class IdentitySyncError(Exception):
    pass


class ProfileNotFoundError(IdentitySyncError):
    pass


def primary_email(data):
    primary_id = data.get("primary_email_address_id")
    for entry in data.get("email_addresses") or []:
        if entry.get("id") == primary_id:
            return (entry.get("email_address") or "").strip() or None
    return None


def display_name(data):
    name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()
    return name or "User"


def role_for_email(email, admin_emails=None):
    if admin_emails is None:
        admin_emails = current_app.config.get("ADMIN_EMAILS") or ()
    if isinstance(admin_emails, str):
        admin_emails = admin_emails.split(",")
    allowed = {item.strip().lower() for item in admin_emails if item.strip()}
    return "admin" if (email or "").strip().lower() in allowed else "user"


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def handle_user_created(data):
    external_id = data.get("id")
    email = primary_email(data)
    if not email:
        current_app.logger.error("No primary email found for identity user %s; profile not created.", external_id)
        return None

    profile = UserProfile(
        external_identity_id=external_id,
        email=email,
        name=display_name(data),
        role=role_for_email(email),
        is_active=True,
        image_url=data.get("image_url") or None,
    )
    db.session.add(profile)
    _commit()
    current_app.logger.info("User profile created for identity user %s (role=%s).", external_id, profile.role)
    return profile


def handle_user_updated(data):
    external_id = data.get("id")
    email = primary_email(data)
    if not email:
        current_app.logger.error("No primary email found for identity user %s; profile not updated.", external_id)
        return None

    profile = UserProfile.query.filter_by(external_identity_id=external_id).first()
    if profile is None:
        raise ProfileNotFoundError(f"No user profile for identity user {external_id}.")

    profile.email = email
    profile.name = display_name(data)
    profile.image_url = data.get("image_url") or None
    profile.updated_at = datetime.utcnow()
    _commit()
    current_app.logger.info("User profile updated for identity user %s.", external_id)
    return profile


def handle_user_deleted(data):
    """Remove the profile and sever its attribution links in one transaction."""
    external_id = data.get("id")
    profile = UserProfile.query.filter_by(external_identity_id=external_id).first()
    if profile is None:
        current_app.logger.info("Identity user %s already absent; nothing to delete.", external_id)
        return False

    try:
        for model in OWNED_CONTENT_MODELS:
            model.query.filter_by(owner_id=profile.id).update({"owner_id": None}, synchronize_session=False)
        AuditLog.query.filter_by(user_id=profile.id).update({"user_id": None}, synchronize_session=False)
        db.session.delete(profile)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    current_app.logger.info("User profile deleted for identity user %s.", external_id)
    return True


EVENT_HANDLERS = {
    "user.created": handle_user_created,
    "user.updated": handle_user_updated,
    "user.deleted": handle_user_deleted,
}


def dispatch_event(event):
    event_type = (event or {}).get("type")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        current_app.logger.info("Unhandled identity event type: %s", event_type)
        return None
    data = event.get("data")
    if not isinstance(data, dict):
        raise IdentitySyncError(f"Identity event {event_type} carries no user object.")
    if not data.get("id"):
        raise IdentitySyncError(f"Identity event {event_type} has no user id.")
    return handler(data)
