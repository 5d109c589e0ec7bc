from functools import wraps

from flask import abort
from flask_login import current_user


ROLE_ALIASES = {
    "ADMIN": "admin",
    "STAFF": "admin",
    "USER": "user",
}


def normalized_role(role):
    raw = (role or "").strip()
    return ROLE_ALIASES.get(raw.upper(), raw.lower())


def is_admin(user=None):
    user = user or current_user
    if not getattr(user, "is_authenticated", False):
        return False
    if not getattr(user, "is_active", False):
        return False
    return normalized_role(getattr(user, "role", None)) == "admin"


def role_required(*roles):
    allowed = {normalized_role(r) for r in roles}

    def decorator(view_func):
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.is_active:
                abort(403)
            if normalized_role(current_user.role) not in allowed:
                abort(403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator
