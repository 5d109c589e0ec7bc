from urllib.parse import urlparse

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from flask import Blueprint, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from app.auth.forms import LoginForm
from app.extensions import db, limiter
from app.models import UserProfile
from app.utils.audit import add_audit_log
from app.utils.authz import is_admin


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")
password_hasher = PasswordHasher()


def _landing_for(user):
    return url_for("admin.dashboard") if is_admin(user) else url_for("public.home")


def _safe_next(target):
    if not target:
        return None
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc or not target.startswith("/"):
        return None
    return target


def check_password(user, raw_password):
    if not user or not user.password_hash:
        return False
    try:
        return password_hasher.verify(user.password_hash, raw_password)
    except (VerifyMismatchError, InvalidHashError):
        return False


@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_landing_for(current_user))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = (
            UserProfile.query.filter(db.func.lower(UserProfile.email) == email)
            .order_by(UserProfile.id.asc())
            .first()
        )
        if user and user.is_active and check_password(user, form.password.data):
            if password_hasher.check_needs_rehash(user.password_hash):
                user.password_hash = password_hasher.hash(form.password.data)
                db.session.commit()
            login_user(user, remember=form.remember.data)
            add_audit_log(user.id, "login", "Staff sign-in")
            return redirect(_safe_next(request.args.get("next")) or _landing_for(user))
        flash("Invalid email or password.", "danger")
    return render_template("auth/login.html", form=form)


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    flash("You have been signed out.", "info")
    return redirect(url_for("public.home"))
