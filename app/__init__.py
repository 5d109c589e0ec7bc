from datetime import datetime
from xml.sax.saxutils import escape as xml_escape

import click
from argon2 import PasswordHasher
from flask import Flask, Response, redirect, request, url_for
from flask_login import current_user
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

from app.admin.routes import admin_bp
from app.admission.routes import admission_bp
from app.auth.routes import auth_bp
from app.config import Config
from app.contacts.routes import contacts_bp
from app.extensions import csrf, db, limiter, login_manager, migrate
from app.models import AboutUs, ContactInfo, Course, UserProfile
from app.public.routes import public_bp
from app.utils.admission_steps import create_step, list_steps, renumber_steps, sequence_problems
from app.utils.authz import is_admin
from app.utils.content import get_contact_info, get_or_create_about_us, get_or_create_contact_info, get_or_create_hero_section
from app.webhooks.routes import webhooks_bp


password_hasher = PasswordHasher()

PUBLIC_ENDPOINTS = ("public.home", "public.about", "public.courses", "public.admission", "public.contact")


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(admission_bp)
    app.register_blueprint(contacts_bp)
    app.register_blueprint(webhooks_bp)

    register_cli(app)
    ensure_runtime_tables(app)
    ensure_bootstrap_admin(app)

    @app.route("/health")
    def healthcheck():
        return {"status": "ok"}

    @app.route("/login")
    def login_alias():
        return redirect(url_for("auth.login"))

    @app.route("/robots.txt")
    def robots_txt():
        base_url = (app.config.get("PUBLIC_BASE_URL") or "").strip()
        if not base_url:
            base_url = request.url_root.rstrip("/")
        lines = [
            "User-agent: *",
            "Allow: /",
            "Disallow: /auth/",
            "Disallow: /admin/",
            "Disallow: /webhooks/",
            "Sitemap: " + base_url + url_for("sitemap_xml"),
        ]
        return Response("\n".join(lines), mimetype="text/plain")

    @app.route("/sitemap.xml")
    def sitemap_xml():
        pages = [url_for(endpoint, _external=True) for endpoint in PUBLIC_ENDPOINTS]
        today = datetime.utcnow().date().isoformat()
        xml_items = []
        for loc in sorted(set(pages)):
            xml_items.append(
                f"<url><loc>{xml_escape(loc)}</loc><lastmod>{today}</lastmod><changefreq>weekly</changefreq><priority>0.8</priority></url>"
            )
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            + "".join(xml_items)
            + "</urlset>"
        )
        return Response(xml, mimetype="application/xml")

    @app.context_processor
    def inject_globals():
        try:
            contact_info = get_contact_info()
        except (OperationalError, ProgrammingError):
            contact_info = None
        return {
            "current_user": current_user,
            "site_name": app.config.get("SITE_NAME") or "Coaching",
            "contact_info": contact_info,
            "is_admin": is_admin(),
            "current_year": datetime.utcnow().year,
        }

    @app.before_request
    def enforce_https_in_production():
        if not app.config.get("SECURITY_FORCE_HTTPS"):
            return None
        if app.debug or app.testing:
            return None
        if request.is_secure:
            return None
        forwarded_proto = (request.headers.get("X-Forwarded-Proto") or "").split(",")[0].strip().lower()
        if forwarded_proto == "https":
            return None
        return redirect(request.url.replace("http://", "https://", 1), code=301)

    @app.after_request
    def set_security_headers(response):
        csp = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "font-src 'self' data: https://cdn.jsdelivr.net; "
            "frame-src https://www.google.com https://maps.google.com; "
            "connect-src 'self'; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'"
        )
        response.headers.setdefault("Content-Security-Policy", csp)
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=(), payment=()")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        response.headers.setdefault("Cross-Origin-Resource-Policy", "same-site")
        if request.is_secure:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    return app


def ensure_bootstrap_admin(app):
    """Create or promote a password-capable admin on fresh databases.

    Env vars used:
    - BOOTSTRAP_ADMIN_EMAIL
    - BOOTSTRAP_ADMIN_NAME (optional)
    - BOOTSTRAP_ADMIN_PASSWORD
    """
    with app.app_context():
        try:
            email = (app.config.get("BOOTSTRAP_ADMIN_EMAIL") or "").strip().lower()
            name = (app.config.get("BOOTSTRAP_ADMIN_NAME") or "").strip() or "Administrator"
            raw_password = (app.config.get("BOOTSTRAP_ADMIN_PASSWORD") or "").strip()

            if not email or not raw_password:
                return

            existing = UserProfile.query.filter(db.func.lower(UserProfile.email) == email).order_by(UserProfile.id.asc()).first()
            if existing:
                existing.role = "admin"
                existing.is_active = True
                if not existing.password_hash:
                    existing.password_hash = password_hasher.hash(raw_password)
                db.session.commit()
                return

            row = UserProfile(
                email=email,
                name=name,
                role="admin",
                is_active=True,
                password_hash=password_hasher.hash(raw_password),
            )
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            app.logger.warning("Admin bootstrap failed: %s", exc)


def ensure_runtime_tables(app):
    """Ensure core tables exist at runtime (useful on fresh managed Postgres)."""
    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as exc:
            app.logger.warning("Runtime db.create_all() failed: %s", exc)


DEFAULT_ADMISSION_STEPS = [
    ("Enquiry", "Call us or send a message through the contact page.", "phone"),
    ("Counselling session", "Meet a counsellor to pick the right course.", "users"),
    ("Registration", "Fill in the admission form and submit your documents.", "file-text"),
    ("Fee payment", "Pay the course fee at the office or by bank transfer.", "credit-card"),
    ("Start classes", "Join your batch and receive your study material.", "book-open"),
]


def register_cli(app):
    @app.cli.command("seed-content")
    def seed_content():
        """Create the single-row sections and a starter admission sequence when empty."""
        get_or_create_hero_section()
        about = get_or_create_about_us()
        info = get_or_create_contact_info()
        if not about.mission:
            about.mission = "Help every student reach their goals through focused coaching."
        if not info.email:
            info.email = (app.config.get("CONTACT_NOTIFY_EMAIL") or "").strip() or None
        db.session.commit()

        created = 0
        if not list_steps():
            for title, description, icon in DEFAULT_ADMISSION_STEPS:
                create_step(title=title, description=description, icon=icon)
                created += 1
        print(
            f"Content ready. courses={Course.query.count()}, about_rows={AboutUs.query.count()}, "
            f"contact_rows={ContactInfo.query.count()}, admission_steps_created={created}"
        )

    @app.cli.command("set-password")
    @click.argument("email")
    @click.password_option()
    def set_password(email, password):
        """Set the sign-in password of an existing profile."""
        email = email.strip().lower()
        user = UserProfile.query.filter(db.func.lower(UserProfile.email) == email).order_by(UserProfile.id.asc()).first()
        if user is None:
            print(f"No profile with email {email}.")
            return
        user.password_hash = password_hasher.hash(password)
        db.session.commit()
        print(f"Password updated for {user.email} (role={user.role}).")

    @app.cli.command("check-admission-steps")
    def check_admission_steps():
        steps = list_steps()
        problems = sequence_problems(steps)
        for problem in problems:
            print(f"[ISSUE] {problem}")
        print(f"Check done. Steps: {len(steps)}, issues: {len(problems)}")

    @app.cli.command("fix-admission-steps")
    def fix_admission_steps():
        try:
            changed = renumber_steps()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            print(f"Renumbering failed: {exc}")
            return
        print(f"Renumbering done. Rows changed: {changed}")
