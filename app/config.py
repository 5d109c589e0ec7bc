import os
from pathlib import Path
from datetime import timedelta
from dotenv import load_dotenv

basedir = Path(__file__).resolve().parent.parent
load_dotenv(basedir / ".env")


def _as_bool(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _as_email_set(name):
    raw = os.getenv(name) or ""
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


def _normalize_database_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if url.startswith("postgres://"):
        # Render/Heroku legacy scheme -> SQLAlchemy 2 compatible scheme.
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://") and not url.startswith("postgresql+psycopg://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.getenv("DATABASE_URL", f"sqlite:///{basedir / 'coaching.db'}")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SITE_NAME = os.getenv("SITE_NAME", "Alpha Coaching").strip()

    MAX_CONTENT_LENGTH = 10 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
    # Relative to app/static; uploaded images are served back as static URLs.
    IMAGE_UPLOAD_SUBDIR = os.getenv("IMAGE_UPLOAD_SUBDIR", "uploads/images").strip("/")

    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    SMTP_HOST = os.getenv("SMTP_HOST", "")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
    SMTP_FROM = os.getenv("SMTP_FROM", "")
    SMTP_TLS = _as_bool("SMTP_TLS", True)

    # Inbox notified on every new contact submission (optional).
    CONTACT_NOTIFY_EMAIL = os.getenv("CONTACT_NOTIFY_EMAIL", "").strip().lower()

    # Identity provider: webhook signing secret + emails promoted to admin on first sync.
    IDENTITY_WEBHOOK_SECRET = os.getenv("IDENTITY_WEBHOOK_SECRET", "").strip()
    IDENTITY_WEBHOOK_TOLERANCE_SECONDS = int(os.getenv("IDENTITY_WEBHOOK_TOLERANCE_SECONDS", "300"))
    ADMIN_EMAILS = _as_email_set("ADMIN_EMAILS")

    # Session/cookie hardening
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _as_bool("SESSION_COOKIE_SECURE", False)
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SECURE = _as_bool("REMEMBER_COOKIE_SECURE", SESSION_COOKIE_SECURE)
    PERMANENT_SESSION_LIFETIME = timedelta(hours=12)

    # Reverse proxy / HTTPS / SEO
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")
    SECURITY_FORCE_HTTPS = _as_bool("SECURITY_FORCE_HTTPS", False)
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/")

    BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "").strip().lower()
    BOOTSTRAP_ADMIN_NAME = os.getenv("BOOTSTRAP_ADMIN_NAME", "").strip()
    BOOTSTRAP_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "").strip()
