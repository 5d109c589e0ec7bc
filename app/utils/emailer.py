import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr
from types import SimpleNamespace

from flask import current_app


class EmailDeliveryError(Exception):
    """Raised when a message could not be handed to the SMTP server."""


def _resolve_from_email(smtp_settings):
    configured = (getattr(smtp_settings, "from_email", "") or "").strip()
    username = (getattr(smtp_settings, "username", "") or "").strip()
    host = (getattr(smtp_settings, "host", "") or "").strip().lower()

    _, configured_addr = parseaddr(configured)
    configured_addr = configured_addr.strip().lower()
    username_addr = username.strip().lower()

    if not configured_addr:
        return username_addr or configured or username

    # Deliverability guard: Gmail SMTP often rejects/filters mismatched From.
    if "gmail" in host and username_addr and configured_addr != username_addr:
        return username_addr

    return configured_addr or configured


def smtp_settings_from_config(cfg=None):
    cfg = cfg or current_app.config
    if not cfg.get("SMTP_HOST"):
        return None
    return SimpleNamespace(
        host=cfg["SMTP_HOST"],
        port=cfg.get("SMTP_PORT", 587),
        username=cfg.get("SMTP_USERNAME", ""),
        password=cfg.get("SMTP_PASSWORD", ""),
        from_email=cfg.get("SMTP_FROM", ""),
        use_tls=cfg.get("SMTP_TLS", True),
    )


def send_email_smtp(smtp_settings, to_email, subject, body_html, body_text=None):
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    effective_from = _resolve_from_email(smtp_settings)
    msg["From"] = effective_from
    msg["To"] = to_email

    if body_text:
        msg.attach(MIMEText(body_text, "plain", "utf-8"))
    msg.attach(MIMEText(body_html, "html", "utf-8"))

    server = smtplib.SMTP(smtp_settings.host, smtp_settings.port, timeout=15)
    try:
        if smtp_settings.use_tls:
            server.starttls()
        if smtp_settings.username:
            server.login(smtp_settings.username, smtp_settings.password)
        server.sendmail(effective_from, [to_email], msg.as_string())
    finally:
        server.quit()


def send_email(to_email, subject, body_html, body_text=None):
    """Send one message with the configured SMTP account.

    Any transport problem (missing configuration, connection, auth, refusal)
    is reported as EmailDeliveryError so callers only handle one failure type.
    """
    settings = smtp_settings_from_config()
    if settings is None:
        raise EmailDeliveryError("SMTP is not configured.")
    try:
        send_email_smtp(settings, to_email, subject, body_html, body_text)
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.error("Email to %s failed: %s", to_email, exc)
        raise EmailDeliveryError(str(exc)) from exc
