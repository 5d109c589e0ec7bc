import base64
import hashlib
import hmac
import time

from flask import current_app


SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def _pad_b64(value):
    return value + "=" * (-len(value) % 4)


def _secret_bytes(secret):
    # Svix secrets are "whsec_" + base64; anything else is used as raw bytes.
    if not secret.startswith("whsec_"):
        return secret.encode("utf-8")
    encoded = secret[len("whsec_") :]
    # urlsafe first: the standard decoder silently drops "-" and "_".
    for decoder in (base64.urlsafe_b64decode, base64.b64decode):
        try:
            decoded = decoder(_pad_b64(encoded))
        except ValueError:
            continue
        if decoded:
            return decoded
    return None


def sign_payload(body, msg_id, timestamp, secret):
    key = _secret_bytes(secret)
    if key is None:
        raise ValueError("Malformed webhook signing secret.")
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    signed = f"{msg_id}.{timestamp}.{body}".encode("utf-8")
    digest = hmac.new(key, signed, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_webhook_signature(body, headers, secret, tolerance=300, now=None):
    """Check a Svix-signed delivery (the format the identity provider uses)."""
    msg_id = headers.get("svix-id", "")
    timestamp_raw = headers.get("svix-timestamp", "")
    signature_header = headers.get("svix-signature", "")
    if not msg_id or not timestamp_raw or not signature_header:
        return False
    if not secret:
        current_app.logger.warning("Identity webhook secret is not configured; rejecting delivery.")
        return False

    try:
        timestamp = int(timestamp_raw)
    except (TypeError, ValueError):
        return False
    now = int(time.time()) if now is None else int(now)
    if abs(now - timestamp) > tolerance:
        return False

    try:
        expected = sign_payload(body, msg_id, timestamp_raw, secret)
    except ValueError:
        current_app.logger.warning("Identity webhook secret is malformed.")
        return False

    # Header format: "v1,<sig> v1,<sig2>" (several during secret rotation).
    for entry in signature_header.split(" "):
        parts = entry.split(",", 1)
        if len(parts) == 2 and parts[0] == "v1" and hmac.compare_digest(parts[1], expected):
            return True
    return False
