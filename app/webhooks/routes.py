import json

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import csrf
from app.utils.identity_sync import IdentitySyncError, dispatch_event
from app.utils.webhooks import SIGNATURE_HEADERS, verify_webhook_signature


webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/webhooks")


@webhooks_bp.route("/identity", methods=["POST"])
@csrf.exempt
def identity_events():
    if not all(request.headers.get(name) for name in SIGNATURE_HEADERS):
        return jsonify({"error": "Missing signature headers"}), 400

    body = request.get_data(cache=False, as_text=True)
    verified = verify_webhook_signature(
        body,
        request.headers,
        current_app.config.get("IDENTITY_WEBHOOK_SECRET"),
        tolerance=int(current_app.config.get("IDENTITY_WEBHOOK_TOLERANCE_SECONDS") or 300),
    )
    if not verified:
        current_app.logger.warning("Identity webhook rejected: invalid signature (id=%s).", request.headers.get("svix-id"))
        return jsonify({"error": "Invalid signature"}), 400

    try:
        event = json.loads(body)
    except ValueError:
        return jsonify({"error": "Invalid payload"}), 400
    if not isinstance(event, dict):
        return jsonify({"error": "Invalid payload"}), 400

    try:
        dispatch_event(event)
    except (IdentitySyncError, SQLAlchemyError) as exc:
        current_app.logger.error("Identity webhook %s failed: %s", event.get("type"), exc)
        return jsonify({"error": "Webhook processing failed"}), 500

    return jsonify({"message": "Webhook processed successfully"}), 200
