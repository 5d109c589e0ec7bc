import base64
import hashlib
import hmac
import json
import time
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from app import create_app
from app.extensions import db
from app.models import AdmissionStep, AuditLog, Course, Faculty, Testimonial, UserProfile
from app.utils.identity_sync import IdentitySyncError, dispatch_event, handle_user_deleted, role_for_email
from app.utils.webhooks import sign_payload, verify_webhook_signature


SIGNING_SECRET = "whsec_" + base64.b64encode(b"identity-test-signing-key").decode()


class TestConfig:
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TESTING = True
    WTF_CSRF_ENABLED = True
    RATELIMIT_ENABLED = False
    IDENTITY_WEBHOOK_SECRET = SIGNING_SECRET
    IDENTITY_WEBHOOK_TOLERANCE_SECONDS = 300
    ADMIN_EMAILS = frozenset({"owner@example.com"})


def _user_payload(user_id="user_1", email="jane@example.com", first_name="Jane", last_name="Doe", primary=True):
    return {
        "id": user_id,
        "first_name": first_name,
        "last_name": last_name,
        "image_url": "https://img.example.com/jane.png",
        "primary_email_address_id": "email_1" if primary else "email_missing",
        "email_addresses": [{"id": "email_1", "email_address": email}],
    }


def _post_event(client, event_type, data, secret=SIGNING_SECRET, timestamp=None, msg_id="msg_1"):
    body = json.dumps({"type": event_type, "data": data})
    timestamp = str(int(time.time()) if timestamp is None else timestamp)
    signature = sign_payload(body, msg_id, timestamp, secret)
    return client.post(
        "/webhooks/identity",
        data=body,
        content_type="application/json",
        headers={"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": f"v1,{signature}"},
    )


def test_user_created_inserts_profile():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.created", _user_payload())
    assert resp.status_code == 200
    assert resp.json == {"message": "Webhook processed successfully"}
    with app.app_context():
        profile = UserProfile.query.filter_by(external_identity_id="user_1").one()
        assert profile.email == "jane@example.com"
        assert profile.name == "Jane Doe"
        assert profile.role == "user"
        assert profile.is_active is True
        assert profile.image_url == "https://img.example.com/jane.png"


def test_user_created_promotes_allow_listed_email():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.created", _user_payload(user_id="user_2", email="Owner@Example.com"))
    assert resp.status_code == 200
    with app.app_context():
        assert UserProfile.query.filter_by(external_identity_id="user_2").one().role == "admin"


def test_user_created_without_names_defaults_to_user():
    app = create_app(TestConfig)
    client = app.test_client()
    _post_event(client, "user.created", _user_payload(first_name=None, last_name=None))
    with app.app_context():
        assert UserProfile.query.one().name == "User"


def test_user_created_without_primary_email_is_skipped():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.created", _user_payload(primary=False))
    assert resp.status_code == 200
    with app.app_context():
        assert UserProfile.query.count() == 0


def test_duplicate_user_created_fails_with_500():
    app = create_app(TestConfig)
    client = app.test_client()
    assert _post_event(client, "user.created", _user_payload()).status_code == 200
    resp = _post_event(client, "user.created", _user_payload(), msg_id="msg_2")
    assert resp.status_code == 500
    with app.app_context():
        assert UserProfile.query.count() == 1


def test_user_updated_overwrites_fields_but_keeps_role():
    app = create_app(TestConfig)
    client = app.test_client()
    _post_event(client, "user.created", _user_payload(email="owner@example.com"))
    resp = _post_event(
        client,
        "user.updated",
        _user_payload(email="new@example.com", first_name="Janet", last_name="Smith"),
        msg_id="msg_2",
    )
    assert resp.status_code == 200
    with app.app_context():
        profile = UserProfile.query.one()
        assert profile.email == "new@example.com"
        assert profile.name == "Janet Smith"
        assert profile.role == "admin"


def test_user_updated_for_unknown_user_fails_with_500():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.updated", _user_payload(user_id="ghost"))
    assert resp.status_code == 500
    with app.app_context():
        assert UserProfile.query.count() == 0


def test_user_deleted_detaches_owned_rows():
    app = create_app(TestConfig)
    client = app.test_client()
    _post_event(client, "user.created", _user_payload())
    with app.app_context():
        profile = UserProfile.query.one()
        db.session.add_all(
            [
                Course(title="Maths", description="Algebra", owner_id=profile.id),
                Faculty(name="R. Sharma", owner_id=profile.id),
                Testimonial(student_name="Asha", message="Great teachers.", owner_id=profile.id),
                AdmissionStep(step_number=1, title="Enquiry", owner_id=profile.id),
                AuditLog(user_id=profile.id, type_event="login"),
            ]
        )
        db.session.commit()

    resp = _post_event(client, "user.deleted", {"id": "user_1", "deleted": True}, msg_id="msg_2")
    assert resp.status_code == 200
    with app.app_context():
        assert UserProfile.query.count() == 0
        assert Course.query.one().owner_id is None
        assert Faculty.query.one().owner_id is None
        assert Testimonial.query.one().owner_id is None
        assert AdmissionStep.query.one().owner_id is None
        assert AuditLog.query.one().user_id is None


def test_user_deleted_for_unknown_user_is_ok():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.deleted", {"id": "ghost", "deleted": True})
    assert resp.status_code == 200


def test_unhandled_event_type_is_acknowledged():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "session.created", {"id": "sess_1"})
    assert resp.status_code == 200
    with app.app_context():
        assert UserProfile.query.count() == 0


def test_missing_signature_headers_rejected():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = client.post(
        "/webhooks/identity",
        data=json.dumps({"type": "user.created", "data": _user_payload()}),
        content_type="application/json",
    )
    assert resp.status_code == 400
    with app.app_context():
        assert UserProfile.query.count() == 0


def test_wrong_secret_rejected():
    app = create_app(TestConfig)
    client = app.test_client()
    other_secret = "whsec_" + base64.b64encode(b"someone-else").decode()
    resp = _post_event(client, "user.created", _user_payload(), secret=other_secret)
    assert resp.status_code == 400
    with app.app_context():
        assert UserProfile.query.count() == 0


def test_stale_timestamp_rejected():
    app = create_app(TestConfig)
    client = app.test_client()
    resp = _post_event(client, "user.created", _user_payload(), timestamp=int(time.time()) - 3600)
    assert resp.status_code == 400


def test_signature_header_may_carry_several_signatures():
    app = create_app(TestConfig)
    body = '{"type": "user.created"}'
    timestamp = "1700000000"
    good = sign_payload(body, "msg_9", timestamp, SIGNING_SECRET)
    headers = {"svix-id": "msg_9", "svix-timestamp": timestamp, "svix-signature": f"v1,bm90LXRoaXM= v1,{good}"}
    with app.app_context():
        assert verify_webhook_signature(body, headers, SIGNING_SECRET, now=1700000010) is True
        assert verify_webhook_signature(body, headers, SIGNING_SECRET, now=1700000400) is False
        assert verify_webhook_signature(body + " ", headers, SIGNING_SECRET, now=1700000010) is False
        assert verify_webhook_signature(body, headers, "", now=1700000010) is False


def test_failed_delete_cascade_keeps_profile_and_links():
    app = create_app(TestConfig)
    client = app.test_client()
    _post_event(client, "user.created", _user_payload())
    with app.app_context():
        profile_id = UserProfile.query.one().id
        db.session.add_all(
            [
                Course(title="Maths", description="Algebra", owner_id=profile_id),
                Faculty(name="R. Sharma", owner_id=profile_id),
                Testimonial(student_name="Asha", message="Great teachers.", owner_id=profile_id),
                AdmissionStep(step_number=1, title="Enquiry", owner_id=profile_id),
            ]
        )
        db.session.commit()

        failure = OperationalError("COMMIT", {}, Exception("database is locked"))
        with mock.patch.object(db.session, "commit", side_effect=failure):
            with pytest.raises(OperationalError):
                handle_user_deleted({"id": "user_1", "deleted": True})
        db.session.expire_all()

        assert db.session.get(UserProfile, profile_id) is not None
        for model in (Course, Faculty, Testimonial, AdmissionStep):
            assert model.query.one().owner_id == profile_id


def test_event_with_non_object_data_is_rejected():
    app = create_app(TestConfig)
    client = app.test_client()
    with app.app_context():
        with pytest.raises(IdentitySyncError):
            dispatch_event({"type": "user.created", "data": []})
    resp = _post_event(client, "user.deleted", ["user_1"])
    assert resp.status_code == 500
    assert resp.json == {"error": "Webhook processing failed"}


def test_admin_allow_list_accepts_comma_separated_string():
    app = create_app(TestConfig)
    with app.app_context():
        assert role_for_email("Ops@Example.com", "owner@example.com, ops@example.com") == "admin"
        assert role_for_email("o@example.com", "owner@example.com") == "user"
        assert role_for_email("e", "owner@example.com") == "user"


def test_urlsafe_signing_secret_decodes_to_original_key():
    key = b"\xfb\xff\xfe-identity-key"
    secret = "whsec_" + base64.urlsafe_b64encode(key).decode()
    assert "-" in secret or "_" in secret
    body = '{"type": "user.created"}'
    expected = base64.b64encode(hmac.new(key, f"msg_1.1700000000.{body}".encode(), hashlib.sha256).digest()).decode()
    assert sign_payload(body, "msg_1", "1700000000", secret) == expected
    standard = "whsec_" + base64.b64encode(key).decode()
    assert sign_payload(body, "msg_1", "1700000000", standard) == expected
