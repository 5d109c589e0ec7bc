import io

from flask_login import login_user, logout_user

from app import create_app
from app.auth.routes import password_hasher
from app.extensions import db
from app.models import AdmissionStep, AuditLog, Course, HeroSection, UserProfile
from app.utils.admission_steps import create_step, list_steps
from app.utils.authz import is_admin


class TestConfig:
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
    IMAGE_UPLOAD_SUBDIR = "uploads/images"


def _mk_user(email, role="admin", password="secret-pass", is_active=True):
    user = UserProfile(
        email=email,
        name=email.split("@")[0],
        role=role,
        is_active=is_active,
        password_hash=password_hasher.hash(password) if password else None,
    )
    db.session.add(user)
    db.session.commit()
    return user


def _login(client, email, password="secret-pass"):
    return client.post("/auth/login", data={"email": email, "password": password})


def _setup(role="admin"):
    app = create_app(TestConfig)
    with app.app_context():
        _mk_user("staff@example.com", role=role)
    client = app.test_client()
    return app, client


def test_is_admin_requires_active_admin_role():
    app = create_app(TestConfig)
    with app.app_context():
        admin = _mk_user("a@example.com")
        member = _mk_user("m@example.com", role="user")
        inactive = _mk_user("i@example.com", is_active=False)
        with app.test_request_context("/"):
            assert is_admin() is False
            login_user(admin)
            assert is_admin() is True
            logout_user()
            assert is_admin(member) is False
            assert is_admin(inactive) is False


def test_admin_login_lands_on_dashboard():
    app, client = _setup()
    resp = _login(client, "Staff@Example.com")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin/")
    dashboard = client.get("/admin/")
    assert dashboard.status_code == 200
    assert b"Dashboard" in dashboard.data
    with app.app_context():
        assert AuditLog.query.filter_by(type_event="login").count() == 1


def test_wrong_password_is_rejected():
    app, client = _setup()
    resp = _login(client, "staff@example.com", password="wrong-pass")
    assert resp.status_code == 200
    assert b"Invalid email or password." in resp.data
    assert client.get("/admin/").status_code == 302


def test_profile_without_password_cannot_sign_in():
    app = create_app(TestConfig)
    with app.app_context():
        _mk_user("synced@example.com", password=None)
    client = app.test_client()
    resp = _login(client, "synced@example.com", password="anything-goes")
    assert resp.status_code == 200
    assert b"Invalid email or password." in resp.data


def test_regular_user_is_forbidden():
    app, client = _setup(role="user")
    resp = _login(client, "staff@example.com")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/")
    assert client.get("/admin/").status_code == 403
    assert client.get("/admin/admission/").status_code == 403
    assert client.get("/admin/contacts/").status_code == 403


def test_admin_manages_admission_steps_through_routes():
    app, client = _setup()
    with app.app_context():
        ids = [create_step(title=title).id for title in ("A", "B", "C")]
    _login(client, "staff@example.com")

    assert client.get("/admin/admission/").status_code == 200

    resp = client.post(f"/admin/admission/{ids[2]}/move", data={"direction": "up"})
    assert resp.status_code == 302
    with app.app_context():
        assert [row.title for row in list_steps()] == ["A", "C", "B"]

    resp = client.post(f"/admin/admission/{ids[0]}/move", data={"direction": "sideways"})
    assert resp.status_code == 302
    with app.app_context():
        assert [row.title for row in list_steps()] == ["A", "C", "B"]

    resp = client.post("/admin/admission/new", data={"title": "D", "description": "Last", "is_active": "y"})
    assert resp.status_code == 302
    with app.app_context():
        assert [(row.title, row.step_number) for row in list_steps()][-1] == ("D", 4)
        assert AdmissionStep.query.filter_by(title="D").one().owner_id is not None

    resp = client.post(f"/admin/admission/{ids[0]}/edit", data={"title": "A1", "step_number": "3", "is_active": "y"})
    assert resp.status_code == 302
    with app.app_context():
        assert [row.title for row in list_steps()] == ["C", "B", "A1", "D"]
        assert [row.step_number for row in list_steps()] == [1, 2, 3, 4]

    resp = client.post(f"/admin/admission/{ids[1]}/delete")
    assert resp.status_code == 302
    with app.app_context():
        assert [(row.title, row.step_number) for row in list_steps()] == [("C", 1), ("A1", 2), ("D", 3)]
        assert AuditLog.query.filter_by(type_event="admission_step_move").count() == 1
        assert AuditLog.query.filter_by(type_event="admission_step_delete").count() == 1


def test_admin_course_crud():
    app, client = _setup()
    _login(client, "staff@example.com")

    resp = client.post(
        "/admin/courses/new",
        data={
            "title": "Foundation Maths",
            "description": "Core algebra and geometry.",
            "duration": "6 months",
            "fee": "1200",
            "features": "Weekly tests\n\n  Doubt sessions  \n",
            "image_url": "https://img.example.com/maths.png",
            "is_active": "y",
        },
    )
    assert resp.status_code == 302
    with app.app_context():
        course = Course.query.one()
        assert course.features == ["Weekly tests", "Doubt sessions"]
        assert course.fee == 1200.0
        course_id = course.id

    assert b"Foundation Maths" in client.get("/courses").data

    resp = client.post(
        f"/admin/courses/{course_id}/edit",
        data={"title": "Foundation Maths", "description": "Updated.", "fee": "0", "features": ""},
    )
    assert resp.status_code == 302
    with app.app_context():
        course = db.session.get(Course, course_id)
        assert course.is_active is False
        assert course.features == []
    assert b"Foundation Maths" not in client.get("/courses").data

    assert client.post(f"/admin/courses/{course_id}/delete").status_code == 302
    with app.app_context():
        assert Course.query.count() == 0


def test_admin_rejects_mismatched_image_upload():
    app, client = _setup()
    _login(client, "staff@example.com")
    resp = client.post(
        "/admin/courses/new",
        data={
            "title": "Physics",
            "description": "Mechanics",
            "image_file": (io.BytesIO(b"not really a png"), "photo.png"),
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert b"File content does not match its extension." in resp.data
    with app.app_context():
        assert Course.query.count() == 0


def test_single_row_editors_create_on_first_visit():
    app, client = _setup()
    _login(client, "staff@example.com")
    assert client.get("/admin/hero").status_code == 200
    resp = client.post("/admin/hero", data={"title": "Crack your exams", "cta_text": "Join", "cta_link": "/contact", "is_active": "y"})
    assert resp.status_code == 302
    with app.app_context():
        assert HeroSection.query.count() == 1
        assert HeroSection.query.one().title == "Crack your exams"
    assert b"Crack your exams" in client.get("/").data

    resp = client.post("/admin/contact-info", data={"phone": "+91 98765 43210", "social_media": "broken line"})
    assert resp.status_code == 200
    assert b"Invalid social link line" in resp.data


def test_admin_cannot_demote_or_deactivate_self():
    app, client = _setup()
    with app.app_context():
        admin_id = UserProfile.query.filter_by(email="staff@example.com").one().id
        other_id = _mk_user("other@example.com", role="user").id
    _login(client, "staff@example.com")

    client.post(f"/admin/users/{admin_id}/role", data={"role": "user"})
    client.post(f"/admin/users/{admin_id}/toggle-active")
    client.post(f"/admin/users/{other_id}/role", data={"role": "admin"})
    with app.app_context():
        assert db.session.get(UserProfile, admin_id).role == "admin"
        assert db.session.get(UserProfile, admin_id).is_active is True
        assert db.session.get(UserProfile, other_id).role == "admin"

    resp = client.get("/admin/users?q=other")
    assert b"other@example.com" in resp.data
    assert b"staff@example.com" not in resp.data.split(b"<tbody>")[1]
