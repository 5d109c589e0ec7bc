import unittest

from app import create_app
from app.extensions import db


class TestConfig:
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SITE_NAME = "Alpha Coaching"


class SmokeTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestConfig)
        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()

    def test_health_endpoint(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json.get("status"), "ok")

    def test_public_pages_render_on_empty_database(self):
        for path in ("/", "/about", "/courses", "/admission", "/contact"):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 200, path)
            self.assertIn(b"Alpha Coaching", resp.data)

    def test_auth_login_page_accessible(self):
        resp = self.client.get("/auth/login")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"Staff sign in", resp.data)

    def test_login_alias_redirects(self):
        resp = self.client.get("/login", follow_redirects=False)
        self.assertEqual(resp.status_code, 302)
        self.assertIn("/auth/login", resp.headers.get("Location", ""))

    def test_admin_requires_auth(self):
        for path in ("/admin/", "/admin/admission/", "/admin/contacts/"):
            resp = self.client.get(path, follow_redirects=False)
            self.assertEqual(resp.status_code, 302, path)
            self.assertIn("/auth/login", resp.headers.get("Location", ""))

    def test_security_headers_present(self):
        resp = self.client.get("/")
        self.assertEqual(resp.headers.get("X-Frame-Options"), "DENY")
        self.assertEqual(resp.headers.get("X-Content-Type-Options"), "nosniff")
        self.assertIn("default-src 'self'", resp.headers.get("Content-Security-Policy", ""))

    def test_robots_and_sitemap(self):
        robots = self.client.get("/robots.txt")
        self.assertEqual(robots.status_code, 200)
        self.assertIn(b"Disallow: /admin/", robots.data)
        self.assertIn(b"/sitemap.xml", robots.data)

        sitemap = self.client.get("/sitemap.xml")
        self.assertEqual(sitemap.status_code, 200)
        self.assertIn(b"http://localhost/courses", sitemap.data)
        self.assertIn(b"http://localhost/admission", sitemap.data)
        self.assertNotIn(b"/admin", sitemap.data)


if __name__ == "__main__":
    unittest.main()
