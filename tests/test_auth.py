"""
Signup, login, logout and cookie-session behaviour for both realms.
"""

from emporium.models import AdminRefreshToken, RefreshToken, User

SHOPPER_PASSWORD = "secret123"
ADMIN_PASSWORD = "admin-pass-1"


# =============================================================================
# STOREFRONT
# =============================================================================


class TestSignupAndLogin:
    def test_signup_creates_one_user_and_sets_cookies(self, client, db, shopper):
        assert shopper["email"] == "shopper@emporium.io"
        assert db.query(User).count() == 1
        assert client.cookies.get("accessToken")
        assert client.cookies.get("refreshToken")
        assert db.query(RefreshToken).count() == 1

    def test_login_after_signup(self, anon_client, shopper):
        resp = anon_client.post(
            "/api/auth/login", json={"email": "shopper@emporium.io", "password": SHOPPER_PASSWORD}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == shopper["id"]
        assert "accessToken" in resp.cookies

    def test_login_is_case_insensitive_on_email(self, anon_client, shopper):
        resp = anon_client.post(
            "/api/auth/login", json={"email": "Shopper@Emporium.io", "password": SHOPPER_PASSWORD}
        )
        assert resp.status_code == 200

    def test_duplicate_signup_conflicts(self, anon_client, shopper):
        resp = anon_client.post(
            "/api/auth/signup",
            json={"email": "shopper@emporium.io", "password": SHOPPER_PASSWORD, "name": "Again"},
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "Email already registered"

    def test_wrong_password(self, anon_client, shopper):
        resp = anon_client.post("/api/auth/login", json={"email": "shopper@emporium.io", "password": "wrong-pass"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, anon_client):
        resp = anon_client.post("/api/auth/login", json={"email": "nobody@emporium.io", "password": "whatever"})
        assert resp.status_code == 401

    def test_oauth_only_account_cannot_password_login(self, anon_client, db):
        db.add(User(email="oauth@emporium.io", name="OAuth User", google_id="g-123"))
        db.commit()
        resp = anon_client.post("/api/auth/login", json={"email": "oauth@emporium.io", "password": "anything"})
        assert resp.status_code == 401

    def test_signup_validation(self, anon_client):
        resp = anon_client.post("/api/auth/signup", json={"email": "not-an-email", "password": "123", "name": "A"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Invalid input"
        assert body["details"]


class TestStorefrontSession:
    def test_anonymous_check_session(self, anon_client):
        resp = anon_client.get("/api/check-session")
        assert resp.status_code == 401

    def test_check_session_with_access_token(self, client, shopper):
        resp = client.get("/api/check-session")
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == shopper["id"]

    def test_refresh_cookie_alone_mints_access_token(self, client, shopper):
        client.cookies.delete("accessToken")
        resp = client.get("/api/check-session")
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "shopper@emporium.io"
        assert resp.cookies.get("accessToken")

    def test_invalid_access_token_is_fail_open(self, client, shopper):
        client.cookies.delete("accessToken")
        client.cookies.set("accessToken", "not-a-jwt")
        resp = client.get("/api/check-session")
        # Storefront treats a bad access token as anonymous, even with a refresh cookie present
        assert resp.status_code == 401

    def test_public_catalog_ignores_bad_cookies(self, anon_client):
        anon_client.cookies.set("accessToken", "garbage")
        anon_client.cookies.set("refreshToken", "garbage")
        resp = anon_client.get("/api/products")
        assert resp.status_code == 200

    def test_logout_revokes_refresh_token(self, client, db, shopper):
        refresh = client.cookies.get("refreshToken")
        resp = client.post("/api/logout")
        assert resp.status_code == 200
        assert db.query(RefreshToken).count() == 0
        assert client.get("/api/check-session").status_code == 401

        # Replaying the revoked refresh token does not resurrect the session
        client.cookies.set("refreshToken", refresh)
        assert client.get("/api/check-session").status_code == 401

    def test_each_login_persists_another_refresh_token(self, anon_client, db, shopper):
        anon_client.post("/api/auth/login", json={"email": "shopper@emporium.io", "password": SHOPPER_PASSWORD})
        anon_client.post("/api/auth/login", json={"email": "shopper@emporium.io", "password": SHOPPER_PASSWORD})
        assert db.query(RefreshToken).count() == 3


# =============================================================================
# ADMIN CONSOLE
# =============================================================================


class TestAdminSession:
    def test_admin_requires_cookies(self, anon_client):
        resp = anon_client.get("/api/admin/check-session")
        assert resp.status_code == 401
        assert resp.json()["message"] == "No tokens provided"

    def test_admin_check_session(self, admin_client):
        resp = admin_client.get("/api/admin/check-session")
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "GOD"

    def test_invalid_admin_token_is_fail_closed(self, admin_client):
        admin_client.cookies.delete("adminAccessToken")
        admin_client.cookies.set("adminAccessToken", "garbage")
        resp = admin_client.get("/api/admin/check-session")
        assert resp.status_code == 401

    def test_admin_refresh_cookie_alone_mints_access_token(self, admin_client):
        admin_client.cookies.delete("adminAccessToken")
        resp = admin_client.get("/api/admin/check-session")
        assert resp.status_code == 200
        assert resp.cookies.get("adminAccessToken")

    def test_user_session_does_not_open_admin(self, client, shopper):
        assert client.get("/api/admin/check-session").status_code == 401
        # Same JWT secret, but the scope claim keeps realms apart
        client.cookies.set("adminAccessToken", client.cookies.get("accessToken"))
        assert client.get("/api/admin/check-session").status_code == 401

    def test_admin_session_does_not_open_storefront(self, admin_client):
        admin_client.cookies.set("accessToken", admin_client.cookies.get("adminAccessToken"))
        assert admin_client.get("/api/check-session").status_code == 401

    def test_admin_bad_password(self, admin_client, anon_client):
        resp = anon_client.post("/api/admin/auth/login", json={"email": "god@emporium.io", "password": "nope"})
        assert resp.status_code == 401

    def test_admin_login_payload(self, db, admin_client, anon_client):
        resp = anon_client.post(
            "/api/admin/auth/login", json={"email": "god@emporium.io", "password": ADMIN_PASSWORD}
        )
        assert resp.status_code == 200
        assert resp.json()["admin"]["role"] == "GOD"
        assert "adminRefreshToken" in resp.cookies

    def test_admin_logout(self, admin_client, db):
        resp = admin_client.post("/api/admin/auth/logout")
        assert resp.status_code == 200
        assert db.query(AdminRefreshToken).count() == 0
        assert admin_client.get("/api/admin/check-session").status_code == 401
