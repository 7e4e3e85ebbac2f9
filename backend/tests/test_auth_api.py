from app.core.config import settings
from app.models.audit_log import AuditLogEntry

PASSWORD = "password123"


def test_login_returns_token_and_user(client, admin):
    r = client.post("/api/auth/login", json={"username": "admin", "password": PASSWORD})

    assert r.status_code == 200
    data = r.json()
    assert data["token"]
    assert data["user"]["username"] == "admin"
    assert data["user"]["fullName"] == "Alice Admin"
    assert data["user"]["role"] == "admin"
    assert settings.AUTH_COOKIE_NAME in r.cookies

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.json()["username"] == "admin"


def test_login_failures_are_generic(client, admin):
    wrong = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    unknown = client.post("/api/auth/login", json={"username": "ghost", "password": PASSWORD})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"message": "Invalid username or password"}


def test_inactive_user_cannot_log_in(client, db, pharmacist):
    pharmacist.is_active = False
    db.commit()
    r = client.post("/api/auth/login", json={"username": "pharm", "password": PASSWORD})
    assert r.status_code == 401


def test_cookie_authentication(client, admin, admin_headers):
    token = admin_headers["Authorization"].split()[1]
    client.cookies.set(settings.AUTH_COOKIE_NAME, token)
    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["role"] == "admin"


def test_logout(client, pharmacist_headers):
    r = client.post("/api/auth/logout", headers=pharmacist_headers)
    assert r.json() == {"message": "Logged out successfully"}


def test_admin_creates_users(client, db, admin, admin_headers):
    body = {"username": "doc", "password": "longenough", "fullName": "Dr. Doe", "role": "doctor"}

    r = client.post("/api/users", json=body, headers=admin_headers)

    assert r.status_code == 201
    assert r.json()["role"] == "doctor"
    assert db.query(AuditLogEntry).filter(AuditLogEntry.entity_type == "user").count() == 1

    r = client.post("/api/users", json=body, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "Username already exists"}

    users = client.get("/api/users", headers=admin_headers).json()
    assert [u["username"] for u in users] == ["admin", "doc"]


def test_user_validation(client, admin_headers):
    r = client.post("/api/users", json={"username": "x", "password": "short"}, headers=admin_headers)
    assert r.status_code == 400

    r = client.post(
        "/api/users", json={"username": "x", "password": "longenough", "role": "janitor"}, headers=admin_headers
    )
    assert r.status_code == 400


def test_only_admins_manage_users(client, pharmacist_headers):
    assert client.get("/api/users", headers=pharmacist_headers).status_code == 403
    r = client.post(
        "/api/users", json={"username": "x", "password": "longenough"}, headers=pharmacist_headers
    )
    assert r.status_code == 403


def test_audit_log_is_admin_only(client, admin_headers, pharmacist_headers, forms, category):
    client.post("/api/inventory/categories", json={"name": "Antibiotics"}, headers=pharmacist_headers)

    assert client.get("/api/audit", headers=pharmacist_headers).status_code == 403
    entries = client.get("/api/audit", params={"entityType": "category"}, headers=admin_headers).json()
    assert len(entries) == 1
    assert entries[0]["actionType"] == "create"
    assert entries[0]["details"]["name"] == "Antibiotics"


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
