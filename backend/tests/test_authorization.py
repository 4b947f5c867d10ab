"""
HTTP authorization tests.

Verifies:
- Protected routes return 401 without a valid token
- Permission checks return 403 with the missing permission code
- Admin and cashier see what their roles allow
- /health is public
"""

PASSWORD = "Password123!"


def test_health_is_public(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json["status"] == "healthy"


def test_login_and_me(client, admin_user):
    response = client.post("/api/auth/login", json={"username": "admin", "password": PASSWORD})
    assert response.status_code == 200
    body = response.json
    assert body["token"]
    assert "SYSTEM_ADMIN" in body["permissions"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200


def test_login_by_email(login, admin_user):
    assert login("admin@stockdesk.test") is not None


def test_bad_password(client, admin_user):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401


def test_missing_credentials(client, db_session):
    assert client.post("/api/auth/login", json={"username": "admin"}).status_code == 400


def test_no_token(client, db_session):
    response = client.get("/api/products")
    assert response.status_code == 401
    assert response.json["error"] == "Authentication required"


def test_garbage_token(client, db_session):
    response = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_logout_revokes_token(client, login, admin_user):
    headers = login("admin")
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_cashier_cannot_manage_products(client, cashier_headers):
    response = client.post("/api/products", json={"name": "Contraband"}, headers=cashier_headers)
    assert response.status_code == 403
    assert response.json["required_permission"] == "MANAGE_PRODUCTS"


def test_cashier_can_view_products(client, cashier_headers):
    assert client.get("/api/products", headers=cashier_headers).status_code == 200


def test_cashier_cannot_manage_users_or_settings(client, cashier_headers):
    assert client.get("/api/admin/users", headers=cashier_headers).status_code == 403
    assert client.put("/api/settings", json={"currency": "EUR"}, headers=cashier_headers).status_code == 403
    assert client.get("/api/expenses", headers=cashier_headers).status_code == 403


def test_admin_can_manage_users(client, admin_headers):
    response = client.get("/api/admin/users", headers=admin_headers)
    assert response.status_code == 200


def test_admin_updates_settings(client, admin_headers):
    response = client.put("/api/settings", json={"currency": "EUR", "tax_rate": 5}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json["currency"] == "EUR"

    bad = client.put("/api/settings/tax_rate", json={"value": 500}, headers=admin_headers)
    assert bad.status_code == 400


def test_role_grant_takes_effect_immediately(client, admin_headers, cashier_headers):
    assert client.get("/api/admin/users", headers=cashier_headers).status_code == 403

    granted = client.post("/api/admin/roles/cashier/permissions",
                          json={"permission_code": "VIEW_USERS"}, headers=admin_headers)
    assert granted.status_code == 200
    assert "VIEW_USERS" in granted.json["permissions"]
    assert client.get("/api/admin/users", headers=cashier_headers).status_code == 200

    revoked = client.delete("/api/admin/roles/cashier/permissions/VIEW_USERS", headers=admin_headers)
    assert "VIEW_USERS" not in revoked.json["permissions"]
    assert client.get("/api/admin/users", headers=cashier_headers).status_code == 403


def test_grant_unknown_permission_code(client, admin_headers):
    response = client.post("/api/admin/roles/cashier/permissions",
                           json={"permission_code": "LAUNCH_ROCKETS"}, headers=admin_headers)
    assert response.status_code == 400
    assert "Unknown permission code" in response.json["error"]
