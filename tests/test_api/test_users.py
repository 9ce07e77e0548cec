"""API tests for users, the permission matrix and the health check."""


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "database": "ok"}


def test_security_headers(client):
    res = client.get("/health")
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Frame-Options"] == "DENY"


def test_me(client, as_user):
    res = client.get("/api/users/me", headers=as_user("teacher"))
    assert res.status_code == 200
    assert res.json()["username"] == "teacher"


def test_module_access(client, as_user):
    modules = client.get("/api/users/me/modules", headers=as_user("teacher")).json()
    assert modules["tickets"] is True
    assert modules["assignments"] is True
    assert modules["purchase_orders"] is False


def test_permission_change_takes_effect(client, as_user):
    res = client.put("/api/permissions", json={
        "role": "user", "module": "purchase_orders", "action": "view", "scope": "global",
    }, headers=as_user("admin"))
    assert res.status_code == 200
    assert client.get("/api/purchase-orders", headers=as_user("teacher")).status_code == 200

    res = client.delete("/api/permissions/user/purchase_orders/view", headers=as_user("admin"))
    assert res.status_code == 204
    assert client.get("/api/purchase-orders", headers=as_user("teacher")).status_code == 403


def test_only_admin_edits_permissions(client, as_user):
    res = client.put("/api/permissions", json={
        "role": "user", "module": "tickets", "action": "assign", "scope": "global",
    }, headers=as_user("director"))
    assert res.status_code == 403


def test_create_department_and_user(client, as_user):
    res = client.post("/api/departments", json={"code": "MATH", "name": "Mathematics"}, headers=as_user("admin"))
    assert res.status_code == 201
    dept_id = res.json()["id"]

    res = client.post("/api/users", json={
        "username": "newteacher",
        "email": "newteacher@school.cz",
        "role": "user",
        "department_id": dept_id,
    }, headers=as_user("admin"))
    assert res.status_code == 201
    assert res.json()["department_id"] == dept_id
