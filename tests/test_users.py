from woms.models.enums import Role
from woms.models.models import User


def test_manager_reads_but_cannot_create(client, auth_headers, manager):
    headers = auth_headers(manager)
    assert client.get("/api/users", headers=headers).status_code == 200
    resp = client.post(
        "/api/users",
        headers=headers,
        json={"email": "x@example.com", "password": "secret123", "firstName": "X", "lastName": "Y", "role": "WORKER"},
    )
    assert resp.status_code == 403


def test_worker_cannot_list_users(client, auth_headers, worker):
    assert client.get("/api/users", headers=auth_headers(worker)).status_code == 403


def test_admin_creates_and_rejects_duplicates(client, auth_headers, admin):
    payload = {"email": "tech@example.com", "password": "secret123", "firstName": "Tech", "lastName": "One", "role": "MANAGER"}
    resp = client.post("/api/users", headers=auth_headers(admin), json=payload)
    assert resp.status_code == 201
    assert resp.json()["data"]["role"] == "MANAGER"

    resp = client.post("/api/users", headers=auth_headers(admin), json=payload)
    assert resp.status_code == 400


def test_list_filters_and_ordering(client, auth_headers, admin, make_user):
    make_user(Role.WORKER, first_name="Zoran")
    make_user(Role.WORKER, first_name="Bojan")
    make_user(Role.MANAGER, first_name="Milan")
    make_user(Role.WORKER, first_name="Stefan", is_active=False)

    data = client.get("/api/users", headers=auth_headers(admin)).json()["data"]
    assert [u["firstName"] for u in data] == ["Ada", "Milan", "Bojan", "Stefan", "Zoran"]

    workers = client.get("/api/users?role=WORKER&isActive=true", headers=auth_headers(admin)).json()["data"]
    assert [u["firstName"] for u in workers] == ["Bojan", "Zoran"]

    found = client.get("/api/users?search=bOj", headers=auth_headers(admin)).json()["data"]
    assert [u["firstName"] for u in found] == ["Bojan"]


def test_update_resets_password(client, auth_headers, admin, worker):
    resp = client.put(
        f"/api/users/{worker.id}",
        headers=auth_headers(admin),
        json={"lastName": "Renamed", "password": "brand-new-pass"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["lastName"] == "Renamed"

    login = client.post("/api/auth/login", json={"email": worker.email, "password": "brand-new-pass"})
    assert login.status_code == 200


def test_status_toggle(client, auth_headers, admin, worker):
    resp = client.patch(f"/api/users/{worker.id}/status", headers=auth_headers(admin), json={"isActive": False})
    assert resp.status_code == 200
    assert resp.json()["data"]["isActive"] is False


def test_delete_is_soft_unless_hard(client, db, auth_headers, admin, worker, other_worker):
    assert client.delete(f"/api/users/{worker.id}", headers=auth_headers(admin)).status_code == 200
    db.expire_all()
    assert db.get(User, worker.id).is_active is False

    assert client.delete(f"/api/users/{other_worker.id}?hard=true", headers=auth_headers(admin)).status_code == 200
    db.expire_all()
    assert db.get(User, other_worker.id) is None


def test_hard_delete_of_order_creator_is_rejected(client, auth_headers, admin, manager, make_order):
    make_order(creator=manager)
    resp = client.delete(f"/api/users/{manager.id}?hard=true", headers=auth_headers(admin))
    assert resp.status_code == 400


def test_get_unknown_user(client, auth_headers, admin):
    resp = client.get("/api/users/00000000-0000-0000-0000-000000000000", headers=auth_headers(admin))
    assert resp.status_code == 404


def test_workers_with_assigned_counts(client, auth_headers, manager, worker, other_worker, make_order):
    make_order(assignee=worker)
    make_order(assignee=worker)

    data = client.get("/api/users/workers/stats", headers=auth_headers(manager)).json()["data"]
    counts = {row["id"]: row["assignedOrdersCount"] for row in data}
    assert counts == {str(worker.id): 2, str(other_worker.id): 0}

    workers = client.get("/api/users/workers", headers=auth_headers(manager)).json()["data"]
    assert {w["id"] for w in workers} == {str(worker.id), str(other_worker.id)}
