"""End-to-end scenarios through the HTTP surface."""

import sys
from pathlib import Path

import pydantic
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from techtracker.core.security import hash_password
from techtracker.core.settings import AppSettings
from techtracker.main import create_app
from techtracker.models.user import User

ADMIN_NAME = "root"
ADMIN_PASSWORD = "root-pass"

NEW_UNIT = {
    "name": "HP EliteBook",
    "inventoryNumber": "INV001",
    "category": "laptops",
    "location": "office 101",
    "dateAdded": "2024-03-15",
}


def _settings(**overrides) -> AppSettings:
    values = {
        "DB_URL": "sqlite://",
        "METRICS_ENABLED": False,
        "SESSION_SECRET": "test-session-secret",
        "JWT_SECRET": "test-jwt-secret",
        "BOOTSTRAP_ADMIN_USERNAME": ADMIN_NAME,
        "BOOTSTRAP_ADMIN_PASSWORD": ADMIN_PASSWORD,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)


@pytest.fixture()
def client():
    app = create_app(settings=_settings())
    with TestClient(app) as test_client:
        yield test_client


def bearer(client: TestClient, username: str, password: str) -> dict[str, str]:
    """Log in, drop the session cookie and return an Authorization header."""

    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
def admin_headers(client):
    return bearer(client, ADMIN_NAME, ADMIN_PASSWORD)


@pytest.fixture()
def user_headers(client, admin_headers):
    response = client.post(
        "/api/v1/users",
        json={"username": "olena", "password": "s3cret", "role": "user", "department": "Accounting"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return bearer(client, "olena", "s3cret")


def _history(client, **params):
    response = client.get("/api/v1/history", params=params)
    assert response.status_code == 200
    return response.json()


# ---- Equipment lifecycle


def test_create_update_delete_scenario(client, user_headers):
    created = client.post("/api/v1/equipment", json=NEW_UNIT, headers=user_headers)
    assert created.status_code == 201, created.text
    unit = created.json()
    assert unit["category"] == "Laptops"
    assert unit["location"] == "Office 101"
    assert unit["dateAdded"] == "2024-03-15"
    assert unit["createdBy"] == "olena"

    history = _history(client)
    assert len(history) == 1
    assert history[0]["action"] == "Created"
    assert history[0]["equipment_name"] == "HP EliteBook"
    assert history[0]["equipment_id"] == unit["id"]
    assert "INV001" in history[0]["details"]

    moved = dict(NEW_UNIT, location="Office 102")
    updated = client.put(f"/api/v1/equipment/{unit['id']}", json=moved, headers=user_headers)
    assert updated.status_code == 200, updated.text
    assert updated.json()["location"] == "Office 102"

    history = _history(client)
    assert [h["action"] for h in history] == ["Updated", "Created"]
    assert history[0]["details"] == 'Updated: cabinet from "Office 101" to "Office 102".'

    unchanged = client.put(f"/api/v1/equipment/{unit['id']}", json=moved, headers=user_headers)
    assert unchanged.status_code == 200
    assert len(_history(client)) == 2

    deleted = client.delete(f"/api/v1/equipment/{unit['id']}", headers=user_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/v1/equipment/{unit['id']}").status_code == 404

    history = _history(client, equipment_id=unit["id"])
    assert [h["action"] for h in history] == ["Deleted", "Updated", "Created"]
    assert history[0]["equipment_name"] == "HP EliteBook"
    assert history[0]["equipment_inventory_number"] == "INV001"


def test_public_reads_need_no_login(client, user_headers):
    client.post("/api/v1/equipment", json=NEW_UNIT, headers=user_headers)
    client.post(
        "/api/v1/equipment",
        json=dict(NEW_UNIT, inventoryNumber="INV002", category="  mONITORS ", location="office 7"),
        headers=user_headers,
    )

    listing = client.get("/api/v1/equipment")
    assert listing.status_code == 200
    assert {row["inventoryNumber"] for row in listing.json()} == {"INV001", "INV002"}
    assert client.get("/api/v1/categories").json() == ["Laptops", "Monitors"]
    assert client.get("/api/v1/locations").json() == ["Office 101", "Office 7"]


def test_duplicate_inventory_number_is_conflict(client, user_headers):
    assert client.post("/api/v1/equipment", json=NEW_UNIT, headers=user_headers).status_code == 201

    response = client.post("/api/v1/equipment", json=NEW_UNIT, headers=user_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "conflict"
    assert "INV001" in body["message"]
    assert len(_history(client)) == 1


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"dateAdded": "2024-04-31"}, "calendar"),
        ({"dateAdded": "2024-13-01"}, "calendar"),
        ({"dateAdded": "15/03/2024"}, "YYYY-MM-DD"),
        ({"name": "   "}, "name"),
        ({"inventoryNumber": None}, "inventoryNumber"),
    ],
)
def test_invalid_payloads_are_rejected(client, user_headers, overrides, fragment):
    response = client.post("/api/v1/equipment", json=dict(NEW_UNIT, **overrides), headers=user_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert fragment in response.json()["message"]
    assert _history(client) == []


def test_malformed_json_is_a_client_error(client, user_headers):
    response = client.post(
        "/api/v1/equipment",
        content="{not json",
        headers={**user_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_missing_equipment_is_not_found(client, user_headers):
    assert client.get("/api/v1/equipment/nope").status_code == 404
    assert client.put("/api/v1/equipment/nope", json=NEW_UNIT, headers=user_headers).status_code == 404
    response = client.delete("/api/v1/equipment/nope", headers=user_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
    assert _history(client) == []


# ---- Authorization


def test_anonymous_mutations_are_unauthenticated(client):
    assert client.post("/api/v1/equipment", json=NEW_UNIT).status_code == 401
    assert client.put("/api/v1/equipment/x", json=NEW_UNIT).status_code == 401
    response = client.delete("/api/v1/equipment/x")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"
    assert client.get("/api/v1/users").status_code == 401


def test_admin_cannot_mutate_equipment(client, admin_headers):
    response = client.post("/api/v1/equipment", json=NEW_UNIT, headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["details"] == {"reason": "wrong_role"}


def test_user_cannot_manage_accounts(client, user_headers):
    response = client.get("/api/v1/users", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["details"]["reason"] == "wrong_role"

    response = client.post(
        "/api/v1/users",
        json={"username": "mallory", "password": "x", "role": "admin", "department": "IT"},
        headers=user_headers,
    )
    assert response.status_code == 403


def test_admin_accounts_are_protected(client, admin_headers):
    users = client.get("/api/v1/users", headers=admin_headers).json()
    root = next(u for u in users if u["username"] == ADMIN_NAME)

    demote = client.put(f"/api/v1/users/{root['id']}", json={"role": "user"}, headers=admin_headers)
    assert demote.status_code == 403
    assert demote.json()["details"] == {"reason": "protected_target"}

    delete = client.delete(f"/api/v1/users/{root['id']}", headers=admin_headers)
    assert delete.status_code == 403
    assert delete.json()["details"] == {"reason": "protected_target"}

    assert any(u["username"] == ADMIN_NAME for u in client.get("/api/v1/users", headers=admin_headers).json())


# ---- Account management


def test_account_lifecycle(client, admin_headers):
    created = client.post(
        "/api/v1/users",
        json={"username": "taras", "password": "pw-1", "role": "user", "department": "Sales"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    account = created.json()
    assert "password" not in account and "password_hash" not in account

    duplicate = client.post(
        "/api/v1/users",
        json={"username": "taras", "password": "pw-2", "role": "user", "department": "Sales"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 409
    assert "taras" in duplicate.json()["message"]

    renamed = client.put(
        f"/api/v1/users/{account['id']}", json={"department": "Logistics"}, headers=admin_headers
    )
    assert renamed.status_code == 200
    assert renamed.json()["department"] == "Logistics"

    empty = client.put(f"/api/v1/users/{account['id']}", json={}, headers=admin_headers)
    assert empty.status_code == 400

    bad_role = client.put(f"/api/v1/users/{account['id']}", json={"role": "owner"}, headers=admin_headers)
    assert bad_role.status_code == 400

    assert client.delete(f"/api/v1/users/{account['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/users/{account['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/v1/users/{account['id']}", headers=admin_headers).status_code == 404
    assert _history(client) == []


# ---- Sessions


def test_cookie_session_round_trip(client, user_headers):
    login = client.post("/api/v1/auth/login", json={"username": "olena", "password": "s3cret"})
    assert login.status_code == 200
    assert login.json()["role"] == "user"

    me = client.get("/api/v1/auth/user").json()
    assert me == {
        "isLoggedIn": True,
        "id": me["id"],
        "username": "olena",
        "role": "user",
        "department": "Accounting",
    }
    assert client.post("/api/v1/equipment", json=NEW_UNIT).status_code == 201

    assert client.post("/api/v1/auth/logout").json() == {"ok": True}
    assert client.get("/api/v1/auth/user").json() == {"isLoggedIn": False}
    assert client.post("/api/v1/equipment", json=dict(NEW_UNIT, inventoryNumber="X")).status_code == 401


def test_bad_credentials_are_rejected(client):
    wrong = client.post("/api/v1/auth/login", json={"username": ADMIN_NAME, "password": "nope"})
    unknown = client.post("/api/v1/auth/login", json={"username": "ghost", "password": "nope"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"]

    missing = client.post("/api/v1/auth/login", json={"username": ADMIN_NAME})
    assert missing.status_code == 400


def test_garbage_credentials_resolve_to_anonymous(client):
    client.cookies.set("techtracker-auth-session", "not-a-sealed-value")
    assert client.get("/api/v1/auth/user").json() == {"isLoggedIn": False}

    headers = {"Authorization": "Bearer not.a.jwt"}
    assert client.get("/api/v1/auth/user", headers=headers).json() == {"isLoggedIn": False}
    assert client.post("/api/v1/equipment", json=NEW_UNIT, headers=headers).status_code == 401


def test_token_signed_with_another_secret_is_ignored(client):
    other_app = create_app(settings=_settings(JWT_SECRET="someone-else"))
    with TestClient(other_app) as other:
        foreign = bearer(other, ADMIN_NAME, ADMIN_PASSWORD)
    assert client.get("/api/v1/users", headers=foreign).status_code == 401


# ---- Storage


def test_health_reports_database_state(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "database": "up"}


def test_unconfigured_storage_reports_hint():
    app = create_app(settings=_settings(DB_URL=""))
    with TestClient(app) as unconfigured:
        response = unconfigured.get("/api/v1/equipment")
        assert response.status_code == 500
        assert response.json()["code"] == "storage_unavailable"
        assert "DATABASE_URL" in response.json()["message"]
        assert unconfigured.get("/health").status_code == 503


def test_responses_carry_request_id(client):
    response = client.get("/api/v1/equipment", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert response.headers["Cache-Control"] == "no-store"


def test_password_byte_limit_is_a_validation_error(client, admin_headers):
    account = {"username": "ivanna", "role": "user", "department": "Sales"}

    too_long = client.post("/api/v1/users", json={**account, "password": "ї" * 40}, headers=admin_headers)
    assert too_long.status_code == 400
    assert too_long.json()["code"] == "validation_error"
    assert "72 bytes" in too_long.json()["message"]

    created = client.post("/api/v1/users", json={**account, "password": "ї" * 36}, headers=admin_headers)
    assert created.status_code == 201
    login = client.post("/api/v1/auth/login", json={"username": "ivanna", "password": "ї" * 36})
    assert login.status_code == 200
    client.cookies.clear()

    update = client.put(
        f"/api/v1/users/{created.json()['id']}", json={"password": "ї" * 40}, headers=admin_headers
    )
    assert update.status_code == 400


def test_bootstrap_password_over_the_byte_limit_is_rejected_at_load():
    with pytest.raises(pydantic.ValidationError, match="BOOTSTRAP_ADMIN_PASSWORD"):
        _settings(BOOTSTRAP_ADMIN_PASSWORD="ї" * 40)


def test_account_with_unknown_role_cannot_sign_in_but_can_be_fixed(client, admin_headers):
    with client.app.state.database.session() as db:
        db.add(
            User(
                id="legacy-user",
                username="legacy",
                password_hash=hash_password("old-pw"),
                role="auditor",
                department="Audit",
            )
        )
        db.commit()

    login = client.post("/api/v1/auth/login", json={"username": "legacy", "password": "old-pw"})
    assert login.status_code == 403
    assert login.json()["details"] == {"reason": "wrong_role"}

    listed = {u["username"]: u["role"] for u in client.get("/api/v1/users", headers=admin_headers).json()}
    assert listed["legacy"] == "auditor"

    fixed = client.put("/api/v1/users/legacy-user", json={"role": "user"}, headers=admin_headers)
    assert fixed.status_code == 200
    assert client.post("/api/v1/auth/login", json={"username": "legacy", "password": "old-pw"}).status_code == 200


def test_history_endpoint_returns_everything_without_limit(client, user_headers):
    for number in range(3):
        client.post("/api/v1/equipment", json=dict(NEW_UNIT, inventoryNumber=f"H{number}"), headers=user_headers)

    assert len(client.get("/api/v1/history").json()) == 3
    assert len(client.get("/api/v1/history", params={"limit": 2}).json()) == 2
    assert client.get("/api/v1/history", params={"limit": 0}).status_code == 400
