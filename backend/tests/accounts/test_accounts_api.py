from sqlalchemy import select

from clinic_booking.models.account import Account
from clinic_booking.services import accounts as accounts_service


def test_create_account_requires_admin(api_client, trapper_headers, db):
    res = api_client.post(
        "/accounts",
        json={
            "email": "sneaky@example.com",
            "first_name": "Sneaky",
            "last_name": "Trapper",
            "role": "admin",
            "code": "9999",
        },
        headers=trapper_headers,
    )
    assert res.status_code == 403, res.text
    assert res.json()["detail"] == "Forbidden"
    assert db.scalar(select(Account).where(Account.email == "sneaky@example.com")) is None


def test_create_account_requires_authentication(api_client):
    res = api_client.post("/accounts", json={"email": "anon@example.com"})
    assert res.status_code == 401, res.text


def test_create_account_field_errors(api_client, auth_headers):
    res = api_client.post(
        "/accounts",
        json={"email": "not-an-email", "role": "trapper", "code": "12a4"},
        headers=auth_headers,
    )
    assert res.status_code == 400, res.text
    errors = res.json()["errors"]
    assert set(errors) >= {"email", "first_name", "last_name", "trapper_number", "code"}


def test_create_account_duplicate_email(api_client, auth_headers, create_trapper):
    trapper = create_trapper()
    res = api_client.post(
        "/accounts",
        json={**{k: v for k, v in trapper.items() if k != "id"}, "trapper_number": "999"},
        headers=auth_headers,
    )
    assert res.status_code == 409, res.text
    assert res.json()["code"] == "already_exists"


def test_profile_failure_removes_identity(api_client, app, auth_headers, db, monkeypatch):
    def _broken_profile(*args, **kwargs):
        raise RuntimeError("profile store unavailable")

    monkeypatch.setattr(accounts_service, "_build_profile", _broken_profile)
    res = api_client.post(
        "/accounts",
        json={
            "email": "halfway@example.com",
            "first_name": "Half",
            "last_name": "Way",
            "role": "trapper",
            "trapper_number": "55",
            "code": "1111",
        },
        headers=auth_headers,
    )
    assert res.status_code == 500, res.text
    assert res.json()["code"] == "internal"
    assert app.state.identity.email_in_use("halfway@example.com") is False
    assert db.scalar(select(Account).where(Account.email == "halfway@example.com")) is None


def test_credential_round_trip(api_client, app, auth_headers, create_trapper, login_as):
    trapper = create_trapper(code="1234")
    assert app.state.identity.verify(email=trapper["email"], password="MM1234") == trapper["id"]
    login_as(trapper["email"], "1234")

    res = api_client.post(
        f"/accounts/{trapper['id']}/credential", json={"new_code": "5678"}, headers=auth_headers
    )
    assert res.status_code == 204, res.text

    stale = api_client.post("/auth/login", json={"email": trapper["email"], "code": "1234"})
    assert stale.status_code == 401
    login_as(trapper["email"], "5678")
    detail = api_client.get(f"/accounts/{trapper['id']}", headers=auth_headers)
    assert detail.json()["code"] == "5678"


def test_credential_change_validation(api_client, auth_headers, create_trapper):
    trapper = create_trapper()
    res = api_client.post(
        f"/accounts/{trapper['id']}/credential", json={"new_code": "12345"}, headers=auth_headers
    )
    assert res.status_code == 400, res.text
    res = api_client.post("/accounts/missing/credential", json={"new_code": "1234"}, headers=auth_headers)
    assert res.status_code == 404, res.text


def test_delete_account_is_retryable(api_client, app, auth_headers, create_trapper, db):
    trapper = create_trapper()
    # Simulate an earlier delete that removed only the identity.
    app.state.identity.delete_identity(trapper["id"])

    res = api_client.delete(f"/accounts/{trapper['id']}", headers=auth_headers)
    assert res.status_code == 204, res.text
    assert db.get(Account, trapper["id"]) is None

    again = api_client.delete(f"/accounts/{trapper['id']}", headers=auth_headers)
    assert again.status_code == 404


def test_deleted_account_token_is_rejected(api_client, auth_headers, create_trapper, login_as):
    trapper = create_trapper()
    headers = login_as(trapper["email"], trapper["code"])
    assert api_client.delete(f"/accounts/{trapper['id']}", headers=auth_headers).status_code == 204
    res = api_client.get("/me", headers=headers)
    assert res.status_code == 401


def test_role_change_takes_effect_on_next_request(api_client, auth_headers, create_trapper, login_as):
    trapper = create_trapper()
    headers = login_as(trapper["email"], trapper["code"])
    assert api_client.get("/accounts", headers=headers).status_code == 403

    res = api_client.patch(f"/accounts/{trapper['id']}", json={"role": "admin"}, headers=auth_headers)
    assert res.status_code == 200, res.text
    assert api_client.get("/accounts", headers=headers).status_code == 200


def test_list_accounts_and_update_metrics(api_client, auth_headers, create_trapper):
    create_trapper(trapper_number="250")
    create_trapper(trapper_number="130")
    listing = api_client.get("/accounts", headers=auth_headers)
    assert listing.status_code == 200, listing.text
    numbers = [item["trapper_number"] for item in listing.json() if item["trapper_number"]]
    assert numbers == sorted(numbers)

    target = listing.json()[0]["id"]
    res = api_client.put(
        f"/accounts/{target}/metrics",
        json={"total_appointments_completed": 4, "strikes": 1, "commitment_score": 80},
        headers=auth_headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["performance_metrics"]["strikes"] == 1


def test_update_account_rejects_unknown_region(api_client, auth_headers, create_trapper):
    trapper = create_trapper()
    res = api_client.patch(
        f"/accounts/{trapper['id']}", json={"trapper_region": ["Atlantis"]}, headers=auth_headers
    )
    assert res.status_code == 400, res.text
    assert "trapper_region" in res.json()["errors"]


def test_audit_log_records_account_changes(api_client, auth_headers, create_trapper):
    trapper = create_trapper()
    res = api_client.get(
        "/audit", params={"entity_type": "account", "entity_id": trapper["id"]}, headers=auth_headers
    )
    assert res.status_code == 200, res.text
    actions = [entry["action"] for entry in res.json()]
    assert "account.created" in actions
    assert all("code" not in (entry["after_json"] or {}) for entry in res.json())


def test_update_account_rejects_cleared_required_fields(api_client, auth_headers, create_trapper):
    trapper = create_trapper()
    path = f"/accounts/{trapper['id']}"

    res = api_client.patch(
        path,
        json={"first_name": None, "trapper_region": None, "is_active": None},
        headers=auth_headers,
    )
    assert res.status_code == 400, res.text
    errors = res.json()["errors"]
    assert {"first_name", "trapper_region", "is_active"} <= set(errors)

    current = api_client.get(path, headers=auth_headers).json()
    assert current["first_name"] == trapper["first_name"]
    assert current["trapper_region"] == trapper["trapper_region"]

    cleared_reason = api_client.patch(path, json={"restriction_reason": None}, headers=auth_headers)
    assert cleared_reason.status_code == 200, cleared_reason.text
