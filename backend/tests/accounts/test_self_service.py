from datetime import datetime, timedelta, timezone

from clinic_booking.models.appointment import Appointment, AppointmentStatus, ServiceType


def test_login_rejects_bad_code(api_client, create_trapper):
    trapper = create_trapper()
    res = api_client.post("/auth/login", json={"email": trapper["email"], "code": "0001"})
    assert res.status_code == 401, res.text


def test_signup_creates_minimal_trapper(api_client):
    res = api_client.post("/auth/signup", json={"email": "fresh@example.com", "code": "2468"})
    assert res.status_code == 201, res.text
    headers = {"Authorization": f"Bearer {res.json()['access_token']}"}
    me = api_client.get("/me", headers=headers).json()
    assert me["role"] == "trapper"
    assert me["first_name"] == ""
    assert me["notifications_enabled"] is False
    assert "code" not in me

    again = api_client.post("/auth/signup", json={"email": "fresh@example.com", "code": "2468"})
    assert again.status_code == 409


def test_notification_tokens(api_client, trapper_headers):
    res = api_client.post("/me/notification-tokens", json={"token": "abc"}, headers=trapper_headers)
    assert res.status_code == 201, res.text
    assert res.json()["notifications_enabled"] is True
    api_client.post("/me/notification-tokens", json={"token": "abc"}, headers=trapper_headers)
    api_client.post("/me/notification-tokens", json={"token": "def"}, headers=trapper_headers)

    res = api_client.delete("/me/notification-tokens/abc", headers=trapper_headers)
    assert res.status_code == 200, res.text
    assert res.json()["notifications_enabled"] is True

    res = api_client.post("/me/notifications/disable", headers=trapper_headers)
    assert res.json()["notifications_enabled"] is False


def test_my_appointments_split_by_time(api_client, auth_headers, create_trapper, login_as, db, clinic, open_day):
    trapper = create_trapper()
    headers = login_as(trapper["email"], trapper["code"])
    api_client.post(
        "/admin/appointments",
        json={"user_id": trapper["id"], "date": open_day.isoformat(), "tnvr_count": 2, "foster_count": 1},
        headers=auth_headers,
    )
    db.add(
        Appointment(
            user_id=trapper["id"],
            trapper_first_name="Tina",
            trapper_last_name="Past",
            trapper_phone="",
            trapper_number=trapper["trapper_number"],
            service_type=ServiceType.tnvr,
            clinic_id=clinic.id,
            clinic_address=clinic.address,
            appointment_time=datetime.now(timezone.utc) - timedelta(days=30),
            status=AppointmentStatus.completed,
        )
    )
    db.commit()

    upcoming = api_client.get("/me/appointments", params={"view": "upcoming"}, headers=headers).json()
    assert len(upcoming["groups"]) == 1
    group = upcoming["groups"][0]
    assert group["date"] == open_day.isoformat()
    assert (group["tnvr_count"], group["foster_count"]) == (2, 1)
    assert group["clinic_name"] == clinic.name

    history = api_client.get("/me/appointments", params={"view": "history"}, headers=headers).json()
    assert len(history["groups"]) == 1
    assert history["groups"][0]["appointments"][0]["status"] == "Completed"
