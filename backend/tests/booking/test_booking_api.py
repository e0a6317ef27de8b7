from datetime import timedelta

from sqlalchemy import func, select

from clinic_booking.models.account import Account
from clinic_booking.models.appointment import Appointment, AppointmentStatus, ServiceType


def _book(api_client, headers, day, tnvr=0, foster=0, **extra):
    payload = {"date": day.isoformat(), "tnvr_count": tnvr, "foster_count": foster, **extra}
    return api_client.post("/bookings", json=payload, headers=headers)


def test_booking_over_capacity_is_rejected_without_records(
    api_client, auth_headers, trapper_headers, put_capacity, open_day, db
):
    put_capacity(open_day, tnvr=2, foster=0)

    res = _book(api_client, trapper_headers, open_day, tnvr=3)
    assert res.status_code == 409, res.text
    assert res.json()["code"] == "resource_exhausted"

    assert db.scalar(select(func.count(Appointment.id))) == 0
    roster = api_client.get(
        "/admin/appointments/day", params={"date": open_day.isoformat()}, headers=auth_headers
    )
    assert roster.status_code == 200, roster.text
    assert roster.json()["tnvr_count"] == 0


def test_booking_fills_capacity_and_counts_metric(api_client, trapper_headers, put_capacity, open_day):
    put_capacity(open_day, tnvr=2, foster=1)

    res = _book(api_client, trapper_headers, open_day, tnvr=2, notes="two ferals")
    assert res.status_code == 201, res.text
    body = res.json()
    assert len(body["appointments"]) == 2
    assert {item["service_type"] for item in body["appointments"]} == {"TNVR"}
    assert all(item["status"] == "Upcoming" for item in body["appointments"])
    assert all(item["notes"] == "two ferals" for item in body["appointments"])
    assert body["availability"]["remaining_tnvr"] == 0
    assert body["availability"]["remaining_foster"] == 1

    me = api_client.get("/me", headers=trapper_headers)
    assert me.status_code == 200, me.text
    assert me.json()["performance_metrics"]["total_appointments_booked"] == 2


def test_last_slot_goes_to_first_booker(
    api_client, create_trapper, login_as, put_capacity, open_day
):
    put_capacity(open_day, tnvr=1, foster=0)
    first = create_trapper()
    second = create_trapper()
    first_headers = login_as(first["email"], first["code"])
    second_headers = login_as(second["email"], second["code"])

    assert _book(api_client, first_headers, open_day, tnvr=1).status_code == 201
    res = _book(api_client, second_headers, open_day, tnvr=1)
    assert res.status_code == 409, res.text
    assert res.json()["code"] == "resource_exhausted"


def test_missing_capacity_record_means_no_slots(api_client, trapper_headers, open_day):
    res = _book(api_client, trapper_headers, open_day, foster=1)
    assert res.status_code == 409, res.text


def test_booking_requires_counts(api_client, trapper_headers, open_day):
    res = _book(api_client, trapper_headers, open_day)
    assert res.status_code == 400, res.text
    assert res.json()["code"] == "invalid_argument"
    assert "tnvr_count" in res.json()["errors"]

    res = _book(api_client, trapper_headers, open_day, tnvr=-1, foster=1)
    assert res.status_code == 400, res.text


def test_booking_rejects_closed_and_past_days(api_client, trapper_headers, put_capacity, closed_day, open_day):
    put_capacity(closed_day, tnvr=5, foster=5)
    res = _book(api_client, trapper_headers, closed_day, tnvr=1)
    assert res.status_code == 400, res.text
    assert "date" in res.json()["errors"]

    past = open_day - timedelta(days=365)
    res = _book(api_client, trapper_headers, past, tnvr=1)
    assert res.status_code == 400, res.text


def test_booking_requires_complete_profile(api_client, put_capacity, open_day):
    signup = api_client.post("/auth/signup", json={"email": "newbie@example.com", "code": "4321"})
    assert signup.status_code == 201, signup.text
    headers = {"Authorization": f"Bearer {signup.json()['access_token']}"}
    put_capacity(open_day, tnvr=3, foster=3)

    res = _book(api_client, headers, open_day, tnvr=1)
    assert res.status_code == 400, res.text
    assert "profile" in res.json()["errors"]

    patch = api_client.patch(
        "/me",
        json={"first_name": "New", "last_name": "Trapper", "phone": "305-555-0000"},
        headers=headers,
    )
    assert patch.status_code == 200, patch.text
    assert _book(api_client, headers, open_day, tnvr=1).status_code == 201


def test_booking_snapshots_trapper_fields(api_client, create_trapper, login_as, put_capacity, open_day, db):
    trapper = create_trapper(first_name="Sam", last_name="Snap", trapper_number="777")
    headers = login_as(trapper["email"], trapper["code"])
    put_capacity(open_day, tnvr=1, foster=1)

    assert _book(api_client, headers, open_day, foster=1).status_code == 201
    account = db.get(Account, trapper["id"])
    account.first_name = "Changed"
    db.commit()

    appointment = db.scalar(select(Appointment).where(Appointment.user_id == trapper["id"]))
    assert appointment.trapper_first_name == "Sam"
    assert appointment.trapper_number == "777"
    assert appointment.service_type == ServiceType.foster
    assert appointment.status == AppointmentStatus.upcoming


def test_booking_requires_authentication(api_client, open_day):
    res = _book(api_client, {}, open_day, tnvr=1)
    assert res.status_code == 401, res.text
    assert res.json()["code"] == "unauthenticated"
