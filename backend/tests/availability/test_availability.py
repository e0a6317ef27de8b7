from datetime import date

from clinic_booking.models.clinic import CapacityRecord, Clinic
from clinic_booking.services.availability import BookedCounts, build_availability

CLINIC = Clinic(id=1, slug="test", name="Test", address="1 Main St", timezone="America/New_York")


def test_remaining_is_capacity_minus_booked():
    record = CapacityRecord(clinic_id=1, day=date(2026, 5, 4), tnvr_capacity=10, foster_capacity=4)
    result = build_availability(CLINIC, record.day, record, BookedCounts(tnvr=3, foster=4))
    assert result.remaining_tnvr == 7
    assert result.remaining_foster == 0
    assert result.has_capacity_record is True


def test_overbooked_day_reports_negative_remaining():
    record = CapacityRecord(clinic_id=1, day=date(2026, 5, 4), tnvr_capacity=2, foster_capacity=0)
    result = build_availability(CLINIC, record.day, record, BookedCounts(tnvr=5))
    assert result.remaining_tnvr == -3


def test_missing_record_policies():
    zero = build_availability(CLINIC, date(2026, 5, 4), None, BookedCounts(tnvr=1))
    assert (zero.tnvr_capacity, zero.remaining_tnvr) == (0, -1)
    assert zero.has_capacity_record is False

    unbounded = build_availability(CLINIC, date(2026, 5, 4), None, BookedCounts(tnvr=1), policy="unbounded")
    assert unbounded.tnvr_capacity is None
    assert unbounded.remaining_tnvr is None
    assert unbounded.booked_tnvr == 1


def test_availability_endpoint(api_client, auth_headers, create_trapper, trapper_headers, put_capacity, open_day):
    put_capacity(open_day, tnvr=4, foster=2)
    trapper = create_trapper()
    api_client.post(
        "/admin/appointments",
        json={"user_id": trapper["id"], "date": open_day.isoformat(), "tnvr_count": 1, "foster_count": 2},
        headers=auth_headers,
    )

    res = api_client.get("/availability", params={"date": open_day.isoformat()}, headers=trapper_headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["remaining_tnvr"] == 3
    assert body["remaining_foster"] == 0
    assert body["is_open"] is True


def test_edit_mode_excludes_appointment(api_client, auth_headers, create_trapper, put_capacity, open_day):
    put_capacity(open_day, tnvr=1, foster=0)
    trapper = create_trapper()
    created = api_client.post(
        "/admin/appointments",
        json={"user_id": trapper["id"], "date": open_day.isoformat(), "tnvr_count": 1},
        headers=auth_headers,
    ).json()

    res = api_client.get(
        "/availability",
        params={"date": open_day.isoformat(), "exclude_appointment_id": created[0]["id"]},
        headers=auth_headers,
    )
    assert res.json()["remaining_tnvr"] == 1


def test_trappers_see_missing_capacity_as_zero(api_client, app, auth_headers, trapper_headers, open_day):
    app.state.settings.missing_capacity_policy = "unbounded"
    params = {"date": open_day.isoformat()}
    trapper_view = api_client.get("/availability", params=params, headers=trapper_headers).json()
    admin_view = api_client.get("/availability", params=params, headers=auth_headers).json()
    assert trapper_view["remaining_tnvr"] == 0
    assert admin_view["remaining_tnvr"] is None


def test_month_summary_flags_closed_days(api_client, trapper_headers, settings, open_day):
    res = api_client.get(
        "/availability/month",
        params={"year": open_day.year, "month": open_day.month},
        headers=trapper_headers,
    )
    assert res.status_code == 200, res.text
    days = res.json()["days"]
    assert days[0]["date"] == date(open_day.year, open_day.month, 1).isoformat()
    for entry in days:
        weekday = date.fromisoformat(entry["date"]).weekday()
        if weekday in settings.closed_weekdays:
            assert entry["is_open"] is False
    assert any(entry["is_open"] for entry in days if entry["date"] == open_day.isoformat())


def test_unknown_clinic(api_client, trapper_headers, open_day):
    res = api_client.get(
        "/availability", params={"date": open_day.isoformat(), "clinic_id": 999}, headers=trapper_headers
    )
    assert res.status_code == 404, res.text
