from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from clinic_booking.core.settings import Settings
from clinic_booking.db.session import build_engine, build_session_factory
from clinic_booking.main import create_app
from clinic_booking.models.clinic import Clinic
from clinic_booking.services.schedule import next_open_day, today_in

ADMIN_EMAIL = "admin@example.com"
ADMIN_CODE = "0000"


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        app_env="test",
        secret_key="test-secret-key-that-is-long-enough-1234",
        database_url=f"sqlite:///{tmp_path / 'clinic.db'}",
        admin_email=ADMIN_EMAIL,
        admin_code=ADMIN_CODE,
        login_attempts_per_minute=1000,
        signup_enabled=True,
    )


@pytest.fixture()
def session_factory(settings):
    engine = build_engine(settings.database_url)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def app(settings, session_factory):
    return create_app(settings=settings, session_factory=session_factory)


@pytest.fixture()
def api_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def db(api_client, session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clinic(db) -> Clinic:
    return db.scalar(select(Clinic).order_by(Clinic.id))


def login(api_client, email: str, code: str) -> dict[str, str]:
    response = api_client.post("/auth/login", json={"email": email, "code": code})
    assert response.status_code == 200, response.text
    token = response.json().get("access_token")
    assert token, "Missing access_token in login response"
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(api_client):
    return login(api_client, ADMIN_EMAIL, ADMIN_CODE)


@pytest.fixture()
def create_trapper(api_client, auth_headers):
    counter = {"value": 100}

    def _create(**overrides) -> dict:
        counter["value"] += 1
        number = str(counter["value"])
        payload = {
            "email": f"trapper{number}@example.com",
            "first_name": "Tina",
            "last_name": f"Trapper{number}",
            "phone": "3055551234",
            "role": "trapper",
            "trapper_number": number,
            "trapper_region": ["Miami-Dade"],
            "code": "1234",
        }
        payload.update(overrides)
        response = api_client.post("/accounts", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        return {"id": response.json()["id"], **payload}

    return _create


@pytest.fixture()
def trapper_headers(api_client, create_trapper):
    trapper = create_trapper()
    return login(api_client, trapper["email"], trapper["code"])


@pytest.fixture()
def open_day(settings) -> date:
    today = today_in(settings.tz)
    return next_open_day(today + timedelta(days=7), today, settings.closed_weekdays)


@pytest.fixture()
def closed_day(settings) -> date:
    candidate = today_in(settings.tz) + timedelta(days=7)
    while candidate.weekday() not in settings.closed_weekdays:
        candidate += timedelta(days=1)
    return candidate


def set_capacity(api_client, headers, clinic_id: int, day: date, tnvr: int, foster: int):
    response = api_client.put(
        f"/admin/capacity/{clinic_id}/{day.isoformat()}",
        json={"tnvr_capacity": tnvr, "foster_capacity": foster},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture()
def login_as(api_client):
    def _login(email: str, code: str) -> dict[str, str]:
        return login(api_client, email, code)

    return _login


@pytest.fixture()
def put_capacity(api_client, auth_headers, clinic):
    def _put(day: date, tnvr: int, foster: int) -> dict:
        return set_capacity(api_client, auth_headers, clinic.id, day, tnvr, foster)

    return _put
