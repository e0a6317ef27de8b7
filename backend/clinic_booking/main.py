import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from clinic_booking.core.errors import BookingError
from clinic_booking.core.settings import Settings, settings as default_settings, validate_settings
from clinic_booking.db.session import build_engine, build_session_factory
from clinic_booking.models import Base
from clinic_booking.routers.accounts import router as accounts_router
from clinic_booking.routers.admin_appointments import router as admin_appointments_router
from clinic_booking.routers.audit import router as audit_router
from clinic_booking.routers.auth import router as auth_router
from clinic_booking.routers.availability import router as availability_router
from clinic_booking.routers.bookings import router as bookings_router
from clinic_booking.routers.capacity import router as capacity_router
from clinic_booking.routers.jobs import router as jobs_router
from clinic_booking.routers.me import router as me_router
from clinic_booking.services.accounts import seed_initial_admin
from clinic_booking.services.clinics import ensure_default_clinic
from clinic_booking.services.identity import IdentityProvider, LocalIdentityProvider
from clinic_booking.services.rate_limit import SimpleRateLimiter

logger = logging.getLogger("clinic_booking.startup")


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
    identity: IdentityProvider | None = None,
) -> FastAPI:
    settings = settings or default_settings
    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.database_url))

    app = FastAPI(title="TNVR Clinic Booking API", version="0.1.0")
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.identity = identity or LocalIdentityProvider(session_factory)
    app.state.login_limiter = SimpleRateLimiter(max_events=settings.login_attempts_per_minute, window_seconds=60)
    app.state.login_ip_limiter = SimpleRateLimiter(
        max_events=settings.login_attempts_per_minute * 5, window_seconds=60
    )

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        request_id = request.headers.get("x-request-id")
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.detail, extra={"request_id": request_id})
        payload = exc.to_payload()
        if request_id:
            payload["request_id"] = request_id
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = request.headers.get("x-request-id")
        logger.exception("Unhandled server error", extra={"request_id": request_id})
        payload = {"detail": "Internal server error", "code": "internal"}
        if request_id:
            payload["request_id"] = request_id
        return JSONResponse(status_code=500, content=payload)

    @app.on_event("startup")
    def startup():
        validate_settings(settings)
        Base.metadata.create_all(bind=session_factory.kw["bind"])

        db: Session = session_factory()
        try:
            clinic = ensure_default_clinic(db, settings)
            logger.info("Default clinic ready: %s (%s)", clinic.name, clinic.timezone)
            created = seed_initial_admin(db, app.state.identity, settings)
            if created:
                logger.info("Initial admin created for %s.", settings.admin_email)
            else:
                logger.info("Initial admin not created (accounts already exist).")
        finally:
            db.close()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(availability_router)
    app.include_router(bookings_router)
    app.include_router(admin_appointments_router)
    app.include_router(capacity_router)
    app.include_router(accounts_router)
    app.include_router(jobs_router)
    app.include_router(audit_router)
    return app


app = create_app()
