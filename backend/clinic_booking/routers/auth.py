from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from clinic_booking.core.errors import PermissionDenied, Unauthenticated
from clinic_booking.core.security import create_access_token
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_identity, get_settings
from clinic_booking.models.account import Account
from clinic_booking.schemas.auth import LoginRequest, SignupRequest, Token
from clinic_booking.services.accounts import get_account, signup
from clinic_booking.services.audit import log_event
from clinic_booking.services.identity import IdentityProvider

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(account: Account, settings: Settings) -> Token:
    token = create_access_token(
        subject=account.id,
        secret=settings.secret_key,
        alg=settings.jwt_alg,
        expires_minutes=settings.access_token_expire_minutes,
        extra={"role": account.role.value, "email": account.email},
    )
    return Token(access_token=token, account_id=account.id, role=account.role.value)


@router.post("/login", response_model=Token)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: IdentityProvider = Depends(get_identity),
):
    ip_address = request.client.host if request.client else "unknown"
    email = str(payload.email).lower().strip()
    rate_key = f"{ip_address}:{email}"
    state = request.app.state
    if not state.login_limiter.allow(rate_key) or not state.login_ip_limiter.allow(ip_address):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many login attempts")

    uid = identity.verify(email=email, password=settings.login_credential(payload.code))
    if not uid:
        raise Unauthenticated("Invalid email or code")
    account = get_account(db, uid)
    if not account:
        raise Unauthenticated("Invalid email or code")
    if not account.is_active:
        raise PermissionDenied("Account disabled")

    log_event(
        db,
        actor=account,
        action="auth.login",
        entity_type="account",
        entity_id=account.id,
        ip_address=ip_address,
    )
    db.commit()
    return _issue_token(account, settings)


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
def signup_account(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: IdentityProvider = Depends(get_identity),
):
    if not settings.signup_enabled:
        raise PermissionDenied("Self-service signup is disabled")
    account = signup(db, identity, settings, email=str(payload.email), code=payload.code)
    return _issue_token(account, settings)
