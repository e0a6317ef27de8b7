from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from clinic_booking.core.errors import PermissionDenied, Unauthenticated
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.models.account import Account, Role
from clinic_booking.services.identity import IdentityProvider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def request_meta(request: Request) -> tuple[str | None, str | None]:
    ip_address = request.client.host if request.client else None
    return request.headers.get("x-request-id"), ip_address


def get_current_account(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None),
) -> Account:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthenticated("Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_alg])
    except JWTError:
        raise Unauthenticated("Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated("Invalid token")

    # Role comes from the stored profile on every request, never from the token.
    account = db.get(Account, str(sub))
    if not account or not account.is_active:
        raise Unauthenticated("Inactive account")
    return account


def require_admin(account: Account = Depends(get_current_account)) -> Account:
    if account.role != Role.admin:
        raise PermissionDenied()
    return account
