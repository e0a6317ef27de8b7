from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from clinic_booking.core.errors import NotFound
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_identity, get_settings, request_meta, require_admin
from clinic_booking.models.account import Account
from clinic_booking.schemas.account import (
    AccountCreate,
    AccountCreated,
    AccountUpdate,
    AdminAccountOut,
    CredentialChange,
    PerformanceMetricsUpdate,
)
from clinic_booking.services.accounts import (
    change_account_credential,
    create_account,
    delete_account,
    get_account,
    list_accounts,
    set_metrics,
    update_account,
)
from clinic_booking.services.identity import IdentityProvider

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=list[AdminAccountOut])
def get_accounts(
    db: Session = Depends(get_db),
    _admin: Account = Depends(require_admin),
):
    return list_accounts(db)


@router.post("", response_model=AccountCreated, status_code=status.HTTP_201_CREATED)
def add_account(
    payload: AccountCreate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: IdentityProvider = Depends(get_identity),
    admin: Account = Depends(require_admin),
):
    request_id, ip_address = request_meta(request)
    account = create_account(
        db,
        identity,
        settings,
        actor=admin,
        payload=payload,
        request_id=request_id,
        ip_address=ip_address,
    )
    return AccountCreated(id=account.id)


@router.get("/{account_id}", response_model=AdminAccountOut)
def get_account_detail(
    account_id: str,
    db: Session = Depends(get_db),
    _admin: Account = Depends(require_admin),
):
    account = get_account(db, account_id)
    if not account:
        raise NotFound("Account not found")
    return account


@router.patch("/{account_id}", response_model=AdminAccountOut)
def patch_account(
    account_id: str,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Account = Depends(require_admin),
):
    account = get_account(db, account_id)
    if not account:
        raise NotFound("Account not found")
    return update_account(db, settings, actor=admin, account=account, payload=payload)


@router.put("/{account_id}/metrics", response_model=AdminAccountOut)
def put_metrics(
    account_id: str,
    payload: PerformanceMetricsUpdate,
    db: Session = Depends(get_db),
    admin: Account = Depends(require_admin),
):
    account = get_account(db, account_id)
    if not account:
        raise NotFound("Account not found")
    return set_metrics(db, actor=admin, account=account, payload=payload)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_account(
    account_id: str,
    request: Request,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity),
    admin: Account = Depends(require_admin),
):
    request_id, ip_address = request_meta(request)
    delete_account(
        db,
        identity,
        actor=admin,
        account_id=account_id,
        request_id=request_id,
        ip_address=ip_address,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{account_id}/credential", status_code=status.HTTP_204_NO_CONTENT)
def change_credential(
    account_id: str,
    payload: CredentialChange,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: IdentityProvider = Depends(get_identity),
    admin: Account = Depends(require_admin),
):
    request_id, ip_address = request_meta(request)
    change_account_credential(
        db,
        identity,
        settings,
        actor=admin,
        account_id=account_id,
        new_code=payload.new_code,
        request_id=request_id,
        ip_address=ip_address,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
