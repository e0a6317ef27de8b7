from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_booking.core.errors import AlreadyExists, Internal, InvalidArgument, NotFound
from clinic_booking.core.security import is_valid_code
from clinic_booking.core.settings import Settings
from clinic_booking.models.account import Account, PerformanceMetrics, Role
from clinic_booking.schemas.account import AccountCreate, AccountUpdate, PerformanceMetricsUpdate, ProfileUpdate
from clinic_booking.services.audit import log_event, snapshot_fields
from clinic_booking.services.identity import IdentityAlreadyExists, IdentityNotFound, IdentityProvider

logger = logging.getLogger("clinic_booking.accounts")

NON_NULLABLE_ACCOUNT_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "address",
    "role",
    "trapper_region",
    "equipment",
    "is_active",
    "booking_access_restricted",
)


def get_account(db: Session, account_id: str) -> Account | None:
    return db.get(Account, account_id)


def get_account_by_email(db: Session, email: str) -> Account | None:
    return db.scalar(select(Account).where(Account.email == email.lower().strip()))


def list_accounts(db: Session) -> list[Account]:
    stmt = select(Account).order_by(Account.trapper_number.asc().nulls_last(), Account.email.asc())
    return list(db.scalars(stmt).unique())


def account_count(db: Session) -> int:
    return int(db.scalar(select(func.count(Account.id))) or 0)


def _normalize_email(raw: str) -> str | None:
    try:
        return validate_email(raw.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return None


def validate_new_account(payload: AccountCreate, settings: Settings) -> tuple[dict[str, str], str | None]:
    errors: dict[str, str] = {}
    email = None
    if not payload.email.strip():
        errors["email"] = "Email is required."
    else:
        email = _normalize_email(payload.email)
        if email is None:
            errors["email"] = "Email is not valid."
    if not payload.first_name.strip():
        errors["first_name"] = "First name is required."
    if not payload.last_name.strip():
        errors["last_name"] = "Last name is required."
    if not payload.role.strip():
        errors["role"] = "Role is required."
    elif payload.role not in {role.value for role in Role}:
        errors["role"] = "Role must be trapper or admin."
    if payload.role == Role.trapper.value and not (payload.trapper_number or "").strip():
        errors["trapper_number"] = "Trapper number is required for trappers."
    if not payload.code.strip():
        errors["code"] = "Four-digit code is required."
    elif not is_valid_code(payload.code):
        errors["code"] = "Code must be exactly four digits."
    if payload.equipment < 0:
        errors["equipment"] = "Equipment must be zero or more."
    unknown = [region for region in payload.trapper_region if region not in settings.trapper_regions]
    if unknown:
        errors["trapper_region"] = f"Unknown region(s): {', '.join(unknown)}."
    return errors, email


def _build_profile(uid: str, email: str, payload: AccountCreate) -> Account:
    account = Account(
        id=uid,
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        phone=payload.phone.strip(),
        address=payload.address.strip(),
        role=Role(payload.role),
        trapper_number=(payload.trapper_number or "").strip() or None,
        trapper_region=list(dict.fromkeys(payload.trapper_region)),
        equipment=payload.equipment,
        code=payload.code,
        is_active=True,
        booking_access_restricted=False,
        notifications_enabled=False,
        notification_tokens=[],
    )
    account.performance_metrics = PerformanceMetrics()
    return account


def _compensate_identity(identity: IdentityProvider, uid: str) -> None:
    try:
        identity.delete_identity(uid)
    except IdentityNotFound:
        pass
    except Exception:
        logger.exception("Compensation failed; identity %s is orphaned and needs manual cleanup", uid)


def create_account(
    db: Session,
    identity: IdentityProvider,
    settings: Settings,
    *,
    actor: Account | None,
    payload: AccountCreate,
    request_id: str | None = None,
    ip_address: str | None = None,
) -> Account:
    errors, email = validate_new_account(payload, settings)
    if errors:
        raise InvalidArgument("Please correct the highlighted fields.", errors=errors)
    if email is None:
        raise InvalidArgument("Please correct the highlighted fields.", errors={"email": "Email is required."})

    if get_account_by_email(db, email) or identity.email_in_use(email):
        raise AlreadyExists("An account with this email already exists", errors={"email": "Email already in use."})

    try:
        uid = identity.create_identity(email=email, password=settings.login_credential(payload.code))
    except IdentityAlreadyExists:
        raise AlreadyExists("An account with this email already exists", errors={"email": "Email already in use."})

    try:
        account = _build_profile(uid, email, payload)
        db.add(account)
        db.flush()
        log_event(
            db,
            actor=actor,
            action="account.created",
            entity_type="account",
            entity_id=uid,
            after_data={"email": email, "role": account.role.value},
            request_id=request_id,
            ip_address=ip_address,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Profile write failed for %s; removing identity %s", email, uid)
        _compensate_identity(identity, uid)
        raise Internal("The account could not be created. Please try again.")

    db.refresh(account)
    logger.info("Account %s created (%s)", uid, account.role.value)
    return account


def signup(db: Session, identity: IdentityProvider, settings: Settings, *, email: str, code: str) -> Account:
    normalized = _normalize_email(email)
    if normalized is None:
        raise InvalidArgument("Please correct the highlighted fields.", errors={"email": "Email is not valid."})
    if not is_valid_code(code):
        raise InvalidArgument(
            "Please correct the highlighted fields.", errors={"code": "Code must be exactly four digits."}
        )
    if get_account_by_email(db, normalized) or identity.email_in_use(normalized):
        raise AlreadyExists("An account with this email already exists", errors={"email": "Email already in use."})

    try:
        uid = identity.create_identity(email=normalized, password=settings.login_credential(code))
    except IdentityAlreadyExists:
        raise AlreadyExists("An account with this email already exists", errors={"email": "Email already in use."})

    try:
        # Self-service signups start with an empty profile; an admin fills it in.
        account = Account(
            id=uid,
            email=normalized,
            role=Role.trapper,
            code=code,
            trapper_region=[],
            notification_tokens=[],
        )
        account.performance_metrics = PerformanceMetrics()
        db.add(account)
        log_event(db, actor=None, action="account.signup", entity_type="account", entity_id=uid)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Signup profile write failed for %s; removing identity %s", normalized, uid)
        _compensate_identity(identity, uid)
        raise Internal("The account could not be created. Please try again.")

    db.refresh(account)
    return account


def delete_account(
    db: Session,
    identity: IdentityProvider,
    *,
    actor: Account,
    account_id: str,
    request_id: str | None = None,
    ip_address: str | None = None,
) -> None:
    """Remove the login identity, then the profile.

    Safe to retry after a partial failure: whichever half is still present is
    removed, and only an account missing from both stores is NotFound.
    """
    account = get_account(db, account_id)
    identity_present = identity.identity_exists(account_id)
    if not account and not identity_present:
        raise NotFound("Account not found")

    if identity_present:
        try:
            identity.delete_identity(account_id)
        except IdentityNotFound:
            pass
        except Exception:
            logger.exception("Identity delete failed for %s", account_id)
            raise Internal("The account could not be deleted. Please try again.")

    if account:
        before_data = {"email": account.email, "role": account.role.value}
        try:
            db.delete(account)
            log_event(
                db,
                actor=actor,
                action="account.deleted",
                entity_type="account",
                entity_id=account_id,
                before_data=before_data,
                request_id=request_id,
                ip_address=ip_address,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Profile delete failed for %s after identity removal; retry to finish", account_id)
            raise Internal("The account was only partially deleted. Please retry.")
    logger.info("Account %s deleted", account_id)


def change_account_credential(
    db: Session,
    identity: IdentityProvider,
    settings: Settings,
    *,
    actor: Account,
    account_id: str,
    new_code: str,
    request_id: str | None = None,
    ip_address: str | None = None,
) -> None:
    if not is_valid_code(new_code):
        raise InvalidArgument(
            "Please correct the highlighted fields.", errors={"new_code": "Code must be exactly four digits."}
        )
    account = get_account(db, account_id)
    if not account:
        raise NotFound("Account not found")
    previous_code = account.code

    try:
        identity.update_credential(account_id, settings.login_credential(new_code))
    except IdentityNotFound:
        raise NotFound("Login identity not found for this account")
    except Exception:
        logger.exception("Credential update failed for %s", account_id)
        raise Internal("The code could not be changed. Please try again.")

    try:
        account.code = new_code
        log_event(
            db,
            actor=actor,
            action="account.credential_changed",
            entity_type="account",
            entity_id=account_id,
            after_data={"status": "changed"},
            request_id=request_id,
            ip_address=ip_address,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Profile code update failed for %s; restoring previous credential", account_id)
        if previous_code:
            try:
                identity.update_credential(account_id, settings.login_credential(previous_code))
            except Exception:
                logger.exception("Could not restore credential for %s; stores have diverged", account_id)
        raise Internal("The code could not be changed. Please try again.")


def update_account(
    db: Session,
    settings: Settings,
    *,
    actor: Account,
    account: Account,
    payload: AccountUpdate,
) -> Account:
    changes = payload.model_dump(exclude_unset=True)
    errors: dict[str, str] = {}
    for key in NON_NULLABLE_ACCOUNT_FIELDS:
        if key in changes and changes[key] is None:
            errors[key] = "This field cannot be cleared."
    if "equipment" in changes and changes["equipment"] is not None and changes["equipment"] < 0:
        errors["equipment"] = "Equipment must be zero or more."
    if changes.get("trapper_region") is not None:
        unknown = [region for region in changes["trapper_region"] if region not in settings.trapper_regions]
        if unknown:
            errors["trapper_region"] = f"Unknown region(s): {', '.join(unknown)}."
    role = changes.get("role") or account.role
    trapper_number = changes.get("trapper_number", account.trapper_number)
    if role == Role.trapper and not (trapper_number or "").strip():
        errors["trapper_number"] = "Trapper number is required for trappers."
    if errors:
        raise InvalidArgument("Please correct the highlighted fields.", errors=errors)

    before_data = snapshot_fields(account, changes)
    for key, value in changes.items():
        if isinstance(value, str) and key != "restriction_reason":
            value = value.strip()
        setattr(account, key, value)
    log_event(
        db,
        actor=actor,
        action="account.updated",
        entity_type="account",
        entity_id=account.id,
        before_data=before_data,
        after_data=snapshot_fields(account, changes),
    )
    db.commit()
    db.refresh(account)
    return account


def ensure_metrics(db: Session, account: Account) -> PerformanceMetrics:
    if account.performance_metrics is None:
        account.performance_metrics = PerformanceMetrics()
        db.flush()
    return account.performance_metrics


def set_metrics(db: Session, *, actor: Account, account: Account, payload: PerformanceMetricsUpdate) -> Account:
    metrics = ensure_metrics(db, account)
    before_data = snapshot_fields(metrics, PerformanceMetricsUpdate.model_fields)
    for key, value in payload.model_dump().items():
        setattr(metrics, key, value)
    log_event(
        db,
        actor=actor,
        action="account.metrics_updated",
        entity_type="account",
        entity_id=account.id,
        before_data=before_data,
        after_data=payload.model_dump(),
    )
    db.commit()
    db.refresh(account)
    return account


def seed_initial_admin(db: Session, identity: IdentityProvider, settings: Settings) -> bool:
    if account_count(db) > 0:
        return False
    create_account(
        db,
        identity,
        settings,
        actor=None,
        payload=AccountCreate(
            email=str(settings.admin_email),
            first_name="Clinic",
            last_name="Admin",
            role=Role.admin.value,
            code=settings.admin_code,
        ),
    )
    return True


def update_profile(db: Session, *, account: Account, payload: ProfileUpdate) -> Account:
    changes = {key: value.strip() for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if not changes:
        return account
    before_data = snapshot_fields(account, changes)
    for key, value in changes.items():
        setattr(account, key, value)
    log_event(
        db,
        actor=account,
        action="account.profile_updated",
        entity_type="account",
        entity_id=account.id,
        before_data=before_data,
        after_data=snapshot_fields(account, changes),
    )
    db.commit()
    db.refresh(account)
    return account


def register_notification_token(db: Session, *, account: Account, token: str) -> Account:
    token = token.strip()
    if not token:
        raise InvalidArgument("Please correct the highlighted fields.", errors={"token": "Token is required."})
    tokens = list(account.notification_tokens or [])
    if token not in tokens:
        tokens.append(token)
    # JSON columns are not mutation-tracked; assign a new list.
    account.notification_tokens = tokens
    account.notifications_enabled = True
    db.commit()
    db.refresh(account)
    return account


def remove_notification_token(db: Session, *, account: Account, token: str) -> Account:
    tokens = [existing for existing in (account.notification_tokens or []) if existing != token]
    account.notification_tokens = tokens
    if not tokens:
        account.notifications_enabled = False
    db.commit()
    db.refresh(account)
    return account


def disable_notifications(db: Session, *, account: Account) -> Account:
    account.notification_tokens = []
    account.notifications_enabled = False
    db.commit()
    db.refresh(account)
    return account
