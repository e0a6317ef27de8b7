"""Identity service: login identities kept apart from account profiles.

The identity store is written in its own sessions and transactions, never in
the caller's request session, so it behaves like an external auth provider.
Callers that touch both stores are responsible for compensating on failure.
"""

from __future__ import annotations

import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from clinic_booking.core.security import hash_password, verify_password
from clinic_booking.models.auth_identity import AuthIdentity


class IdentityError(Exception):
    pass


class IdentityAlreadyExists(IdentityError):
    pass


class IdentityNotFound(IdentityError):
    pass


class IdentityProvider(Protocol):
    def create_identity(self, *, email: str, password: str) -> str: ...

    def delete_identity(self, uid: str) -> None: ...

    def update_credential(self, uid: str, password: str) -> None: ...

    def identity_exists(self, uid: str) -> bool: ...

    def email_in_use(self, email: str) -> bool: ...

    def verify(self, *, email: str, password: str) -> str | None: ...


class LocalIdentityProvider:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_identity(self, *, email: str, password: str) -> str:
        uid = uuid.uuid4().hex
        with self._session_factory() as session:
            session.add(
                AuthIdentity(
                    uid=uid,
                    email=email.lower().strip(),
                    hashed_password=hash_password(password),
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise IdentityAlreadyExists(email) from exc
        return uid

    def delete_identity(self, uid: str) -> None:
        with self._session_factory() as session:
            identity = session.get(AuthIdentity, uid)
            if not identity:
                raise IdentityNotFound(uid)
            session.delete(identity)
            session.commit()

    def update_credential(self, uid: str, password: str) -> None:
        with self._session_factory() as session:
            identity = session.get(AuthIdentity, uid)
            if not identity:
                raise IdentityNotFound(uid)
            identity.hashed_password = hash_password(password)
            session.commit()

    def identity_exists(self, uid: str) -> bool:
        with self._session_factory() as session:
            return session.get(AuthIdentity, uid) is not None

    def email_in_use(self, email: str) -> bool:
        with self._session_factory() as session:
            found = session.scalar(
                select(AuthIdentity.uid).where(AuthIdentity.email == email.lower().strip())
            )
            return found is not None

    def verify(self, *, email: str, password: str) -> str | None:
        with self._session_factory() as session:
            identity = session.scalar(
                select(AuthIdentity).where(AuthIdentity.email == email.lower().strip())
            )
            if not identity or identity.disabled:
                return None
            if not verify_password(password, identity.hashed_password):
                return None
            return identity.uid
