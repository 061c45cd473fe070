# valuation/services/auth_service.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from valuation.core.security import hash_password, verify_password
from valuation.core.types import ActorRole
from valuation.models.valuer_user import ValuerUser
from valuation.policies.rbac import Principal


def _find_user(db: Session, client_id: str, username: str) -> Optional[ValuerUser]:
    return (
        db.query(ValuerUser)
        .filter(
            ValuerUser.client_id == client_id,
            ValuerUser.username == username,
            ValuerUser.is_active.is_(True),
        )
        .first()
    )


def authenticate(db: Session, client_id: str, username: str, password: str) -> Optional[Principal]:
    u = _find_user(db, client_id, username)
    if not u:
        return None

    if not verify_password(password, u.password_hash):
        return None

    return Principal(
        username=u.username,
        client_id=u.client_id,
        role=ActorRole(u.role),
        display_name=u.display_name or u.username,
    )


def create_user(
    db: Session,
    *,
    client_id: str,
    username: str,
    password: str,
    role: ActorRole,
    display_name: Optional[str] = None,
) -> ValuerUser:
    u = _find_user(db, client_id, username)
    if u:
        raise ValueError(f"User {username} already exists for client {client_id}.")

    u = ValuerUser(
        client_id=client_id,
        username=username,
        password_hash=hash_password(password),
        role=ActorRole(role).value,
        display_name=display_name or username,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u
