import logging
import os

from sqlalchemy.orm import Session

from valuation.core.types import ActorRole
from valuation.db.session import SessionLocal
from valuation.models.valuer_user import ValuerUser
from valuation.services.auth_service import create_user

logger = logging.getLogger(__name__)

SEED_CLIENT_ID = os.getenv("SEED_CLIENT_ID", "demo-bank")
SEED_PASSWORD = os.getenv("SEED_PASSWORD", "pass123")

SEED_USERS = [
    ("admin", ActorRole.admin, "Administrator"),
    ("manager", ActorRole.manager, "Branch Manager"),
    ("user", ActorRole.user, "Field Engineer"),
]


def seed(db: Session, client_id: str = SEED_CLIENT_ID, password: str = SEED_PASSWORD) -> int:
    """Create one account per role for a client; existing usernames are left alone."""
    created = 0
    for username, role, display_name in SEED_USERS:
        exists = (
            db.query(ValuerUser)
            .filter(ValuerUser.client_id == client_id, ValuerUser.username == username)
            .first()
        )
        if exists:
            continue
        create_user(
            db,
            client_id=client_id,
            username=username,
            password=password,
            role=role,
            display_name=display_name,
        )
        created += 1
    logger.info("seed complete", extra={"client_id": client_id, "created": created})
    return created


if __name__ == "__main__":
    db: Session = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()
