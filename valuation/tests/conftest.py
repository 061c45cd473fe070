import os
from typing import Optional

# settings are read once at import; tests never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import valuation.models  # noqa

from valuation.core.types import ActorRole
from valuation.db.base import Base
from valuation.db.session import get_db
from valuation.policies.rbac import Principal
from valuation.services.attachment_store import AttachmentStore, get_attachment_store

CLIENT_ID = "bank-a"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def make_principal(role: ActorRole, username: Optional[str] = None, client_id: str = CLIENT_ID) -> Principal:
    username = username or role.value
    return Principal(username=username, client_id=client_id, role=role, display_name=username.title())


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(tmp_path):
    return AttachmentStore(root=str(tmp_path / "uploads"), public_base_url="/uploads", max_bytes=1024 * 1024)


@pytest.fixture
def user():
    return make_principal(ActorRole.user)


@pytest.fixture
def manager():
    return make_principal(ActorRole.manager)


@pytest.fixture
def admin():
    return make_principal(ActorRole.admin)


@pytest.fixture
def client(db, store):
    from valuation.main import create_app

    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_store] = lambda: store

    with TestClient(app) as c:
        yield c
