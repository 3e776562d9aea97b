# tests/conftest.py
import os
import sys
from datetime import datetime, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Must be in place before config.py is imported
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "10000")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy.orm import sessionmaker

from auth_service.database import Base, create_db_engine
from auth_service.hashing import get_password_hash
from auth_service.models import Account
from auth_service.schemas import SessionClaims


class FakeClock:
    def __init__(self, start=datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def db():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_account(db, clock):
    def _make(
        email="a@x.com",
        username="alice",
        password="password123",
        is_admin=False,
        is_active=True,
    ):
        now = clock()
        account = Account(
            email=email,
            username=username,
            password_hash=get_password_hash(password),
            is_admin=is_admin,
            is_active=is_active,
            email_verified=False,
            created_at=now,
            updated_at=now,
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        return account

    return _make


@pytest.fixture
def claims_for():
    def _claims(account):
        return SessionClaims(
            account_id=account.id,
            email=account.email,
            is_admin=account.is_admin,
            iat=0,
            exp=2**31,
        )

    return _claims
