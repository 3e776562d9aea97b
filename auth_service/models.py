# auth_service/models.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# --- Database Model: Account ---
class Account(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # The database enforces ON DELETE CASCADE, the ORM must not null out user_id
    reset_tokens = relationship(
        "ResetToken",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def touch(self, now):
        # updated_at never moves backwards, even if the clock does
        if self.updated_at is None or now > self.updated_at:
            self.updated_at = now
        return self.updated_at

    def __repr__(self):
        return f"<Account id={self.id} username={self.username!r}>"


# --- Database Model: ResetToken ---
class ResetToken(Base):
    __tablename__ = "password_reset_tokens"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    account = relationship("Account", back_populates="reset_tokens")

    def is_valid(self, now):
        return not self.used and now < self.expires_at
