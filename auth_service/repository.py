# auth_service/repository.py
# Methods flush but never commit; the calling service owns the transaction.
import logging
import re
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import Conflict
from .models import Account

logger = logging.getLogger("auth_service.repository")


# Match the column or constraint name, never the duplicated value
# sqlite:   UNIQUE constraint failed: users.email
# postgres: ... unique constraint "ix_users_email" / DETAIL: Key (email)=(...)
_KEY_COLUMN = re.compile(r"Key \((email|username)\)=")
_CONSTRAINT_COLUMN = re.compile(r"\b(?:users\.|ix_users_|users_)(email|username)(?![a-z])")


def _conflict_field(error: IntegrityError) -> Optional[str]:
    message = str(getattr(error, "orig", error))
    match = _KEY_COLUMN.search(message) or _CONSTRAINT_COLUMN.search(message)
    return match.group(1) if match else None


class AccountRepository:
    """Repository for account data access."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self.db.execute(
            select(Account).where(Account.email == email)
        ).scalar_one_or_none()

    def get_by_username(self, username: str) -> Optional[Account]:
        return self.db.execute(
            select(Account).where(Account.username == username)
        ).scalar_one_or_none()

    def find_conflict(
        self,
        email: Optional[str] = None,
        username: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[str]:
        """
        Return the first field ("email" or "username") already taken by
        another account, or None. Email is reported before username.
        """
        conditions = []
        if email is not None:
            conditions.append(Account.email == email)
        if username is not None:
            conditions.append(Account.username == username)
        if not conditions:
            return None

        query = select(Account).where(or_(*conditions))
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        existing = self.db.execute(query).scalars().all()

        if email is not None and any(a.email == email for a in existing):
            return "email"
        if username is not None and any(a.username == username for a in existing):
            return "username"
        return None

    def add(self, account: Account) -> Account:
        self.db.add(account)
        self._flush()
        return account

    def save(self, account: Account) -> Account:
        self._flush()
        return account

    def delete(self, account: Account) -> None:
        self.db.delete(account)
        self.db.flush()

    def count(self) -> int:
        return self.db.execute(select(func.count(Account.id))).scalar_one()

    def list_page(self, offset: int, limit: int) -> List[Account]:
        query = select(Account).order_by(Account.id).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def _flush(self) -> None:
        # The unique constraints are the final word when two writers race
        # past the service-level pre-check
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            field = _conflict_field(exc)
            logger.warning("Unique constraint rejected write (field=%s)", field)
            raise Conflict(field)
