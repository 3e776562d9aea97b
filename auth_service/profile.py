# auth_service/profile.py
# Self-service operations, always scoped to claims.account_id.
import logging
from datetime import datetime
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from .errors import AccountInactive, Conflict, InvalidCredentials, NotFound
from .hashing import get_password_hash, verify_password
from .models import Account, utcnow
from .repository import AccountRepository
from .schemas import (
    PasswordChange,
    ProfileUpdate,
    PublicAccount,
    SessionClaims,
    SuccessResponse,
    normalize_email,
)

logger = logging.getLogger("auth_service.profile")


def apply_account_patch(
    accounts: AccountRepository, account: Account, changes: Dict[str, Any], now: datetime
) -> Account:
    """
    Apply a partial update (only keys present in ``changes``).

    Email/username are checked against every other account first; an
    unchanged value never conflicts with itself.
    """
    if "email" in changes:
        changes["email"] = normalize_email(changes["email"])

    new_email = changes.get("email")
    new_username = changes.get("username")
    taken = accounts.find_conflict(
        email=new_email if new_email != account.email else None,
        username=new_username if new_username != account.username else None,
        exclude_id=account.id,
    )
    if taken:
        raise Conflict(taken)

    for field, value in changes.items():
        setattr(account, field, value)
    # Bumped even for an empty patch
    account.touch(now)
    return accounts.save(account)


class ProfileService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.accounts = AccountRepository(db)

    def _own_account(self, claims: SessionClaims) -> Account:
        account = self.accounts.get_by_id(claims.account_id)
        if account is None:
            raise NotFound(f"User with id {claims.account_id} not found")
        return account

    def get_current_user(self, claims: SessionClaims) -> PublicAccount:
        return PublicAccount.model_validate(self._own_account(claims))

    def update_self(self, claims: SessionClaims, patch: ProfileUpdate) -> PublicAccount:
        account = self._own_account(claims)
        changes = patch.model_dump(exclude_unset=True)
        try:
            apply_account_patch(self.accounts, account, changes, self.clock())
        except Conflict as exc:
            logger.warning("Profile update for %s rejected: %s taken", account.id, exc.field)
            raise
        self.db.commit()
        self.db.refresh(account)
        logger.info("Account %s updated its profile (%s)", account.id, ", ".join(changes) or "no fields")
        return PublicAccount.model_validate(account)

    def change_own_password(self, claims: SessionClaims, data: PasswordChange) -> SuccessResponse:
        account = self._own_account(claims)
        if not account.is_active:
            raise AccountInactive()
        if not verify_password(data.current_password, account.password_hash):
            logger.warning("Password change for %s rejected: wrong current password", account.id)
            raise InvalidCredentials("Current password is incorrect")

        account.password_hash = get_password_hash(data.new_password)
        account.touch(self.clock())
        self.accounts.save(account)
        self.db.commit()
        logger.info("Account %s changed its password", account.id)
        return SuccessResponse(success=True, message="Password changed successfully.")
