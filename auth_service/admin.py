# auth_service/admin.py
# Admin-only account management. An admin can never demote or delete
# themselves through these operations.
import logging
import math
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from config import AuthConfig

from .errors import (
    Conflict,
    NotFound,
    SelfDeletionForbidden,
    SelfDemotionForbidden,
    Unauthorized,
)
from .hashing import get_password_hash
from .models import Account, utcnow
from .profile import apply_account_patch
from .repository import AccountRepository
from .schemas import (
    AdminCreateData,
    AdminUpdateData,
    PaginatedAccounts,
    PublicAccount,
    SessionClaims,
    SuccessResponse,
    normalize_email,
)

logger = logging.getLogger("auth_service.admin")


def clamp_pagination(page: Optional[int], limit: Optional[int]):
    # Only a missing value means "default"; anything else is clamped
    page = 1 if page is None else page
    limit = AuthConfig.DEFAULT_PAGE_SIZE if limit is None else limit
    return max(page, 1), min(max(limit, 1), AuthConfig.MAX_PAGE_SIZE)


def require_admin(claims: SessionClaims) -> SessionClaims:
    if not claims.is_admin:
        logger.warning("Account %s attempted an admin operation", claims.account_id)
        raise Unauthorized()
    return claims


class AdminService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.accounts = AccountRepository(db)

    def _get(self, account_id: int) -> Account:
        account = self.accounts.get_by_id(account_id)
        if account is None:
            raise NotFound("User not found")
        return account

    def list_users(
        self, claims: SessionClaims, page: Optional[int] = None, limit: Optional[int] = None
    ) -> PaginatedAccounts:
        require_admin(claims)
        page, limit = clamp_pagination(page, limit)
        total = self.accounts.count()
        # Pages past the end are just empty
        users = self.accounts.list_page(offset=(page - 1) * limit, limit=limit)
        return PaginatedAccounts(
            users=[PublicAccount.model_validate(a) for a in users],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def get_user(self, claims: SessionClaims, account_id: int) -> PublicAccount:
        require_admin(claims)
        return PublicAccount.model_validate(self._get(account_id))

    def create_user(self, claims: SessionClaims, data: AdminCreateData) -> PublicAccount:
        require_admin(claims)
        email = normalize_email(data.email)
        taken = self.accounts.find_conflict(email=email, username=data.username)
        if taken:
            raise Conflict(taken)

        now = self.clock()
        account = Account(
            email=email,
            username=data.username,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_admin=data.is_admin,
            is_active=data.is_active,
            email_verified=data.email_verified,
            last_login=None,
            created_at=now,
            updated_at=now,
        )
        self.accounts.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info("Admin %s created account %s", claims.account_id, account.id)
        return PublicAccount.model_validate(account)

    def update_user(
        self, claims: SessionClaims, account_id: int, patch: AdminUpdateData
    ) -> PublicAccount:
        require_admin(claims)
        changes = patch.model_dump(exclude_unset=True)
        if account_id == claims.account_id and changes.get("is_admin") is False:
            raise SelfDemotionForbidden()

        account = self._get(account_id)
        apply_account_patch(self.accounts, account, changes, self.clock())
        self.db.commit()
        self.db.refresh(account)
        logger.info(
            "Admin %s updated account %s (%s)",
            claims.account_id,
            account.id,
            ", ".join(changes) or "no fields",
        )
        return PublicAccount.model_validate(account)

    def delete_user(self, claims: SessionClaims, account_id: int) -> SuccessResponse:
        require_admin(claims)
        if account_id == claims.account_id:
            raise SelfDeletionForbidden()

        account = self._get(account_id)
        # Reset tokens go with it (ON DELETE CASCADE)
        self.accounts.delete(account)
        self.db.commit()
        logger.info("Admin %s deleted account %s", claims.account_id, account_id)
        return SuccessResponse(success=True, message="User deleted successfully.")


def seed_admin(db: Session, email: str, username: str, password: str) -> Optional[Account]:
    """
    Create the bootstrap admin unless an account with ``email`` exists.
    Returns the new account, or None when nothing was created.
    """
    accounts = AccountRepository(db)
    email = normalize_email(email)
    if accounts.get_by_email(email) is not None:
        logger.info("Admin account already exists, skipping creation")
        return None

    now = utcnow()
    account = Account(
        email=email,
        username=username,
        password_hash=get_password_hash(password),
        is_admin=True,
        is_active=True,
        email_verified=True,
        created_at=now,
        updated_at=now,
    )
    accounts.add(account)
    db.commit()
    db.refresh(account)
    logger.info("Admin account %s created", account.id)
    return account
