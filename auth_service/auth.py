# auth_service/auth.py
# Registration, login and the forgot/reset password flow. Stateless per
# request: everything lives in the database session it is handed.
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .errors import AccountInactive, Conflict, InvalidCredentials, NotFound
from .hashing import dummy_verify, get_password_hash, verify_and_update
from .models import Account, utcnow
from .repository import AccountRepository
from .reset_tokens import ResetTokenStore
from .schemas import (
    AuthResponse,
    LoginData,
    PublicAccount,
    RegisterData,
    SuccessResponse,
    normalize_email,
)
from .tokens import create_access_token

logger = logging.getLogger("auth_service.auth")

RESET_REQUESTED_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)
RESET_DONE_MESSAGE = (
    "Password has been reset successfully. Please log in with your new password."
)

ResetNotifier = Callable[[str, str], None]


def log_reset_notifier(email: str, token: str) -> None:
    # Delivery is someone else's job; the token itself is never logged
    logger.info("Password reset token ready for delivery")


def issue_session(account: Account) -> AuthResponse:
    token = create_access_token(account.id, account.email, account.is_admin)
    return AuthResponse(account=PublicAccount.model_validate(account), token=token)


class AuthService:
    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        notifier: Optional[ResetNotifier] = None,
    ):
        self.db = db
        self.clock = clock
        self.notifier = notifier or log_reset_notifier
        self.accounts = AccountRepository(db)
        self.reset_tokens = ResetTokenStore(db, clock=clock)

    def register(self, data: RegisterData) -> AuthResponse:
        email = normalize_email(data.email)
        taken = self.accounts.find_conflict(email=email, username=data.username)
        if taken:
            logger.warning("Registration rejected: %s already exists", taken)
            raise Conflict(taken)

        now = self.clock()
        account = Account(
            email=email,
            username=data.username,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_admin=False,
            is_active=True,
            email_verified=False,
            last_login=None,
            created_at=now,
            updated_at=now,
        )
        self.accounts.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info("Registered account %s", account.id)
        return issue_session(account)

    def login(self, data: LoginData) -> AuthResponse:
        account = self.accounts.get_by_email(normalize_email(data.email))
        if account is None:
            dummy_verify()
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentials()

        valid, new_hash = verify_and_update(data.password, account.password_hash)
        if not valid:
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentials()
        if not account.is_active:
            logger.warning("Login refused for inactive account %s", account.id)
            raise AccountInactive()

        now = self.clock()
        if new_hash:
            account.password_hash = new_hash
        account.last_login = now
        account.touch(now)
        self.accounts.save(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info("Account %s logged in", account.id)
        return issue_session(account)

    def request_password_reset(self, email: str) -> SuccessResponse:
        """
        Always answers the same way, whether or not the email is known.
        """
        response = SuccessResponse(success=True, message=RESET_REQUESTED_MESSAGE)
        account = self.accounts.get_by_email(normalize_email(email))
        if account is None:
            return response

        reset_token = self.reset_tokens.issue_for(account.id)
        self.db.commit()
        try:
            self.notifier(account.email, reset_token.token)
        except Exception:
            # A delivery failure must not make known emails answer differently
            logger.exception("Reset token delivery failed for account %s", account.id)
        return response

    def reset_password(self, token: str, new_password: str) -> SuccessResponse:
        account_id = self.reset_tokens.consume(token)
        account = self.accounts.get_by_id(account_id)
        if account is None:
            self.db.rollback()
            raise NotFound("Account not found")

        account.password_hash = get_password_hash(new_password)
        account.touch(self.clock())
        self.accounts.save(account)
        self.db.commit()
        logger.info("Password reset for account %s", account.id)
        return SuccessResponse(success=True, message=RESET_DONE_MESSAGE)
