# auth_service/reset_tokens.py
# Single-use, time-limited password reset tokens. Consumption ends in a
# conditional UPDATE (used false -> true), so only one consumer can win.
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from config import AuthConfig

from .errors import AlreadyUsed, Expired, NotFound
from .models import ResetToken, utcnow

logger = logging.getLogger("auth_service.reset_tokens")


def generate_token_string(num_bytes: Optional[int] = None) -> str:
    # 32 bytes -> 64 hex characters
    return secrets.token_hex(num_bytes or AuthConfig.RESET_TOKEN_BYTES)


class ResetTokenStore:
    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        lifetime: Optional[timedelta] = None,
    ):
        self.db = db
        self.clock = clock
        self.lifetime = lifetime or timedelta(minutes=AuthConfig.RESET_TOKEN_EXPIRE_MINUTES)

    def issue_for(self, account_id: int) -> ResetToken:
        now = self.clock()
        reset_token = ResetToken(
            user_id=account_id,
            token=generate_token_string(),
            expires_at=now + self.lifetime,
            used=False,
            created_at=now,
        )
        self.db.add(reset_token)
        self.db.flush()
        logger.info("Issued reset token for account %s", account_id)
        return reset_token

    def get(self, token_string: str) -> Optional[ResetToken]:
        return self.db.execute(
            select(ResetToken).where(ResetToken.token == token_string)
        ).scalar_one_or_none()

    def list_for(self, account_id: int) -> List[ResetToken]:
        return list(
            self.db.execute(
                select(ResetToken).where(ResetToken.user_id == account_id)
            ).scalars().all()
        )

    def consume(self, token_string: str) -> int:
        """Mark the token used and return the owning account id."""
        now = self.clock()
        reset_token = self.get(token_string)
        if reset_token is None:
            raise NotFound("Invalid or expired reset token")
        if reset_token.used:
            raise AlreadyUsed()
        if now >= reset_token.expires_at:
            raise Expired()

        if not self._claim(token_string, now):
            # Lost the race to another consumer between the read and the update
            logger.warning("Reset token for account %s consumed concurrently", reset_token.user_id)
            raise AlreadyUsed()
        return reset_token.user_id

    def _claim(self, token_string: str, now: datetime) -> bool:
        result = self.db.execute(
            update(ResetToken)
            .where(
                ResetToken.token == token_string,
                ResetToken.used.is_(False),
                ResetToken.expires_at > now,
            )
            .values(used=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1
