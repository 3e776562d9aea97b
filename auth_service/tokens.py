# auth_service/tokens.py
import time
import uuid
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from config import AuthConfig

from .errors import InvalidToken, TokenExpired
from .schemas import SessionClaims


def create_access_token(
    account_id: int,
    email: str,
    is_admin: bool,
    secret: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
    now: Optional[int] = None,
) -> str:
    """Issue a signed header.payload.signature session token (HS256)."""
    secret = secret or AuthConfig.require_secret()
    if ttl_seconds is None:
        ttl_seconds = AuthConfig.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    issued_at = int(time.time()) if now is None else int(now)
    to_encode = {
        "sub": str(account_id),
        "account_id": account_id,
        "email": email,
        "is_admin": bool(is_admin),
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, secret, algorithm=AuthConfig.ALGORITHM)


def decode_access_token(
    token: str, secret: Optional[str] = None, now: Optional[int] = None
) -> SessionClaims:
    """
    Verify a session token and return its claims.

    The signature is checked before any claim is read. Expiry is checked
    here rather than by jose so that ``now >= exp`` is already expired.
    """
    secret = secret or AuthConfig.require_secret()
    if not token:
        raise InvalidToken("Token missing")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[AuthConfig.ALGORITHM],
            options={"verify_exp": False, "verify_iat": False},
        )
    except JWTError:
        raise InvalidToken()

    try:
        claims = SessionClaims(**payload)
    except (ValidationError, TypeError):
        raise InvalidToken("Malformed token claims")

    current = int(time.time()) if now is None else int(now)
    if current >= claims.exp:
        raise TokenExpired()
    return claims
