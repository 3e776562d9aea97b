# auth_service/hashing.py
from typing import Optional, Tuple

from passlib.context import CryptContext

from config import AuthConfig

SCHEME = "pbkdf2_sha512"
SALT_SIZE = 16


def build_context(rounds: Optional[int] = None) -> CryptContext:
    """PBKDF2-SHA512 context; every hash gets a fresh 16 byte salt."""
    rounds = rounds or AuthConfig.PASSWORD_HASH_ROUNDS
    if rounds < AuthConfig.MIN_PASSWORD_HASH_ROUNDS:
        raise ValueError(
            f"PASSWORD_HASH_ROUNDS must be at least {AuthConfig.MIN_PASSWORD_HASH_ROUNDS}"
        )
    return CryptContext(
        schemes=[SCHEME],
        deprecated="auto",
        pbkdf2_sha512__default_rounds=rounds,
        pbkdf2_sha512__min_rounds=rounds,
        pbkdf2_sha512__salt_size=SALT_SIZE,
    )


# Password Hashing
pwd_context = build_context()


def get_password_hash(password: str) -> str:
    # $pbkdf2-sha512$<rounds>$<salt>$<digest>
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password; malformed stored hashes count as a mismatch."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def verify_and_update(plain_password: str, hashed_password: str) -> Tuple[bool, Optional[str]]:
    """
    Verify and, when the stored hash uses outdated settings (e.g. fewer
    rounds than configured), also return a replacement hash.
    """
    try:
        return pwd_context.verify_and_update(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False, None


def dummy_verify() -> None:
    # Same cost as a real verify, used when no account matched
    pwd_context.dummy_verify()
