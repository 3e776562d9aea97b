# auth_service/errors.py
# Every error carries a stable code callers can match on and the status code
# the HTTP layer answers with. Store-level failures are never wrapped here.
from typing import Optional


class AuthError(Exception):
    code = "auth_error"
    status_code = 400
    default_message = "Authentication error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Conflict(AuthError):
    code = "conflict"
    status_code = 409
    default_message = "Account already exists"

    def __init__(self, field: Optional[str] = None, message: Optional[str] = None):
        self.field = field
        if message is None and field:
            message = f"{field.capitalize()} already exists"
        super().__init__(message)


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password"


class AccountInactive(AuthError):
    code = "account_inactive"
    status_code = 403
    default_message = "Account is deactivated"


class NotFound(AuthError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class AlreadyUsed(AuthError):
    code = "already_used"
    status_code = 400
    default_message = "This reset token has already been used"


class Expired(AuthError):
    code = "expired"
    status_code = 400
    default_message = "Reset token has expired"


class Unauthorized(AuthError):
    code = "unauthorized"
    status_code = 403
    default_message = "Admin privileges required"


class SelfDemotionForbidden(AuthError):
    code = "self_demotion_forbidden"
    status_code = 403
    default_message = "Cannot remove your own admin privileges"


class SelfDeletionForbidden(AuthError):
    code = "self_deletion_forbidden"
    status_code = 403
    default_message = "Cannot delete your own account"


class InvalidToken(AuthError):
    code = "invalid_token"
    status_code = 401
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    code = "token_expired"
    default_message = "Token has expired"
