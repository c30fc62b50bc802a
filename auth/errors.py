"""
auth/errors.py -- Error taxonomy for the identity subsystem.

Every failure the service or the resolver can produce is an AuthError
subclass carrying its HTTP status and a generic, client-safe message.
api/main.py turns them into {"message": ...} responses in one handler.

Status-code decision table (kept identical to the deployed mobile clients'
expectations, including the 400 for bad tokens):

  ValidationFailed     400   {"errors": [...]}
  DuplicatePrincipal   400   "<Label> already exists"
  InvalidCredentials   401   "Invalid email or password"
  MissingToken         401   "Access denied. No token provided."
  RevokedToken         401   "Token is blacklisted. Please login again."
  InvalidToken         400   "Unauthorized access. Invalid token."
  PrincipalNotFound    404   "User not found." / "Captain not found."
  BackendUnavailable   503   "Service temporarily unavailable."

No error here is retried. A wrong password is terminal for the request.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from auth.models import PrincipalKind


class AuthError(Exception):
    status_code: int = 400
    message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailed(AuthError):
    """Request body failed shape validation. Carries the per-field errors."""

    status_code = 400
    message = "Validation failed."

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        super().__init__()


class DuplicatePrincipal(AuthError):
    status_code = 400

    def __init__(self, kind: PrincipalKind) -> None:
        self.kind = kind
        super().__init__(f"{kind.label} already exists")


class InvalidCredentials(AuthError):
    """Unknown email and wrong password both raise this, with the same message."""

    status_code = 401
    message = "Invalid email or password"


class MissingToken(AuthError):
    status_code = 401
    message = "Access denied. No token provided."


class RevokedToken(AuthError):
    status_code = 401
    message = "Token is blacklisted. Please login again."


class InvalidToken(AuthError):
    """Malformed, tampered, expired, or wrong-kind token. Never says which."""

    status_code = 400
    message = "Unauthorized access. Invalid token."


class PrincipalNotFound(AuthError):
    status_code = 404

    def __init__(self, kind: PrincipalKind) -> None:
        self.kind = kind
        super().__init__(f"{kind.label} not found.")


class BackendUnavailable(AuthError):
    """A store or ledger call exceeded its deadline."""

    status_code = 503
    message = "Service temporarily unavailable."
