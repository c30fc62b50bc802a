"""
auth/tokens.py -- JWT codec, password hashing, and token transport helpers.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the principal id (_id), the
       principal kind, iat, exp and a random jti so two logins in the same
       second never mint the same string. TokenCodec.verify() raises
       InvalidToken on any failure; expired, malformed, tampered and
       wrong-shape tokens are indistinguishable to the caller. The concrete
       reason is logged at DEBUG level only.

  Secret: injected into TokenCodec at construction (see api/main.py lifespan)
       rather than read from settings at import time, so the codec can be
       built in isolation with any key.

  Passwords: bcrypt directly (no passlib wrapper). DUMMY_HASH enables timing
       equalization in AuthService.login() so response time does not reveal
       whether an email is registered.

  Transport: the token travels in a cookie named "token" or in an
       Authorization: Bearer header. The cookie wins when both are present.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.errors import InvalidToken
from auth.models import PrincipalKind, TokenClaims

logger = logging.getLogger("ridehail.auth")

_ALGORITHM = "HS256"

COOKIE_NAME = "token"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects input longer than 72 bytes. api/models.py enforces that
    limit on the UTF-8 encoding before a password gets here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Computed once at module load so the first login against an unknown email is
# not measurably faster than later ones.
DUMMY_HASH: str = hash_password("ridehail_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenCodec:
    """Pure sign/verify pair over a process-wide secret.

    Usage:
        codec = TokenCodec(settings.jwt_secret, settings.token_expire_seconds)
        token = codec.issue(captain.id, PrincipalKind.DRIVER)
        claims = codec.verify(token)   # raises InvalidToken
    """

    def __init__(self, secret: str, expire_seconds: int) -> None:
        if not secret:
            raise ValueError("TokenCodec requires a non-empty secret")
        self._secret = secret
        self.expire_seconds = expire_seconds

    def issue(self, principal_id: str, kind: PrincipalKind, expire_seconds: int | None = None) -> str:
        """Encode a signed JWT binding principal_id and kind.

        expire_seconds overrides the codec default; a negative value yields an
        already-expired token (useful only in tests).
        """
        duration = self.expire_seconds if expire_seconds is None else expire_seconds
        now = datetime.now(timezone.utc)
        payload = {
            "_id": principal_id,
            "kind": kind.value,
            "iat": now,
            "exp": now + timedelta(seconds=duration),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require_exp": True, "require_iat": True},
            )
            return TokenClaims(
                principal_id=str(payload["_id"]),
                kind=PrincipalKind(payload["kind"]),
                issued_at=float(payload["iat"]),
                expires_at=float(payload["exp"]),
            )
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
        except (KeyError, ValueError, TypeError) as exc:
            logger.debug("Token rejected, bad claims: %r", exc)
        raise InvalidToken()

    def peek_expiry(self, token: str) -> float | None:
        """Return the unverified exp claim, or None if the token is not a JWT.

        Only used to key revocation entries for the purge sweep. Never use the
        result for an authorization decision. Non-finite values (a forged "nan"
        or "inf") count as unknown.
        """
        try:
            exp = jwt.get_unverified_claims(token).get("exp")
            value = float(exp) if exp is not None else None
        except (JWTError, ValueError, TypeError, AttributeError):
            return None
        if value is None or not math.isfinite(value):
            return None
        return value


# ---------------------------------------------------------------------------
# Transport helpers
# ---------------------------------------------------------------------------


def extract_token(request) -> str | None:
    """Return the token from the "token" cookie, else the Bearer header, else None."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def set_auth_cookie(response, token: str, max_age: int, secure: bool = False) -> None:
    """Write the token as an httpOnly cookie whose lifetime matches the JWT."""
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax")
