"""
auth/service.py -- Registration, login, logout and per-request identity resolution.

AuthService orchestrates the three collaborators:
  PrincipalStore    -- rider / captain records
  RevocationLedger  -- logged-out tokens
  TokenCodec        -- sign / verify

Concurrency:
  The stores are synchronous SQLAlchemy Core repositories. Every call into
  them, and every bcrypt call, runs in a worker thread so a slow disk or a
  deliberate bcrypt work factor never blocks the event loop. Store and
  ledger calls are additionally bounded by `timeout` seconds; exceeding it
  raises BackendUnavailable (503). Task cancellation propagates untouched.

Ordering in resolve():
  missing token -> revocation check -> signature/expiry -> kind -> load.
  The ledger lookup completes before the token is verified, so a revoked
  token that still carries a valid signature is always refused as revoked.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    BackendUnavailable,
    DuplicatePrincipal,
    InvalidCredentials,
    InvalidToken,
    MissingToken,
    PrincipalNotFound,
    RevokedToken,
)
from auth.ledger import RevocationLedger
from auth.models import NewPrincipal, Principal, PrincipalKind, Vehicle
from auth.store import PrincipalStore
from auth.tokens import DUMMY_HASH, TokenCodec, hash_password, verify_password

logger = logging.getLogger("ridehail.auth")


class AuthService:
    def __init__(
        self,
        store: PrincipalStore,
        ledger: RevocationLedger,
        codec: TokenCodec,
        timeout: float = 5.0,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.codec = codec
        self.timeout = timeout

    async def _bounded(self, func, *args):
        """Run a blocking store/ledger call in a thread under the deadline.

        A timeout abandons the wait, not the thread: the call may still commit
        after the caller has been answered 503. Writes behind this are
        idempotent or unique-keyed, so a retry lands on the same state.
        """
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("%s exceeded %.2fs deadline", func.__qualname__, self.timeout)
            raise BackendUnavailable() from exc

    # ------------------------------------------------------------------
    # Registration / login / logout
    # ------------------------------------------------------------------

    async def register(
        self,
        kind: PrincipalKind,
        firstname: str,
        lastname: str | None,
        email: str,
        password: str,
        vehicle: Vehicle | None = None,
    ) -> str:
        """Create a principal and return a freshly issued token for it.

        Raises DuplicatePrincipal if the email is taken within `kind`. The
        same email under the other kind is unaffected.
        """
        if kind is PrincipalKind.DRIVER and vehicle is None:
            raise ValueError("captain registration requires a vehicle")

        if await self._bounded(self.store.get_by_email, kind, email) is not None:
            raise DuplicatePrincipal(kind)

        password_hash = await asyncio.to_thread(hash_password, password)
        new = NewPrincipal(
            kind=kind,
            firstname=firstname,
            lastname=lastname,
            email=email,
            password_hash=password_hash,
            vehicle=vehicle,
        )
        try:
            principal = await self._bounded(self.store.create, new)
        except IntegrityError as exc:
            # Lost the race against a concurrent registration.
            raise DuplicatePrincipal(kind) from exc

        logger.info("Registered %s %s", kind.value, principal.id)
        return self.codec.issue(principal.id, kind)

    async def login(self, kind: PrincipalKind, email: str, password: str) -> tuple[str, Principal]:
        """Return (token, public principal) or raise InvalidCredentials.

        bcrypt always runs, against DUMMY_HASH when the email is unknown, so
        an unknown email and a wrong password cost the same and fail the same.
        """
        credentials = await self._bounded(self.store.get_credentials, kind, email)
        hashed = credentials.password_hash if credentials is not None else DUMMY_HASH
        matches = await asyncio.to_thread(verify_password, password, hashed)
        if credentials is None or not matches:
            raise InvalidCredentials()

        principal = credentials.principal
        logger.info("Login: %s %s", kind.value, principal.id)
        return self.codec.issue(principal.id, kind), principal

    async def logout(self, token: str | None) -> bool:
        """Revoke token unconditionally. Returns True if this call added it.

        No validity check: any string is accepted, and repeating the call is
        harmless. A missing token is a no-op.
        """
        if not token:
            return False
        expires_at = self.codec.peek_expiry(token)
        return await self._bounded(self.ledger.revoke, token, expires_at)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, token: str | None, kind: PrincipalKind) -> Principal:
        """Turn a request token into the principal it names, or raise.

        A principal that no longer exists raises PrincipalNotFound for both
        riders and captains.
        """
        if not token:
            raise MissingToken()

        if await self._bounded(self.ledger.is_revoked, token):
            raise RevokedToken()

        claims = self.codec.verify(token)
        if claims.kind is not kind:
            logger.debug("Token for %s presented on %s route", claims.kind.value, kind.value)
            raise InvalidToken()

        principal = await self._bounded(self.store.get_by_id, kind, claims.principal_id)
        if principal is None:
            raise PrincipalNotFound(kind)
        return principal

    def get_profile(self, principal: Principal) -> Principal:
        return principal

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_revoked(self) -> int:
        """Drop revocation entries whose tokens have expired naturally."""
        return await self._bounded(self.ledger.purge_expired)
