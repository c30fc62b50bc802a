"""
auth/ledger.py -- Revocation ledger for logged-out tokens.

A token that has been revoked stays cryptographically valid until its exp
claim passes. The ledger is the only thing that stops it, so AuthService
checks it on every authenticated request BEFORE verifying the signature.

Semantics:
  revoke() is idempotent. The token string is the primary key, so two
  concurrent revokes of the same token linearize on the index: one inserts,
  the other hits IntegrityError and becomes a no-op.

  Entries are immutable. The only deletion path is purge_expired(), which
  drops entries whose token can no longer verify anyway (exp in the past).
  api/main.py runs it periodically; `python main.py purge-revoked` runs it
  once.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone

from sqlalchemy import Column, Float, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import RevocationEntry
from auth.store import make_engine

logger = logging.getLogger("ridehail.auth")

_metadata = MetaData()

_revoked_tokens = Table(
    "revoked_tokens",
    _metadata,
    Column("token", Text, primary_key=True),
    Column("revoked_at", String(32), nullable=False),
    Column("expires_at", Float, nullable=False, index=True),  # unix seconds
)


class RevocationLedger:
    """Append-only set of revoked token strings.

    Usage:
        ledger = RevocationLedger("sqlite:///ridehail.db")
        ledger.revoke(token, expires_at=codec.peek_expiry(token))
        ledger.is_revoked(token)   # True
        ledger.purge_expired()     # run periodically
    """

    def __init__(self, db_url: str, default_ttl: int = 24 * 60 * 60) -> None:
        self.engine: Engine = make_engine(db_url)
        # Retention for entries whose own expiry is unknown (undecodable tokens).
        self.default_ttl = default_ttl
        _metadata.create_all(self.engine)

    def revoke(self, token: str, expires_at: float | None = None) -> bool:
        """Insert token into the ledger. Returns False if it was already there.

        Any other integrity failure propagates; only a primary-key duplicate is
        a no-op.
        """
        if expires_at is None or not math.isfinite(expires_at):
            expires_at = time.time() + self.default_ttl
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _revoked_tokens.insert().values(
                        token=token,
                        revoked_at=datetime.now(timezone.utc).isoformat(),
                        expires_at=expires_at,
                    )
                )
                conn.commit()
        except IntegrityError:
            if self.is_revoked(token):
                return False
            raise
        return True

    def is_revoked(self, token: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_revoked_tokens.c.token).where(_revoked_tokens.c.token == token)).fetchone()
        return row is not None

    def get(self, token: str) -> RevocationEntry | None:
        with self.engine.connect() as conn:
            row = conn.execute(_revoked_tokens.select().where(_revoked_tokens.c.token == token)).fetchone()
        if row is None:
            return None
        return RevocationEntry(token=row.token, revoked_at=row.revoked_at, expires_at=row.expires_at)

    def purge_expired(self, now: float | None = None) -> int:
        """Delete entries whose token has passed its natural expiry. Returns rows removed."""
        cutoff = time.time() if now is None else now
        with self.engine.connect() as conn:
            result = conn.execute(_revoked_tokens.delete().where(_revoked_tokens.c.expires_at < cutoff))
            conn.commit()
        if result.rowcount:
            logger.info("Purged %d expired revocation entries", result.rowcount)
        return result.rowcount

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_revoked_tokens)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()
