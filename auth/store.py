"""
auth/store.py -- SQLAlchemy Core persistence layer for riders and captains.

Pattern: Repository + Data Mapper. PrincipalStore is the repository;
_row_to_principal is the mapper. Service and dependency code never touches
SQL directly.

Projections:
  get_by_id() / get_by_email() return the public Principal (no hash).
  get_credentials() is the only read that returns the password hash, and is
  only called by the login path. Callers never strip fields themselves.

Namespaces:
  Riders live in "users", captains in "captains". Each table has its own
  UNIQUE(email), so the same address can register once per kind.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Emails are normalized (stripped, lowercased) on write and on lookup.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import NewPrincipal, Principal, PrincipalCredentials, PrincipalKind, Vehicle

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100)),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_captains = Table(
    "captains",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100)),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="inactive"),
    Column("vehicle_color", String(50), nullable=False),
    Column("vehicle_plate", String(20), nullable=False),
    Column("vehicle_capacity", Integer, nullable=False),
    Column("vehicle_type", String(20), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_TABLES = {
    PrincipalKind.RIDER: _users,
    PrincipalKind.DRIVER: _captains,
}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite settings every store in auth/ shares."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for rider and captain records.

    Usage:
        store = PrincipalStore("sqlite:///ridehail.db")
        captain = store.create(NewPrincipal(kind=PrincipalKind.DRIVER, ...))
        found = store.get_by_id(PrincipalKind.DRIVER, captain.id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create(self, new: NewPrincipal) -> Principal:
        """Insert a new principal and return its public projection.

        Raises sqlalchemy.exc.IntegrityError if the email is already taken in
        that kind's namespace. AuthService pre-checks, but two concurrent
        registrations can both pass the pre-check; the UNIQUE index decides.
        """
        table = _TABLES[new.kind]
        values = {
            "id": str(uuid.uuid4()),
            "firstname": new.firstname,
            "lastname": new.lastname,
            "email": normalize_email(new.email),
            "password_hash": new.password_hash,
            "created_at": _now_iso(),
        }
        if new.kind is PrincipalKind.DRIVER:
            if new.vehicle is None:
                raise ValueError("captains require a vehicle")
            values.update(
                status="inactive",
                vehicle_color=new.vehicle.color,
                vehicle_plate=new.vehicle.plate,
                vehicle_capacity=new.vehicle.capacity,
                vehicle_type=new.vehicle.vehicle_type,
            )
        with self.engine.connect() as conn:
            conn.execute(table.insert().values(**values))
            conn.commit()
        return _row_to_principal(new.kind, _Row(values))

    def get_by_id(self, kind: PrincipalKind, principal_id: str) -> Principal | None:
        """Look up a principal by primary key. Returns None if not found."""
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.id == principal_id)).fetchone()
        return _row_to_principal(kind, row) if row is not None else None

    def get_by_email(self, kind: PrincipalKind, email: str) -> Principal | None:
        """Look up a principal by email (case-insensitive). Returns None if not found."""
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.email == normalize_email(email))).fetchone()
        return _row_to_principal(kind, row) if row is not None else None

    def get_credentials(self, kind: PrincipalKind, email: str) -> PrincipalCredentials | None:
        """Internal projection for the login path: public record plus password hash."""
        table = _TABLES[kind]
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.email == normalize_email(email))).fetchone()
        if row is None:
            return None
        return PrincipalCredentials(principal=_row_to_principal(kind, row), password_hash=row.password_hash)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


class _Row:
    """Attribute view over a plain dict so create() can reuse the row mapper."""

    def __init__(self, values: dict) -> None:
        self.__dict__.update(values)


def _row_to_principal(kind: PrincipalKind, row) -> Principal:
    principal = Principal(
        id=row.id,
        kind=kind,
        firstname=row.firstname,
        lastname=row.lastname,
        email=row.email,
        created_at=row.created_at,
    )
    if kind is PrincipalKind.DRIVER:
        principal.status = row.status
        principal.vehicle = Vehicle(
            color=row.vehicle_color,
            plate=row.vehicle_plate,
            capacity=row.vehicle_capacity,
            vehicle_type=row.vehicle_type,
        )
    return principal
