"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; routes map these onto Pydantic response models.

Two read projections exist for principals:
  Principal             -- public. Safe to serialize into any response.
  PrincipalCredentials  -- internal. Carries the password hash and is only
                           produced by PrincipalStore.get_credentials() for
                           the login path.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PrincipalKind(str, Enum):
    """The two actor kinds. Values double as the wire namespace."""

    RIDER = "user"
    DRIVER = "captain"

    @property
    def label(self) -> str:
        return "User" if self is PrincipalKind.RIDER else "Captain"


@dataclass
class Vehicle:
    color: str
    plate: str
    capacity: int
    vehicle_type: str  # "car", "motorcycle", "auto"


@dataclass
class Principal:
    """Public projection of a rider or captain record.

    vehicle and status are only populated for captains. There is
    deliberately no password field on this class.
    """

    id: str
    kind: PrincipalKind
    firstname: str
    email: str
    lastname: str | None = None
    created_at: str | None = None
    vehicle: Vehicle | None = None
    status: str | None = None  # captains: "active" / "inactive"


@dataclass
class PrincipalCredentials:
    """Internal projection: the public record plus its bcrypt hash."""

    principal: Principal
    password_hash: str


@dataclass
class NewPrincipal:
    """Creation payload handed to PrincipalStore.create().

    password_hash must already be hashed; the store never sees plaintext.
    """

    kind: PrincipalKind
    firstname: str
    email: str
    password_hash: str
    lastname: str | None = None
    vehicle: Vehicle | None = None


@dataclass
class TokenClaims:
    principal_id: str
    kind: PrincipalKind
    issued_at: float
    expires_at: float


@dataclass
class RevocationEntry:
    token: str
    revoked_at: str
    expires_at: float
