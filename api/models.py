"""
API request and response models for the rider and captain endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire compatibility: the JSON keys (fullname.firstname, vehicle.vehicleType,
_id) match what the existing web and mobile clients already send and read.
Snake_case attributes carry aliases for those keys.

No response model here has a password field. That is the second line of
defence behind the public/internal projections in auth/store.py.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", no whitespace, a dot in the domain part.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt refuses input longer than 72 bytes. The cap is on the UTF-8 encoding,
# not the character count.
BCRYPT_MAX_BYTES = 72

# Emails are stripped before the pattern runs. Passwords are never stripped.
EmailField = Annotated[str, StringConstraints(strip_whitespace=True, max_length=255, pattern=EMAIL_PATTERN)]


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class VehicleTypeEnum(str, Enum):
    car = "car"
    motorcycle = "motorcycle"
    auto = "auto"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class FullnameIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    firstname: str = Field(min_length=3, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=3, max_length=100)


class VehicleIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    color: str = Field(min_length=3, max_length=50)
    plate: str = Field(min_length=3, max_length=20)
    capacity: int = Field(ge=1, le=20)
    vehicle_type: VehicleTypeEnum = Field(alias="vehicleType")


class UserRegisterRequest(BaseModel):
    """Request body for POST /users/register.

    The password is checked in bytes so a multi-byte password can never reach
    bcrypt over its 72-byte limit. It is kept exactly as sent.
    """

    fullname: FullnameIn
    email: EmailField
    password: str = Field(min_length=3, max_length=64)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class CaptainRegisterRequest(UserRegisterRequest):
    """Request body for POST /captains/register."""

    vehicle: VehicleIn


class LoginRequest(BaseModel):
    """Request body for POST /users/login and POST /captains/login."""

    email: EmailField
    password: str = Field(min_length=1, max_length=64)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class FullnameOut(BaseModel):
    firstname: str
    lastname: Optional[str] = None


class VehicleOut(BaseModel):
    color: str
    plate: str
    capacity: int
    vehicle_type: str = Field(serialization_alias="vehicleType")


class UserOut(BaseModel):
    id: str = Field(serialization_alias="_id")
    fullname: FullnameOut
    email: str
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")


class CaptainOut(UserOut):
    vehicle: VehicleOut
    status: str = "inactive"


class RegisterResponse(BaseModel):
    """Response for POST /users/register and POST /captains/register (201)."""

    message: str
    token: str


class UserLoginResponse(BaseModel):
    token: str
    user: UserOut


class CaptainLoginResponse(BaseModel):
    token: str
    captain: CaptainOut


class UserProfileResponse(BaseModel):
    user: UserOut


class CaptainProfileResponse(BaseModel):
    captain: CaptainOut


class MessageResponse(BaseModel):
    """Plain {"message": ...} body. Also the shape of every AuthError response."""

    message: str


class ValidationErrorItem(BaseModel):
    msg: str
    path: str
    location: str
    type: str


class ValidationErrorResponse(BaseModel):
    """400 body when a request fails shape validation."""

    errors: list[ValidationErrorItem]


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
