"""
api/routes/captains.py -- Captain (driver) account endpoints.

Routes:
  POST /captains/register   -- create captain; 201 {message, token}
  POST /captains/login      -- password login; 200 {token, captain}; sets cookie
  GET  /captains/profile    -- current captain (requires auth)
  POST /captains/logout     -- revoke token, clear cookie (requires auth)

Security:
  Login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  Unknown email and wrong password return the identical 401 body.
  Cache-Control: no-store on login responses -- they carry a token.
  Logout revokes the presented token in the ledger; replaying it afterwards
  is refused with 401 "Token is blacklisted" even before it expires.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    CaptainLoginResponse,
    CaptainOut,
    CaptainProfileResponse,
    CaptainRegisterRequest,
    FullnameOut,
    LoginRequest,
    MessageResponse,
    RegisterResponse,
    VehicleOut,
)
from auth.dependencies import get_current_captain
from auth.models import Principal, PrincipalKind, Vehicle
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, extract_token, set_auth_cookie

router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/captains/register", response_model=RegisterResponse, status_code=201)
async def register_captain(request: Request, body: CaptainRegisterRequest) -> RegisterResponse:
    """Register a captain with their vehicle. Returns a token, sets no cookie."""
    service: AuthService = request.app.state.auth_service
    token = await service.register(
        PrincipalKind.DRIVER,
        firstname=body.fullname.firstname,
        lastname=body.fullname.lastname,
        email=body.email,
        password=body.password,
        vehicle=Vehicle(
            color=body.vehicle.color,
            plate=body.vehicle.plate,
            capacity=body.vehicle.capacity,
            vehicle_type=body.vehicle.vehicle_type.value,
        ),
    )
    return RegisterResponse(message="Captain registered successfully", token=token)


@router.post("/captains/login", response_model=CaptainLoginResponse)
@limiter.limit(login_rate_limit)  # below @router so the registered endpoint is the limited wrapper
async def login_captain(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate a captain; return the token and profile and set the token cookie."""
    service: AuthService = request.app.state.auth_service
    token, captain = await service.login(PrincipalKind.DRIVER, body.email, body.password)

    resp = JSONResponse(
        status_code=200,
        content=CaptainLoginResponse(token=token, captain=_captain_to_response(captain)).model_dump(by_alias=True),
    )
    set_auth_cookie(
        resp,
        token,
        max_age=service.codec.expire_seconds,
        secure=request.app.state.settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/captains/profile", response_model=CaptainProfileResponse)
async def captain_profile(request: Request, captain: Principal = Depends(get_current_captain)) -> CaptainProfileResponse:
    service: AuthService = request.app.state.auth_service
    return CaptainProfileResponse(captain=_captain_to_response(service.get_profile(captain)))


@router.post("/captains/logout", response_model=MessageResponse)
async def logout_captain(request: Request, captain: Principal = Depends(get_current_captain)) -> JSONResponse:
    """Revoke the presented token and clear the cookie."""
    service: AuthService = request.app.state.auth_service
    await service.logout(extract_token(request))
    resp = JSONResponse(content={"message": "Logged out successfully"})
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _captain_to_response(captain: Principal) -> CaptainOut:
    vehicle = captain.vehicle
    return CaptainOut(
        id=captain.id,
        fullname=FullnameOut(firstname=captain.firstname, lastname=captain.lastname),
        email=captain.email,
        created_at=captain.created_at,
        status=captain.status or "inactive",
        vehicle=VehicleOut(
            color=vehicle.color,
            plate=vehicle.plate,
            capacity=vehicle.capacity,
            vehicle_type=vehicle.vehicle_type,
        ),
    )
