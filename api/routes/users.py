"""
api/routes/users.py -- Rider account endpoints.

Routes:
  POST /users/register   -- create rider; 201 {message, token}
  POST /users/login      -- password login; 200 {token, user}; sets cookie
  GET  /users/profile    -- current rider (requires auth)
  POST /users/logout     -- revoke token, clear cookie (requires auth)

Same security properties as api/routes/captains.py. A rider token is not
accepted on captain routes and vice versa (400 invalid token).
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    FullnameOut,
    LoginRequest,
    MessageResponse,
    RegisterResponse,
    UserLoginResponse,
    UserOut,
    UserProfileResponse,
    UserRegisterRequest,
)
from auth.dependencies import get_current_rider
from auth.models import Principal, PrincipalKind
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, extract_token, set_auth_cookie

router = APIRouter()


@router.post("/users/register", response_model=RegisterResponse, status_code=201)
async def register_user(request: Request, body: UserRegisterRequest) -> RegisterResponse:
    service: AuthService = request.app.state.auth_service
    token = await service.register(
        PrincipalKind.RIDER,
        firstname=body.fullname.firstname,
        lastname=body.fullname.lastname,
        email=body.email,
        password=body.password,
    )
    return RegisterResponse(message="User registered successfully", token=token)


@router.post("/users/login", response_model=UserLoginResponse)
@limiter.limit(login_rate_limit)  # below @router so the registered endpoint is the limited wrapper
async def login_user(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate a rider; return the token and profile and set the token cookie."""
    service: AuthService = request.app.state.auth_service
    token, user = await service.login(PrincipalKind.RIDER, body.email, body.password)

    resp = JSONResponse(
        status_code=200,
        content=UserLoginResponse(token=token, user=_user_to_response(user)).model_dump(by_alias=True),
    )
    set_auth_cookie(
        resp,
        token,
        max_age=service.codec.expire_seconds,
        secure=request.app.state.settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/users/profile", response_model=UserProfileResponse)
async def user_profile(request: Request, user: Principal = Depends(get_current_rider)) -> UserProfileResponse:
    service: AuthService = request.app.state.auth_service
    return UserProfileResponse(user=_user_to_response(service.get_profile(user)))


@router.post("/users/logout", response_model=MessageResponse)
async def logout_user(request: Request, user: Principal = Depends(get_current_rider)) -> JSONResponse:
    service: AuthService = request.app.state.auth_service
    await service.logout(extract_token(request))
    resp = JSONResponse(content={"message": "Logged out successfully"})
    clear_auth_cookie(resp)
    return resp


def _user_to_response(user: Principal) -> UserOut:
    return UserOut(
        id=user.id,
        fullname=FullnameOut(firstname=user.firstname, lastname=user.lastname),
        email=user.email,
        created_at=user.created_at,
    )
