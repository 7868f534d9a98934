"""
Authentication and Profile Endpoints

Endpoints:
- POST  /api/v1/auth/register         - Create account, returns tokens
- POST  /api/v1/auth/login            - Email + password login
- POST  /api/v1/auth/refresh          - Rotate access token
- POST  /api/v1/auth/logout           - Revoke current session
- POST  /api/v1/auth/forgot-password  - Email a reset link
- POST  /api/v1/auth/reset-password   - Set a new password
- GET   /api/v1/auth/me               - Current profile and role
- PATCH /api/v1/auth/me               - Update profile
- POST  /api/v1/auth/become-seller    - Enable selling
"""
from fastapi import APIRouter, Request, status

from notevault.modules.auth.dependencies import AuthServiceDep, CurrentUser, SessionId
from notevault.modules.auth.schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _client_info(request: Request) -> tuple[str | None, str | None]:
    ip = request.client.host if request.client else None
    return request.headers.get("user-agent"), ip


def _auth_response(user, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        **tokens.model_dump(),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    responses={409: {"description": "Email already registered (EMAIL_EXISTS)"}},
)
async def register(
    payload: RegisterRequest,
    request: Request,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """Create a buyer account and return an access/refresh token pair."""
    user_agent, ip = _client_info(request)
    user, tokens = await auth_service.register(payload, user_agent=user_agent, ip=ip)
    return _auth_response(user, tokens)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login",
    description="""
Email + password login.

- Wrong credentials: `401 INVALID_CREDENTIALS`
- 5 consecutive failures lock the account for 15 minutes: `429 ACCOUNT_LOCKED`
- Suspended account: `403 ACCOUNT_SUSPENDED`
    """,
)
async def login(
    payload: LoginRequest,
    request: Request,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    user_agent, ip = _client_info(request)
    user, tokens = await auth_service.login(payload, user_agent=user_agent, ip=ip)
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=TokenPair, summary="Refresh Tokens")
async def refresh(payload: RefreshRequest, auth_service: AuthServiceDep) -> TokenPair:
    return await auth_service.refresh(payload.refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Logout")
async def logout(
    current_user: CurrentUser,
    session_id: SessionId,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    """Revoke the session bound to the current access token."""
    await auth_service.logout(session_id)
    return MessageResponse(message="Logged out")


@router.post("/forgot-password", response_model=MessageResponse, summary="Forgot Password")
async def forgot_password(
    payload: ForgotPasswordRequest,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    """Always succeeds so the endpoint cannot be used to discover accounts."""
    await auth_service.forgot_password(payload.email)
    return MessageResponse(message="If an account exists for this email, a reset link has been sent")


@router.post("/reset-password", response_model=MessageResponse, summary="Reset Password")
async def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    await auth_service.reset_password(payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset. You can now log in.")


@router.get("/me", response_model=UserResponse, summary="My Profile")
async def get_my_profile(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse, summary="Update Profile")
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    user = await auth_service.update_profile(current_user, payload)
    return UserResponse.model_validate(user)


@router.post("/become-seller", response_model=UserResponse, summary="Become Seller")
async def become_seller(
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    user = await auth_service.become_seller(current_user)
    return UserResponse.model_validate(user)
