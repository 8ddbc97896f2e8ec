from fastapi import APIRouter
from pydantic import BaseModel, Field

from lorrybook.core.modules.user.models import UserView
from lorrybook.web.deps import AppDep, AuthTokenDep
from lorrybook.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    username: str = Field(..., description="Username for authentication")
    password: str = Field(..., description="Password for authentication")


class LoginResponse(BaseModel):
    """Authentication response."""

    token: str = Field(..., description="Bearer token for subsequent requests")


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with username and password to receive a bearer token.",
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
async def login(login_data: LoginRequest, app: AppDep) -> LoginResponse:
    token = await app.login(login_data.username, login_data.password)
    return LoginResponse(token=token)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current bearer token.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.logout(auth_token)


@router.get(
    "/auth/me",
    summary="Get current user",
    description="Get the account that owns the bearer token.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_current_user(app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.get_current_user(auth_token)
