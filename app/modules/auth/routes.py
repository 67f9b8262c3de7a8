from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.core.dependencies import get_auth_service, get_current_token, get_current_user_id
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    ResetPasswordRequest
)
from app.modules.auth.service import AuthService
from typing import Dict

router = APIRouter(tags=["auth"])


@router.get("/ping", response_class=PlainTextResponse)
def ping():
    return "pong"


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login with email or user name and get an access token"""
    return service.login(login_data)


@router.get("/logout", status_code=200)
def logout(
    current_user: Dict = Depends(get_current_user_id),
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.post("/reset-password", status_code=200)
def reset_password(
    request: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Send a password reset email"""
    service.reset_password(request.email)
    return {"message": "Password reset email sent"}
