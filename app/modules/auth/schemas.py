from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    user_name: Optional[str] = None
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    email: str


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    nick_name: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: int
    email: str
    message: str


class ResetPasswordRequest(BaseModel):
    email: EmailStr
