import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy import insert, or_, select
from sqlalchemy.engine import Engine
from supabase import Client

from app.config import settings
from app.modules.auth.schemas import LoginRequest, RegisterRequest, RegisterResponse, TokenResponse
from app.modules.users.models import ROLE_NORMAL, users

logger = logging.getLogger(__name__)


class AuthService:
    """Credentials live in Supabase Auth; profiles and roles live in the `user` table."""

    def __init__(self, supabase: Client, db: Engine):
        self.supabase = supabase
        self.db = db

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Create the Supabase identity, then the local profile row"""
        with self.db.connect() as conn:
            taken = conn.execute(
                select(users.c.id).where(
                    or_(users.c.name == register_data.name, users.c.email == register_data.email)
                )
            ).first()
        if taken:
            raise HTTPException(status_code=400, detail="User name or email already registered")

        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": {"name": register_data.name}
                }
            })
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User name or email already registered")
            logger.error(f"Supabase sign-up failed: {error_message}")
            raise HTTPException(status_code=500, detail="Registration failed")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")

        with self.db.begin() as conn:
            result = conn.execute(insert(users).values(
                auth_id=auth_response.user.id,
                name=register_data.name,
                email=register_data.email,
                phone=register_data.phone,
                nick_name=register_data.nick_name or register_data.name,
                role=ROLE_NORMAL,
                created_at=datetime.now(),
            ))
            user_id = result.inserted_primary_key[0]

        logger.info("Registered user %s (id=%s)", register_data.name, user_id)
        return RegisterResponse(
            user_id=user_id,
            email=register_data.email,
            message="User registered successfully"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Resolve the login identifier to an email, then sign in with Supabase"""
        if not login_data.email and not login_data.user_name:
            raise HTTPException(status_code=400, detail="Email or user name is required")

        with self.db.connect() as conn:
            if login_data.email:
                condition = users.c.email == login_data.email
            else:
                condition = users.c.name == login_data.user_name
            user = conn.execute(select(users.c.id, users.c.email).where(condition)).mappings().first()
        if not user:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": user["email"],
                "password": login_data.password
            })
        except Exception as e:
            logger.info("Login rejected for user id=%s: %s", user["id"], e)
            raise HTTPException(status_code=401, detail="Invalid credentials")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            token_type="bearer",
            user_id=user["id"],
            email=user["email"]
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Verify a bearer token with Supabase and return the caller identity"""
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug("Token rejected: %s", e)
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        auth_id = user_response.user.id
        with self.db.connect() as conn:
            row = conn.execute(
                select(users.c.id, users.c.email, users.c.role).where(users.c.auth_id == auth_id)
            ).mappings().first()
        if not row:
            raise HTTPException(status_code=401, detail="User profile not found")
        return {
            "id": row["id"],
            "auth_id": auth_id,
            "email": row["email"],
            "role": row["role"],
        }

    def logout(self, token: str) -> bool:
        """Supabase access tokens are stateless JWTs; sign-out only ends the client session"""
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Supabase sign-out failed: {e}")
            return False

    def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        """Send the Supabase password-reset email to a registered user"""
        with self.db.connect() as conn:
            exists = conn.execute(select(users.c.id).where(users.c.email == email)).first()
        if not exists:
            raise HTTPException(status_code=404, detail="User not found")
        options = {}
        redirect_to = redirect_to or settings.password_reset_redirect_url
        if redirect_to:
            options["redirect_to"] = redirect_to
        try:
            self.supabase.auth.reset_password_for_email(email, options)
        except Exception as e:
            logger.error(f"Failed to send password reset email: {e}")
            raise HTTPException(status_code=500, detail="Failed to send password reset email")
