"""
Core dependencies for route protection and ownership checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import and_, or_, select, true
from sqlalchemy.engine import Connection, Engine
from supabase import Client
from typing import Optional, Dict, Any
import logging

from app.database.sql import get_db
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.groups.models import group_members, groups
from app.modules.users.models import ROLE_ADMIN

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    db: Engine = Depends(get_db)
) -> AuthService:
    return AuthService(supabase, db)


def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract bearer token from Authorization header"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_user_id(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Resolve the caller identity: {"id", "auth_id", "email", "role"}"""
    return auth_service.get_current_user(token)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[Dict[str, Any]]:
    """Like get_current_user_id, but anonymous requests resolve to None"""
    if credentials is None or not credentials.credentials:
        return None
    return auth_service.get_current_user(credentials.credentials)


def is_admin(user_data: Optional[Dict[str, Any]]) -> bool:
    return bool(user_data) and user_data.get("role") == ROLE_ADMIN


def check_owner_or_admin(owner_id: int, user_data: Dict[str, Any], detail: str = "Permission denied") -> Dict[str, Any]:
    """Allow the resource owner or an admin; anyone else gets 403"""
    if owner_id == user_data["id"] or is_admin(user_data):
        return user_data
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def visible_to(table, user_data: Optional[Dict[str, Any]]):
    """WHERE clause for tables with is_public/user_id: public rows, own rows, or everything for admins"""
    if is_admin(user_data):
        return true()
    if user_data is None:
        return table.c.is_public == True  # noqa: E712
    return or_(table.c.is_public == True, table.c.user_id == user_data["id"])  # noqa: E712


def can_view(row, user_data: Optional[Dict[str, Any]]) -> bool:
    if row["is_public"] or is_admin(user_data):
        return True
    return user_data is not None and row["user_id"] == user_data["id"]


def check_group_admin(group_id: int, user_data: Dict[str, Any], conn: Connection) -> Dict[str, Any]:
    """Check if user is owner or admin member of a group, or a global admin"""
    if is_admin(user_data):
        return user_data

    owner_id = conn.execute(select(groups.c.user_id).where(groups.c.id == group_id)).scalar()
    if owner_id == user_data["id"]:
        return user_data

    member = conn.execute(
        select(group_members.c.user_id).where(and_(
            group_members.c.group_id == group_id,
            group_members.c.user_id == user_data["id"],
            group_members.c.is_admin == True,  # noqa: E712
        ))
    ).first()
    if member:
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a group owner or admin to perform this action"
    )


def check_group_member(group_id: int, user_data: Dict[str, Any], conn: Connection) -> Dict[str, Any]:
    """Check if user is a member of a group or a global admin"""
    if is_admin(user_data):
        return user_data

    member = conn.execute(
        select(group_members.c.user_id).where(and_(
            group_members.c.group_id == group_id,
            group_members.c.user_id == user_data["id"],
        ))
    ).first()
    if member:
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this group"
    )
