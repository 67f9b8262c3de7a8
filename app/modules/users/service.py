import logging
from typing import Any, Dict, Mapping

from fastapi import HTTPException
from sqlalchemy import and_, select, update
from sqlalchemy.engine import Engine

from app.modules.users.models import ROLE_ADMIN, users
from app.modules.users.schemas import UserInfoResponse, UserSummary, UserUpdate

logger = logging.getLogger(__name__)


def to_user_info(row: Mapping[str, Any], include_contact: bool = True) -> UserInfoResponse:
    return UserInfoResponse(
        user_id=row["id"],
        user_name=row["name"],
        email=row["email"] if include_contact else None,
        phone=row["phone"] if include_contact else None,
        nick_name=row["nick_name"],
        avatar_url=row["avatar_url"],
        role=row["role"],
        created_at=row["created_at"],
    )


def to_user_summary(row: Mapping[str, Any], prefix: str = "") -> UserSummary:
    """Build a summary from a joined row whose user columns carry `prefix`"""
    return UserSummary(
        user_id=row[f"{prefix}id"],
        user_name=row[f"{prefix}name"],
        nick_name=row[f"{prefix}nick_name"],
        avatar_url=row[f"{prefix}avatar_url"],
    )


def summary_columns(table, prefix: str):
    return [
        table.c.id.label(f"{prefix}id"),
        table.c.name.label(f"{prefix}name"),
        table.c.nick_name.label(f"{prefix}nick_name"),
        table.c.avatar_url.label(f"{prefix}avatar_url"),
    ]


class UserService:
    def __init__(self, db: Engine):
        self.db = db

    def get_user_by_id(self, user_id: int, user_data: Dict[str, Any]) -> UserInfoResponse:
        """Get a profile; email and phone only for the user themself or an admin"""
        with self.db.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail="User not found")
        include_contact = user_id == user_data["id"] or user_data.get("role") == ROLE_ADMIN
        return to_user_info(row, include_contact=include_contact)

    def update_user(self, user_id: int, user_data: UserUpdate) -> UserInfoResponse:
        """Merge update: fields left out (or null) keep their stored value"""
        changes = user_data.model_dump(exclude_none=True)
        with self.db.begin() as conn:
            current = conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
            if not current:
                raise HTTPException(status_code=404, detail="User not found")
            if "name" in changes:
                clash = conn.execute(
                    select(users.c.id).where(and_(users.c.name == changes["name"], users.c.id != user_id))
                ).first()
                if clash:
                    raise HTTPException(status_code=400, detail="User name already taken")
            if changes:
                conn.execute(update(users).where(users.c.id == user_id).values(**changes))
            row = conn.execute(select(users).where(users.c.id == user_id)).mappings().first()
        return to_user_info(row)

    def set_avatar(self, user_id: int, avatar_url: str) -> None:
        with self.db.begin() as conn:
            conn.execute(update(users).where(users.c.id == user_id).values(avatar_url=avatar_url))
