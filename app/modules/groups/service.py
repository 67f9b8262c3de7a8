import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from app.config import settings
from app.core.dependencies import check_group_admin, check_group_member, check_owner_or_admin, is_admin
from app.core.invitation import generate_invitation_code
from app.modules.groups.models import group_members, groups
from app.modules.groups.schemas import AllGroupResponse, GroupCreate, GroupResponse, GroupUpdate
from app.modules.users.models import users
from app.modules.users.schemas import AllUserResponse
from app.modules.users.service import summary_columns, to_user_info, to_user_summary

logger = logging.getLogger(__name__)

_owner = users.alias("owner_user")


def _member_count():
    return (
        select(func.count())
        .select_from(group_members)
        .where(group_members.c.group_id == groups.c.id)
        .scalar_subquery()
        .label("member_count")
    )


def _to_response(row: Mapping[str, Any], include_invitation: bool = False) -> GroupResponse:
    return GroupResponse(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        invitation=row["invitation"] if include_invitation else None,
        owner_id=row["user_id"],
        user_info=to_user_summary(row, prefix="owner_"),
        member_count=row["member_count"],
        created_at=row["created_at"],
        area_id=row["area_id"],
        avatar_url=row["avatar_url"],
    )


class GroupService:
    def __init__(self, db: Engine):
        self.db = db

    def _base_query(self):
        return (
            select(groups, *summary_columns(_owner, "owner_"), _member_count())
            .join(_owner, _owner.c.id == groups.c.user_id)
        )

    def _get_group_row(self, conn: Connection, group_id: int) -> Mapping[str, Any]:
        row = conn.execute(select(groups).where(groups.c.id == group_id)).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail="Group not found")
        return row

    def _get_membership(self, conn: Connection, group_id: int, user_id: int) -> Optional[Mapping[str, Any]]:
        return conn.execute(
            select(group_members).where(and_(
                group_members.c.group_id == group_id,
                group_members.c.user_id == user_id,
            ))
        ).mappings().first()

    def _delete_members(self, conn: Connection, group_id: int) -> None:
        conn.execute(delete(group_members).where(group_members.c.group_id == group_id))

    def list_groups(
        self,
        group_id: Optional[int] = None,
        member_user_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        area_id: Optional[int] = None,
    ) -> AllGroupResponse:
        """List groups matching every filter given; the invitation code is never listed"""
        query = self._base_query()
        if group_id is not None:
            query = query.where(groups.c.id == group_id)
        if member_user_id is not None:
            query = query.where(groups.c.id.in_(
                select(group_members.c.group_id).where(group_members.c.user_id == member_user_id)
            ))
        if owner_id is not None:
            query = query.where(groups.c.user_id == owner_id)
        if area_id is not None:
            query = query.where(groups.c.area_id == area_id)

        with self.db.connect() as conn:
            rows = conn.execute(query.order_by(groups.c.id)).mappings().all()
        result = [_to_response(row) for row in rows]
        return AllGroupResponse(total_count=len(result), group=result)

    def create_group(self, group_data: GroupCreate, user_id: int) -> GroupResponse:
        """Create a group and enrol the creator as owner + admin"""
        now = datetime.now()
        area_id = group_data.area_id if group_data.area_id is not None else settings.default_area_id
        with self.db.begin() as conn:
            result = conn.execute(insert(groups).values(
                name=group_data.name,
                description=group_data.description,
                invitation=generate_invitation_code(settings.invitation_code_length),
                user_id=user_id,
                area_id=area_id,
                avatar_url=group_data.avatar_url,
                created_at=now,
            ))
            group_id = result.inserted_primary_key[0]
            conn.execute(insert(group_members).values(
                group_id=group_id,
                user_id=user_id,
                is_admin=True,
                is_owner=True,
                created_at=now,
            ))
            row = conn.execute(self._base_query().where(groups.c.id == group_id)).mappings().one()
        logger.info("User %s created group %s", user_id, group_id)
        return _to_response(row, include_invitation=True)

    def get_invitation(self, group_id: int, user_data: Dict[str, Any]) -> str:
        with self.db.connect() as conn:
            group = self._get_group_row(conn, group_id)
            check_group_member(group_id, user_data, conn)
        return group["invitation"]

    def delete_group(self, group_id: int, user_data: Dict[str, Any]) -> None:
        """Delete memberships then the group, atomically"""
        with self.db.begin() as conn:
            group = self._get_group_row(conn, group_id)
            check_owner_or_admin(group["user_id"], user_data)
            self._delete_members(conn, group_id)
            conn.execute(delete(groups).where(groups.c.id == group_id))
        logger.info("User %s deleted group %s", user_data["id"], group_id)

    def list_members(self, group_id: int, user_data: Dict[str, Any]) -> AllUserResponse:
        """Members of a group; email and phone only for the member themself or an admin"""
        with self.db.connect() as conn:
            self._get_group_row(conn, group_id)
            rows = conn.execute(
                select(users)
                .where(users.c.id.in_(
                    select(group_members.c.user_id).where(group_members.c.group_id == group_id)
                ))
                .order_by(users.c.id)
            ).mappings().all()
        members = [
            to_user_info(row, include_contact=row["id"] == user_data["id"] or is_admin(user_data))
            for row in rows
        ]
        return AllUserResponse(total_count=len(members), user=members)

    def add_member(self, group_id: int, user_id: int, invitation: Optional[str], user_data: Dict[str, Any]) -> None:
        """Join a group with its invitation code; admins need no code"""
        with self.db.begin() as conn:
            group = self._get_group_row(conn, group_id)
            target = conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
            if not target:
                raise HTTPException(status_code=404, detail="User not found")
            if group["invitation"] != invitation and not is_admin(user_data):
                raise HTTPException(status_code=403, detail="Invalid invitation code")
            try:
                conn.execute(insert(group_members).values(
                    group_id=group_id,
                    user_id=user_id,
                    is_admin=False,
                    is_owner=False,
                    created_at=datetime.now(),
                ))
            except IntegrityError:
                raise HTTPException(status_code=400, detail="User already a member of this group")

    def remove_member(self, group_id: int, user_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            group = self._get_group_row(conn, group_id)
            check_group_admin(group_id, user_data, conn)
            if group["user_id"] == user_id:
                raise HTTPException(status_code=403, detail="The group owner cannot be removed")
            result = conn.execute(delete(group_members).where(and_(
                group_members.c.group_id == group_id,
                group_members.c.user_id == user_id,
            )))
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail="User is not a member of this group")

    def set_member_admin(self, group_id: int, user_id: int, admin_flag: bool, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            group = self._get_group_row(conn, group_id)
            check_owner_or_admin(group["user_id"], user_data)
            if group["user_id"] == user_id:
                raise HTTPException(status_code=403, detail="The group owner's role cannot be changed")
            if not self._get_membership(conn, group_id, user_id):
                raise HTTPException(status_code=404, detail="User is not a member of this group")
            conn.execute(
                update(group_members)
                .where(and_(group_members.c.group_id == group_id, group_members.c.user_id == user_id))
                .values(is_admin=admin_flag)
            )

    def quit_group(self, group_id: int, user_id: int) -> None:
        """Leave a group; the owner has to delete it instead"""
        with self.db.begin() as conn:
            if not self._get_membership(conn, group_id, user_id):
                raise HTTPException(status_code=404, detail="Group not found or user is not a member")
            owner_id = conn.execute(select(groups.c.user_id).where(groups.c.id == group_id)).scalar()
            if owner_id == user_id:
                raise HTTPException(status_code=403, detail="The group owner cannot quit the group")
            conn.execute(delete(group_members).where(and_(
                group_members.c.group_id == group_id,
                group_members.c.user_id == user_id,
            )))

    def update_group(self, group_id: int, group_data: GroupUpdate, user_data: Dict[str, Any]) -> None:
        """Merge update: fields left out (or null) keep their stored value"""
        with self.db.begin() as conn:
            group = self._get_group_row(conn, group_id)
            check_owner_or_admin(group["user_id"], user_data)
            changes = group_data.model_dump(exclude_none=True)
            if changes:
                conn.execute(update(groups).where(groups.c.id == group_id).values(**changes))
