"""
Tables "group" and "group_member".

group:
- id, name, description
- invitation: join code, required by /group/add unless the caller is admin
- user_id: owner/creator
- area_id: defaults to settings.default_area_id
- avatar_url, created_at

group_member:
- (group_id, user_id) primary key
- is_owner / is_admin flags; the owner row always has both set
- created_at

Deleting a group removes its group_member rows in the same transaction.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text

from app.database.sql import metadata

groups = Table(
    "group",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(128), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("invitation", String(32), nullable=False),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False, index=True),
    Column("area_id", Integer, nullable=False),
    Column("avatar_url", String(512), nullable=True),
    Column("created_at", DateTime, nullable=False),
)

group_members = Table(
    "group_member",
    metadata,
    Column("group_id", Integer, ForeignKey("group.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True, index=True),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("is_owner", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
)
