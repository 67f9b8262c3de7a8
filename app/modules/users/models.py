"""
Table "user": local profile for every Supabase Auth identity.

- id: integer primary key (exposed to clients as user_id)
- auth_id: Supabase auth.users id (unique, set at registration)
- name: unique login name
- email: unique, mirrors the Supabase identity
- phone, nick_name, avatar_url: optional profile fields
- role: "normal" | "admin"
- created_at: timestamp
"""

from sqlalchemy import Column, DateTime, Integer, String, Table

from app.database.sql import metadata

ROLE_NORMAL = "normal"
ROLE_ADMIN = "admin"

users = Table(
    "user",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("auth_id", String(64), nullable=False, unique=True),
    Column("name", String(64), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32), nullable=True),
    Column("nick_name", String(64), nullable=True),
    Column("avatar_url", String(512), nullable=True),
    Column("role", String(16), nullable=False, default=ROLE_NORMAL),
    Column("created_at", DateTime, nullable=False),
)
