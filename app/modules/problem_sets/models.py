"""
Tables "problem_set", "problem_in_problem_set" and "problem_set_favorite".
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text

from app.database.sql import metadata

problem_sets = Table(
    "problem_set",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False, index=True),
    Column("is_public", Boolean, nullable=False, default=True),
    Column("area_id", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

problem_set_items = Table(
    "problem_in_problem_set",
    metadata,
    Column("problem_set_id", Integer, ForeignKey("problem_set.id"), primary_key=True),
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False),
)

problem_set_favorites = Table(
    "problem_set_favorite",
    metadata,
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
    Column("problem_set_id", Integer, ForeignKey("problem_set.id"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False),
)
