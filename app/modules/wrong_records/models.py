# Table "wrong_record": one row per (user, problem) answered incorrectly.
# `count` grows each time the same problem is recorded again.

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table

from app.database.sql import metadata

wrong_records = Table(
    "wrong_record",
    metadata,
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
    Column("problem_id", Integer, ForeignKey("problem.id"), primary_key=True, index=True),
    Column("count", Integer, nullable=False, default=1),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)
