"""
Tables "note", "note_like", "note_favorite" and "note_review".

Likes and favorites are (user_id, note_id) join rows. Deleting a note deletes
its likes, favorites and reviews first, inside one transaction.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text

from app.database.sql import metadata

notes = Table(
    "note",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False, index=True),
    Column("is_public", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
)

note_likes = Table(
    "note_like",
    metadata,
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
    Column("note_id", Integer, ForeignKey("note.id"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False),
)

note_favorites = Table(
    "note_favorite",
    metadata,
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
    Column("note_id", Integer, ForeignKey("note.id"), primary_key=True, index=True),
    Column("created_at", DateTime, nullable=False),
)

note_reviews = Table(
    "note_review",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("note_id", Integer, ForeignKey("note.id"), nullable=False, index=True),
    Column("user_id", Integer, ForeignKey("user.id"), nullable=False),
    Column("title", String(255), nullable=False, default=""),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False),
)
