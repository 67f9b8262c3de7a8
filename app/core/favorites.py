"""
Helpers for per-user join rows keyed by (user_id, <entity>_id): favorites and likes.

Callers check that the target entity exists (404) on the same connection first.
"""

from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import Table, and_, delete, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError


def _match(table: Table, column: str, entity_id: int, user_id: int):
    return and_(table.c.user_id == user_id, table.c[column] == entity_id)


def add_mark(conn: Connection, table: Table, column: str, entity_id: int, user_id: int, duplicate_detail: str) -> None:
    """Insert the join row; an existing (user_id, entity) pair is a 400"""
    try:
        conn.execute(insert(table).values({
            "user_id": user_id,
            column: entity_id,
            "created_at": datetime.now(),
        }))
    except IntegrityError:
        raise HTTPException(status_code=400, detail=duplicate_detail)


def remove_mark(conn: Connection, table: Table, column: str, entity_id: int, user_id: int, missing_detail: str) -> None:
    result = conn.execute(delete(table).where(_match(table, column, entity_id, user_id)))
    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail=missing_detail)


def marked_by(table: Table, column: str, user_id: int):
    """Subquery of entity ids the user has marked, for `id IN (...)` filters"""
    return select(table.c[column]).where(table.c.user_id == user_id)
