import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import HTTPException
from sqlalchemy import and_, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine

from app.core.dependencies import can_view
from app.modules.problems.models import problems
from app.modules.wrong_records.models import wrong_records
from app.modules.wrong_records.schemas import AllWrongRecordResponse, WrongRecordResponse

logger = logging.getLogger(__name__)


def _dialect_insert(conn: Connection):
    """INSERT construct supporting ON CONFLICT for the connected backend"""
    if conn.dialect.name == "postgresql":
        return postgresql.insert
    if conn.dialect.name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect: {conn.dialect.name}")


class WrongRecordService:
    def __init__(self, db: Engine):
        self.db = db

    def record(self, problem_id: int, user_data: Dict[str, Any]) -> int:
        """Record a wrong answer; returns the updated count for (user, problem)"""
        user_id = user_data["id"]
        now = datetime.now()
        with self.db.begin() as conn:
            problem = conn.execute(select(problems).where(problems.c.id == problem_id)).mappings().first()
            if not problem:
                raise HTTPException(status_code=404, detail="Problem not found")
            if not can_view(problem, user_data):
                raise HTTPException(status_code=403, detail="Permission denied")

            match = and_(wrong_records.c.user_id == user_id, wrong_records.c.problem_id == problem_id)
            upsert = _dialect_insert(conn)(wrong_records).values(
                user_id=user_id,
                problem_id=problem_id,
                count=1,
                created_at=now,
                updated_at=now,
            )
            conn.execute(upsert.on_conflict_do_update(
                index_elements=[wrong_records.c.user_id, wrong_records.c.problem_id],
                set_={"count": wrong_records.c.count + 1, "updated_at": now},
            ))
            return conn.execute(select(wrong_records.c.count).where(match)).scalar()

    def remove(self, problem_id: int, user_id: int) -> None:
        with self.db.begin() as conn:
            result = conn.execute(delete(wrong_records).where(and_(
                wrong_records.c.user_id == user_id,
                wrong_records.c.problem_id == problem_id,
            )))
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail="Wrong record not found")

    def list_for_user(self, user_id: int) -> AllWrongRecordResponse:
        with self.db.connect() as conn:
            rows = conn.execute(
                select(wrong_records, problems.c.problem_type, problems.c.description)
                .join(problems, problems.c.id == wrong_records.c.problem_id)
                .where(wrong_records.c.user_id == user_id)
                .order_by(wrong_records.c.updated_at.desc(), wrong_records.c.problem_id)
            ).mappings().all()
        records = [WrongRecordResponse(**row) for row in rows]
        return AllWrongRecordResponse(total_count=len(records), wrong_records=records)
