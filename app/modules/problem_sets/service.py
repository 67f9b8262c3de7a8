import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from app.config import settings
from app.core.dependencies import can_view, check_owner_or_admin, visible_to
from app.core.favorites import add_mark, marked_by, remove_mark
from app.modules.problem_sets.models import problem_set_favorites, problem_set_items, problem_sets
from app.modules.problem_sets.schemas import (
    AllProblemSetResponse, ProblemSetCreate, ProblemSetResponse, ProblemSetUpdate
)
from app.modules.problems.models import problems
from app.modules.problems.schemas import AllProblemResponse
from app.modules.problems.service import ProblemService
from app.modules.users.models import users
from app.modules.users.service import summary_columns, to_user_summary

logger = logging.getLogger(__name__)

_creator = users.alias("set_creator")


def _count(table):
    return (
        select(func.count())
        .select_from(table)
        .where(table.c.problem_set_id == problem_sets.c.id)
        .scalar_subquery()
    )


def _to_response(row: Mapping[str, Any], favorites=frozenset()) -> ProblemSetResponse:
    return ProblemSetResponse(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        user_id=row["user_id"],
        user_info=to_user_summary(row, prefix="creator_"),
        is_public=row["is_public"],
        area_id=row["area_id"],
        created_at=row["created_at"],
        problem_count=row["problem_count"],
        favorite_count=row["favorite_count"],
        is_favorite=row["id"] in favorites,
    )


class ProblemSetService:
    def __init__(self, db: Engine):
        self.db = db

    def _base_query(self):
        return (
            select(
                problem_sets,
                _count(problem_set_items).label("problem_count"),
                _count(problem_set_favorites).label("favorite_count"),
                *summary_columns(_creator, "creator_"),
            )
            .join(_creator, _creator.c.id == problem_sets.c.user_id)
        )

    def _get_set_row(self, conn: Connection, problem_set_id: int) -> Mapping[str, Any]:
        row = conn.execute(select(problem_sets).where(problem_sets.c.id == problem_set_id)).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail="Problem set not found")
        return row

    def _get_visible_set(self, conn: Connection, problem_set_id: int, user_data: Optional[Dict[str, Any]]) -> Mapping[str, Any]:
        row = self._get_set_row(conn, problem_set_id)
        if not can_view(row, user_data):
            raise HTTPException(status_code=403, detail="Permission denied")
        return row

    def _delete_dependents(self, conn: Connection, problem_set_id: int) -> None:
        conn.execute(delete(problem_set_items).where(problem_set_items.c.problem_set_id == problem_set_id))
        conn.execute(delete(problem_set_favorites).where(problem_set_favorites.c.problem_set_id == problem_set_id))

    def list_problem_sets(
        self,
        user_data: Optional[Dict[str, Any]],
        problem_set_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        area_id: Optional[int] = None,
        favorite_only: bool = False,
        containing_problem_id: Optional[int] = None,
    ) -> AllProblemSetResponse:
        if favorite_only and user_data is None:
            raise HTTPException(status_code=401, detail="Login required")

        query = self._base_query().where(visible_to(problem_sets, user_data))
        if problem_set_id is not None:
            query = query.where(problem_sets.c.id == problem_set_id)
        if owner_id is not None:
            query = query.where(problem_sets.c.user_id == owner_id)
        if area_id is not None:
            query = query.where(problem_sets.c.area_id == area_id)
        if favorite_only:
            query = query.where(problem_sets.c.id.in_(
                marked_by(problem_set_favorites, "problem_set_id", user_data["id"])
            ))
        if containing_problem_id is not None:
            query = query.where(problem_sets.c.id.in_(
                select(problem_set_items.c.problem_set_id).where(problem_set_items.c.problem_id == containing_problem_id)
            ))

        favorites = set()
        with self.db.connect() as conn:
            rows = conn.execute(query.order_by(problem_sets.c.id)).mappings().all()
            if user_data is not None:
                favorites = set(conn.execute(
                    marked_by(problem_set_favorites, "problem_set_id", user_data["id"])
                ).scalars())

        result = [_to_response(row, favorites) for row in rows]
        return AllProblemSetResponse(total_count=len(result), problem_sets=result)

    def create_problem_set(self, set_data: ProblemSetCreate, user_id: int) -> ProblemSetResponse:
        area_id = set_data.area_id if set_data.area_id is not None else settings.default_area_id
        with self.db.begin() as conn:
            result = conn.execute(insert(problem_sets).values(
                name=set_data.name,
                description=set_data.description,
                user_id=user_id,
                is_public=set_data.is_public,
                area_id=area_id,
                created_at=datetime.now(),
            ))
            problem_set_id = result.inserted_primary_key[0]
            row = conn.execute(self._base_query().where(problem_sets.c.id == problem_set_id)).mappings().one()
        return _to_response(row)

    def update_problem_set(self, set_data: ProblemSetUpdate, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            row = self._get_set_row(conn, set_data.id)
            check_owner_or_admin(row["user_id"], user_data)
            changes = set_data.model_dump(exclude_none=True, exclude={"id"})
            if changes:
                conn.execute(update(problem_sets).where(problem_sets.c.id == set_data.id).values(**changes))

    def delete_problem_set(self, problem_set_id: int, user_data: Dict[str, Any]) -> None:
        """Delete memberships and favorites, then the set, atomically"""
        with self.db.begin() as conn:
            row = self._get_set_row(conn, problem_set_id)
            check_owner_or_admin(row["user_id"], user_data)
            self._delete_dependents(conn, problem_set_id)
            conn.execute(delete(problem_sets).where(problem_sets.c.id == problem_set_id))
        logger.info("User %s deleted problem set %s", user_data["id"], problem_set_id)

    def list_problems(self, problem_set_id: int, user_data: Optional[Dict[str, Any]]) -> AllProblemResponse:
        """Problems of every type in the set that the caller may see"""
        with self.db.connect() as conn:
            self._get_visible_set(conn, problem_set_id, user_data)
        return ProblemService(self.db).list_problems(None, user_data, problem_set_id=problem_set_id)

    def add_problem(self, problem_set_id: int, problem_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            row = self._get_set_row(conn, problem_set_id)
            check_owner_or_admin(row["user_id"], user_data)
            problem = conn.execute(select(problems).where(problems.c.id == problem_id)).mappings().first()
            if not problem:
                raise HTTPException(status_code=404, detail="Problem not found")
            if not can_view(problem, user_data):
                raise HTTPException(status_code=403, detail="Permission denied")
            try:
                conn.execute(insert(problem_set_items).values(
                    problem_set_id=problem_set_id,
                    problem_id=problem_id,
                    created_at=datetime.now(),
                ))
            except IntegrityError:
                raise HTTPException(status_code=400, detail="Problem already in problem set")

    def remove_problem(self, problem_set_id: int, problem_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            row = self._get_set_row(conn, problem_set_id)
            check_owner_or_admin(row["user_id"], user_data)
            result = conn.execute(delete(problem_set_items).where(and_(
                problem_set_items.c.problem_set_id == problem_set_id,
                problem_set_items.c.problem_id == problem_id,
            )))
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail="Problem is not in problem set")

    def favorite_problem_set(self, problem_set_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_visible_set(conn, problem_set_id, user_data)
            add_mark(conn, problem_set_favorites, "problem_set_id", problem_set_id, user_data["id"],
                     "Problem set already in favorites")

    def unfavorite_problem_set(self, problem_set_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_set_row(conn, problem_set_id)
            remove_mark(conn, problem_set_favorites, "problem_set_id", problem_set_id, user_data["id"],
                        "Problem set is not in favorites")
