import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from app.core.dependencies import can_view, check_owner_or_admin, visible_to
from app.core.favorites import add_mark, marked_by, remove_mark
from app.modules.problem_sets.models import problem_set_items
from app.modules.problems.models import (
    problem_blank_answers, problem_choices, problem_favorites, problem_judge_answers, problems
)
from app.modules.problems.schemas import (
    AllProblemResponse, BlankAnswerResponse, BlankProblemCreate, BlankProblemUpdate,
    ChoiceAnswerResponse, ChoiceOption, ChoiceOptionResponse, ChoiceProblemCreate,
    ChoiceProblemUpdate, JudgeAnswerResponse, JudgeProblemCreate, JudgeProblemUpdate,
    ProblemCreateBase, ProblemResponse, ProblemUpdateBase
)
from app.modules.users.models import users
from app.modules.users.service import summary_columns, to_user_summary
from app.modules.wrong_records.models import wrong_records

logger = logging.getLogger(__name__)

CHOICE = "choice"
BLANK = "blank"
JUDGE = "judge"

_author = users.alias("problem_author")

_BASE_FIELDS = {"description", "analysis", "is_public"}


def _favorite_count():
    return (
        select(func.count())
        .select_from(problem_favorites)
        .where(problem_favorites.c.problem_id == problems.c.id)
        .scalar_subquery()
        .label("favorite_count")
    )


class ProblemService:
    def __init__(self, db: Engine):
        self.db = db

    def _base_query(self):
        return (
            select(problems, _favorite_count(), *summary_columns(_author, "author_"))
            .join(_author, _author.c.id == problems.c.user_id)
        )

    def _get_problem_row(self, conn: Connection, problem_id: int, problem_type: Optional[str] = None) -> Mapping[str, Any]:
        query = select(problems).where(problems.c.id == problem_id)
        if problem_type is not None:
            query = query.where(problems.c.problem_type == problem_type)
        row = conn.execute(query).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail="Problem not found")
        return row

    def _get_visible_problem(self, conn: Connection, problem_id: int, user_data: Optional[Dict[str, Any]],
                             problem_type: Optional[str] = None) -> Mapping[str, Any]:
        row = self._get_problem_row(conn, problem_id, problem_type)
        if not can_view(row, user_data):
            raise HTTPException(status_code=403, detail="Permission denied")
        return row

    def _load_choices(self, conn: Connection, problem_ids: Iterable[int]) -> Dict[int, List[Mapping[str, Any]]]:
        ids = list(problem_ids)
        grouped: Dict[int, List[Mapping[str, Any]]] = {pid: [] for pid in ids}
        if not ids:
            return grouped
        rows = conn.execute(
            select(problem_choices)
            .where(problem_choices.c.problem_id.in_(ids))
            .order_by(problem_choices.c.problem_id, problem_choices.c.choice)
        ).mappings().all()
        for row in rows:
            grouped[row["problem_id"]].append(row)
        return grouped

    def _to_response(self, row: Mapping[str, Any], choices: Optional[List[Mapping[str, Any]]] = None,
                     favorites: Iterable[int] = ()) -> ProblemResponse:
        response = ProblemResponse(
            id=row["id"],
            problem_type=row["problem_type"],
            description=row["description"],
            user_id=row["user_id"],
            user_info=to_user_summary(row, prefix="author_"),
            is_public=row["is_public"],
            created_at=row["created_at"],
            favorite_count=row["favorite_count"],
            is_favorite=row["id"] in favorites,
        )
        if row["problem_type"] == CHOICE and choices is not None:
            response.choices = [ChoiceOptionResponse(choice=c["choice"], description=c["description"]) for c in choices]
            response.is_multiple = sum(1 for c in choices if c["is_correct"]) > 1
        return response

    def _insert_choices(self, conn: Connection, problem_id: int, choices: List[ChoiceOption]) -> None:
        conn.execute(insert(problem_choices), [
            {
                "problem_id": problem_id,
                "choice": c.choice,
                "description": c.description,
                "is_correct": c.is_correct,
            }
            for c in choices
        ])

    def _delete_dependents(self, conn: Connection, problem_id: int) -> None:
        for table in (problem_choices, problem_blank_answers, problem_judge_answers,
                      problem_favorites, wrong_records, problem_set_items):
            conn.execute(delete(table).where(table.c.problem_id == problem_id))

    def list_problems(
        self,
        problem_type: Optional[str],
        user_data: Optional[Dict[str, Any]],
        problem_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        problem_set_id: Optional[int] = None,
        favorite_only: bool = False,
    ) -> AllProblemResponse:
        """Visible problems matching the filters; answers are never included"""
        if favorite_only and user_data is None:
            raise HTTPException(status_code=401, detail="Login required")

        query = self._base_query().where(visible_to(problems, user_data))
        if problem_type is not None:
            query = query.where(problems.c.problem_type == problem_type)
        if problem_id is not None:
            query = query.where(problems.c.id == problem_id)
        if owner_id is not None:
            query = query.where(problems.c.user_id == owner_id)
        if problem_set_id is not None:
            query = query.where(problems.c.id.in_(
                select(problem_set_items.c.problem_id).where(problem_set_items.c.problem_set_id == problem_set_id)
            ))
        if favorite_only:
            query = query.where(problems.c.id.in_(marked_by(problem_favorites, "problem_id", user_data["id"])))

        favorites = set()
        with self.db.connect() as conn:
            rows = conn.execute(query.order_by(problems.c.id)).mappings().all()
            choices = self._load_choices(conn, [r["id"] for r in rows if r["problem_type"] == CHOICE])
            if user_data is not None:
                favorites = set(conn.execute(marked_by(problem_favorites, "problem_id", user_data["id"])).scalars())

        result = [self._to_response(row, choices.get(row["id"]), favorites) for row in rows]
        return AllProblemResponse(total_count=len(result), problems=result)

    def get_problem(self, problem_type: str, problem_id: int, user_data: Optional[Dict[str, Any]]) -> ProblemResponse:
        with self.db.connect() as conn:
            self._get_visible_problem(conn, problem_id, user_data, problem_type)
            row = conn.execute(self._base_query().where(problems.c.id == problem_id)).mappings().one()
            choices = self._load_choices(conn, [problem_id]) if problem_type == CHOICE else {}
            favorites = set()
            if user_data is not None:
                favorites = set(conn.execute(marked_by(problem_favorites, "problem_id", user_data["id"])).scalars())
        return self._to_response(row, choices.get(problem_id), favorites)

    def _insert_problem(self, conn: Connection, problem_type: str, data: ProblemCreateBase, user_id: int) -> int:
        result = conn.execute(insert(problems).values(
            problem_type=problem_type,
            description=data.description,
            analysis=data.analysis,
            user_id=user_id,
            is_public=data.is_public,
            created_at=datetime.now(),
        ))
        return result.inserted_primary_key[0]

    def _created(self, conn: Connection, problem_id: int) -> ProblemResponse:
        row = conn.execute(self._base_query().where(problems.c.id == problem_id)).mappings().one()
        choices = self._load_choices(conn, [problem_id])
        return self._to_response(row, choices.get(problem_id))

    def create_choice_problem(self, data: ChoiceProblemCreate, user_id: int) -> ProblemResponse:
        with self.db.begin() as conn:
            problem_id = self._insert_problem(conn, CHOICE, data, user_id)
            self._insert_choices(conn, problem_id, data.choices)
            return self._created(conn, problem_id)

    def create_blank_problem(self, data: BlankProblemCreate, user_id: int) -> ProblemResponse:
        with self.db.begin() as conn:
            problem_id = self._insert_problem(conn, BLANK, data, user_id)
            conn.execute(insert(problem_blank_answers).values(problem_id=problem_id, answer=data.answer))
            return self._created(conn, problem_id)

    def create_judge_problem(self, data: JudgeProblemCreate, user_id: int) -> ProblemResponse:
        with self.db.begin() as conn:
            problem_id = self._insert_problem(conn, JUDGE, data, user_id)
            conn.execute(insert(problem_judge_answers).values(problem_id=problem_id, is_correct=data.is_correct))
            return self._created(conn, problem_id)

    def _update_base(self, conn: Connection, problem_type: str, data: ProblemUpdateBase, user_data: Dict[str, Any]) -> None:
        """Ownership check plus merge update of the shared columns"""
        row = self._get_problem_row(conn, data.id, problem_type)
        check_owner_or_admin(row["user_id"], user_data)
        changes = data.model_dump(exclude_none=True, include=_BASE_FIELDS)
        if changes:
            conn.execute(update(problems).where(problems.c.id == data.id).values(**changes))

    def update_choice_problem(self, data: ChoiceProblemUpdate, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._update_base(conn, CHOICE, data, user_data)
            if data.choices is not None:
                conn.execute(delete(problem_choices).where(problem_choices.c.problem_id == data.id))
                self._insert_choices(conn, data.id, data.choices)

    def update_blank_problem(self, data: BlankProblemUpdate, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._update_base(conn, BLANK, data, user_data)
            if data.answer is not None:
                conn.execute(
                    update(problem_blank_answers)
                    .where(problem_blank_answers.c.problem_id == data.id)
                    .values(answer=data.answer)
                )

    def update_judge_problem(self, data: JudgeProblemUpdate, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._update_base(conn, JUDGE, data, user_data)
            if data.is_correct is not None:
                conn.execute(
                    update(problem_judge_answers)
                    .where(problem_judge_answers.c.problem_id == data.id)
                    .values(is_correct=data.is_correct)
                )

    def delete_problem(self, problem_type: str, problem_id: int, user_data: Dict[str, Any]) -> None:
        """Delete answers, favorites, wrong records and set memberships, then the problem, atomically"""
        with self.db.begin() as conn:
            row = self._get_problem_row(conn, problem_id, problem_type)
            check_owner_or_admin(row["user_id"], user_data)
            self._delete_dependents(conn, problem_id)
            conn.execute(delete(problems).where(problems.c.id == problem_id))
        logger.info("User %s deleted %s problem %s", user_data["id"], problem_type, problem_id)

    def get_choice_answer(self, problem_id: int, user_data: Dict[str, Any]) -> ChoiceAnswerResponse:
        with self.db.connect() as conn:
            row = self._get_visible_problem(conn, problem_id, user_data, CHOICE)
            choices = self._load_choices(conn, [problem_id])[problem_id]
        return ChoiceAnswerResponse(
            problem_id=problem_id,
            answer=[c["choice"] for c in choices if c["is_correct"]],
            analysis=row["analysis"],
        )

    def get_blank_answer(self, problem_id: int, user_data: Dict[str, Any]) -> BlankAnswerResponse:
        with self.db.connect() as conn:
            row = self._get_visible_problem(conn, problem_id, user_data, BLANK)
            answer = conn.execute(
                select(problem_blank_answers.c.answer).where(problem_blank_answers.c.problem_id == problem_id)
            ).scalar()
        return BlankAnswerResponse(problem_id=problem_id, answer=answer or "", analysis=row["analysis"])

    def get_judge_answer(self, problem_id: int, user_data: Dict[str, Any]) -> JudgeAnswerResponse:
        with self.db.connect() as conn:
            row = self._get_visible_problem(conn, problem_id, user_data, JUDGE)
            answer = conn.execute(
                select(problem_judge_answers.c.is_correct).where(problem_judge_answers.c.problem_id == problem_id)
            ).scalar()
        return JudgeAnswerResponse(problem_id=problem_id, answer=bool(answer), analysis=row["analysis"])

    def favorite_problem(self, problem_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_visible_problem(conn, problem_id, user_data)
            add_mark(conn, problem_favorites, "problem_id", problem_id, user_data["id"], "Problem already in favorites")

    def unfavorite_problem(self, problem_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_problem_row(conn, problem_id)
            remove_mark(conn, problem_favorites, "problem_id", problem_id, user_data["id"], "Problem is not in favorites")
