from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from typing import Dict, Optional

from app.core.dependencies import get_current_user_id, get_optional_user
from app.database.sql import get_db
from app.modules.problem_sets.schemas import AllProblemSetResponse
from app.modules.problem_sets.service import ProblemSetService
from app.modules.problems.schemas import (
    AllProblemResponse, BlankAnswerResponse, BlankProblemCreate, BlankProblemUpdate,
    ChoiceAnswerResponse, ChoiceProblemCreate, ChoiceProblemUpdate, JudgeAnswerResponse,
    JudgeProblemCreate, JudgeProblemUpdate, ProblemResponse
)
from app.modules.problems.service import BLANK, CHOICE, JUDGE, ProblemService

router = APIRouter(prefix="/problem", tags=["problem"])


def get_problem_service(db: Engine = Depends(get_db)) -> ProblemService:
    return ProblemService(db)


def get_problem_set_service(db: Engine = Depends(get_db)) -> ProblemSetService:
    return ProblemSetService(db)


def _add_type_routes(problem_type: str, create_schema, update_schema, answer_schema):
    """Register the list/read/create/update/delete/answer routes of one problem type"""
    service_create = getattr(ProblemService, f"create_{problem_type}_problem")
    service_update = getattr(ProblemService, f"update_{problem_type}_problem")
    service_answer = getattr(ProblemService, f"get_{problem_type}_answer")

    @router.get(f"/{problem_type}/all", response_model=AllProblemResponse, name=f"list_{problem_type}_problems")
    def list_problems(
        id: Optional[int] = Query(None),
        user_id: Optional[int] = Query(None),
        problem_set_id: Optional[int] = Query(None),
        is_favorite: bool = Query(False, description="Only problems the caller has favorited"),
        current_user: Optional[Dict] = Depends(get_optional_user),
        service: ProblemService = Depends(get_problem_service)
    ):
        return service.list_problems(
            problem_type, current_user,
            problem_id=id, owner_id=user_id, problem_set_id=problem_set_id, favorite_only=is_favorite
        )

    @router.post(f"/{problem_type}/create", response_model=ProblemResponse, name=f"create_{problem_type}_problem")
    def create_problem(
        problem_data: create_schema,
        current_user: Dict = Depends(get_current_user_id),
        service: ProblemService = Depends(get_problem_service)
    ):
        return service_create(service, problem_data, current_user["id"])

    @router.put(f"/{problem_type}/update", response_class=PlainTextResponse, name=f"update_{problem_type}_problem")
    def update_problem(
        problem_data: update_schema,
        current_user: Dict = Depends(get_current_user_id),
        service: ProblemService = Depends(get_problem_service)
    ):
        service_update(service, problem_data, current_user)
        return "Updated successfully"

    @router.delete(f"/{problem_type}/delete/{{problem_id}}", response_class=PlainTextResponse,
                   name=f"delete_{problem_type}_problem")
    def delete_problem(
        problem_id: int,
        current_user: Dict = Depends(get_current_user_id),
        service: ProblemService = Depends(get_problem_service)
    ):
        service.delete_problem(problem_type, problem_id, current_user)
        return "Deleted successfully"

    @router.get(f"/{problem_type}/answer/{{problem_id}}", response_model=answer_schema,
                name=f"get_{problem_type}_answer")
    def get_answer(
        problem_id: int,
        current_user: Dict = Depends(get_current_user_id),
        service: ProblemService = Depends(get_problem_service)
    ):
        return service_answer(service, problem_id, current_user)

    @router.get(f"/{problem_type}/{{problem_id}}", response_model=ProblemResponse, deprecated=True,
                name=f"get_{problem_type}_problem")
    def get_problem(
        problem_id: int,
        current_user: Optional[Dict] = Depends(get_optional_user),
        service: ProblemService = Depends(get_problem_service)
    ):
        """Use /{type}/all?id= instead"""
        return service.get_problem(problem_type, problem_id, current_user)


_add_type_routes(CHOICE, ChoiceProblemCreate, ChoiceProblemUpdate, ChoiceAnswerResponse)
_add_type_routes(BLANK, BlankProblemCreate, BlankProblemUpdate, BlankAnswerResponse)
_add_type_routes(JUDGE, JudgeProblemCreate, JudgeProblemUpdate, JudgeAnswerResponse)


@router.post("/favorite/{problem_id}", response_class=PlainTextResponse)
def favorite_problem(
    problem_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemService = Depends(get_problem_service)
):
    service.favorite_problem(problem_id, current_user)
    return "Favorited successfully"


@router.delete("/unfavorite/{problem_id}", response_class=PlainTextResponse)
def unfavorite_problem(
    problem_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemService = Depends(get_problem_service)
):
    service.unfavorite_problem(problem_id, current_user)
    return "Unfavorited successfully"


@router.get("/{problem_id}/problem_set", response_model=AllProblemSetResponse, deprecated=True)
def list_problem_sets_of_problem(
    problem_id: int,
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    """Visible problem sets containing the problem"""
    return service.list_problem_sets(current_user, containing_problem_id=problem_id)
