from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from typing import Dict, Optional

from app.core.dependencies import get_current_user_id, get_optional_user
from app.database.sql import get_db
from app.modules.problem_sets.schemas import (
    AllProblemSetResponse, ProblemSetCreate, ProblemSetResponse, ProblemSetUpdate
)
from app.modules.problem_sets.service import ProblemSetService
from app.modules.problems.schemas import AllProblemResponse

router = APIRouter(prefix="/problem_set", tags=["problem_set"])


def get_problem_set_service(db: Engine = Depends(get_db)) -> ProblemSetService:
    return ProblemSetService(db)


@router.get("/all", response_model=AllProblemSetResponse)
def list_problem_sets(
    id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    area_id: Optional[int] = Query(None),
    is_favorite: bool = Query(False, description="Only sets the caller has favorited"),
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    return service.list_problem_sets(
        current_user, problem_set_id=id, owner_id=user_id, area_id=area_id, favorite_only=is_favorite
    )


@router.post("/create", response_model=ProblemSetResponse)
def create_problem_set(
    set_data: ProblemSetCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    return service.create_problem_set(set_data, current_user["id"])


@router.put("/update", response_class=PlainTextResponse)
def update_problem_set(
    set_data: ProblemSetUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.update_problem_set(set_data, current_user)
    return "Updated successfully"


@router.delete("/delete/{problem_set_id}", response_class=PlainTextResponse)
def delete_problem_set(
    problem_set_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.delete_problem_set(problem_set_id, current_user)
    return "Deleted successfully"


@router.get("/{problem_set_id}/all_problem", response_model=AllProblemResponse)
def list_problems_in_set(
    problem_set_id: int,
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    return service.list_problems(problem_set_id, current_user)


@router.post("/{problem_set_id}/add", response_class=PlainTextResponse)
def add_problem_to_set(
    problem_set_id: int,
    problem_id: int = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.add_problem(problem_set_id, problem_id, current_user)
    return "Added successfully"


@router.delete("/{problem_set_id}/remove", response_class=PlainTextResponse)
def remove_problem_from_set(
    problem_set_id: int,
    problem_id: int = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.remove_problem(problem_set_id, problem_id, current_user)
    return "Removed successfully"


@router.post("/favorite/{problem_set_id}", response_class=PlainTextResponse)
def favorite_problem_set(
    problem_set_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.favorite_problem_set(problem_set_id, current_user)
    return "Favorited successfully"


@router.delete("/unfavorite/{problem_set_id}", response_class=PlainTextResponse)
def unfavorite_problem_set(
    problem_set_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: ProblemSetService = Depends(get_problem_set_service)
):
    service.unfavorite_problem_set(problem_set_id, current_user)
    return "Unfavorited successfully"
