from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine
from typing import Dict

from app.core.dependencies import get_current_user_id
from app.database.sql import get_db
from app.modules.notes.schemas import AllNoteResponse
from app.modules.notes.service import NoteService
from app.modules.problem_sets.schemas import AllProblemSetResponse
from app.modules.problem_sets.service import ProblemSetService
from app.modules.problems.schemas import AllProblemResponse
from app.modules.problems.service import BLANK, CHOICE, ProblemService
from app.modules.users.schemas import UserInfoResponse, UserUpdate
from app.modules.users.service import UserService
from app.modules.wrong_records.schemas import AllWrongRecordResponse
from app.modules.wrong_records.service import WrongRecordService

router = APIRouter(prefix="/user", tags=["user"])


def get_user_service(db: Engine = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/info", response_model=UserInfoResponse)
def get_my_info(
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.get_user_by_id(current_user["id"], current_user)


@router.get("/info/{user_id}", response_model=UserInfoResponse)
def get_user_info(
    user_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    """Another user's profile; email and phone are hidden unless it is the caller or an admin"""
    return service.get_user_by_id(user_id, current_user)


@router.put("/update", response_model=UserInfoResponse)
def update_my_info(
    user_data: UserUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    return service.update_user(current_user["id"], user_data)


@router.get("/wrong_record", response_model=AllWrongRecordResponse)
def list_my_wrong_records(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return WrongRecordService(db).list_for_user(current_user["id"])


# Shortcuts kept for older clients; the /all endpoints with filters replace them.

@router.get("/favorite/problem", response_model=AllProblemResponse, deprecated=True)
def list_favorite_problems(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return ProblemService(db).list_problems(None, current_user, favorite_only=True)


@router.get("/favorite/problem_set", response_model=AllProblemSetResponse, deprecated=True)
def list_favorite_problem_sets(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return ProblemSetService(db).list_problem_sets(current_user, favorite_only=True)


@router.get("/favorite/note", response_model=AllNoteResponse, deprecated=True)
def list_favorite_notes(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return NoteService(db).list_notes(current_user, favorite_only=True)


@router.get("/problem/choice", response_model=AllProblemResponse, deprecated=True)
def list_my_choice_problems(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return ProblemService(db).list_problems(CHOICE, current_user, owner_id=current_user["id"])


@router.get("/problem/blank", response_model=AllProblemResponse, deprecated=True)
def list_my_blank_problems(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return ProblemService(db).list_problems(BLANK, current_user, owner_id=current_user["id"])


@router.get("/problem_set", response_model=AllProblemSetResponse, deprecated=True)
def list_my_problem_sets(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return ProblemSetService(db).list_problem_sets(current_user, owner_id=current_user["id"])


@router.get("/note", response_model=AllNoteResponse, deprecated=True)
def list_my_notes(
    current_user: Dict = Depends(get_current_user_id),
    db: Engine = Depends(get_db)
):
    return NoteService(db).list_notes(current_user, owner_id=current_user["id"])
