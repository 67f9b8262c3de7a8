from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from typing import Dict

from app.core.dependencies import get_current_user_id
from app.database.sql import get_db
from app.modules.wrong_records.service import WrongRecordService

router = APIRouter(prefix="/wrong_record", tags=["wrong_record"])


def get_wrong_record_service(db: Engine = Depends(get_db)) -> WrongRecordService:
    return WrongRecordService(db)


@router.post("/create/{problem_id}", response_class=PlainTextResponse)
def create_wrong_record(
    problem_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: WrongRecordService = Depends(get_wrong_record_service)
):
    """Record a wrong answer; repeating it bumps the count"""
    service.record(problem_id, current_user)
    return "Created successfully"


@router.delete("/delete/{problem_id}", response_class=PlainTextResponse)
def delete_wrong_record(
    problem_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: WrongRecordService = Depends(get_wrong_record_service)
):
    service.remove(problem_id, current_user["id"])
    return "Deleted successfully"
