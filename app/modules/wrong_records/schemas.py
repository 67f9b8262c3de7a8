from pydantic import BaseModel
from typing import List
from datetime import datetime


class WrongRecordResponse(BaseModel):
    problem_id: int
    problem_type: str
    description: str
    count: int
    created_at: datetime
    updated_at: datetime


class AllWrongRecordResponse(BaseModel):
    total_count: int
    wrong_records: List[WrongRecordResponse]
