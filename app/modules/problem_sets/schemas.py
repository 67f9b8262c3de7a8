from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.modules.users.schemas import UserSummary


class ProblemSetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    is_public: bool = True
    area_id: Optional[int] = None


class ProblemSetUpdate(BaseModel):
    id: int
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    area_id: Optional[int] = None


class ProblemSetResponse(BaseModel):
    id: int
    name: str
    description: str
    user_id: int
    user_info: Optional[UserSummary] = None
    is_public: bool
    area_id: int
    created_at: datetime
    problem_count: int = 0
    favorite_count: int = 0
    is_favorite: bool = False


class AllProblemSetResponse(BaseModel):
    total_count: int
    problem_sets: List[ProblemSetResponse]
