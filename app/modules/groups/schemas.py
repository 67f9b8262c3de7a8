from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.modules.users.schemas import UserSummary


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""
    area_id: Optional[int] = None
    avatar_url: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = None
    invitation: Optional[str] = Field(None, min_length=1, max_length=32)
    area_id: Optional[int] = None
    avatar_url: Optional[str] = None


class GroupResponse(BaseModel):
    id: int
    name: str
    description: str
    invitation: Optional[str] = None
    owner_id: int
    user_info: Optional[UserSummary] = None
    member_count: int = 0
    created_at: datetime
    area_id: int
    avatar_url: Optional[str] = None


class AllGroupResponse(BaseModel):
    total_count: int
    group: List[GroupResponse]
