from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    phone: Optional[str] = None
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserSummary(BaseModel):
    """Short user card attached to groups, reviews and member lists"""
    user_id: int
    user_name: Optional[str] = None
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserInfoResponse(BaseModel):
    user_id: int
    user_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    nick_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    created_at: datetime


class AllUserResponse(BaseModel):
    total_count: int
    user: List[UserInfoResponse]
