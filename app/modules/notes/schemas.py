from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.modules.users.schemas import UserSummary


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str
    is_public: bool = True


class NoteUpdate(BaseModel):
    id: int
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    is_public: Optional[bool] = None


class NoteResponse(BaseModel):
    id: int
    title: str
    content: str
    user_id: int
    user_info: Optional[UserSummary] = None
    is_public: bool
    created_at: datetime
    like_count: int = 0
    favorite_count: int = 0
    is_liked: bool = False
    is_favorite: bool = False


class AllNoteResponse(BaseModel):
    total_count: int
    notes: List[NoteResponse]


class NoteReviewCreate(BaseModel):
    note_id: int
    title: str = ""
    content: str = Field(..., min_length=1)


class NoteReviewResponse(BaseModel):
    id: int
    note_id: int
    user_id: int
    user_info: Optional[UserSummary] = None
    title: str
    content: str
    created_at: datetime


class AllNoteReviewResponse(BaseModel):
    total_count: int
    note_reviews: List[NoteReviewResponse]
