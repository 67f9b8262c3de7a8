from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from typing import Dict, Optional

from app.core.dependencies import get_current_user_id, get_optional_user
from app.database.sql import get_db
from app.modules.notes.schemas import (
    AllNoteResponse, AllNoteReviewResponse, NoteCreate, NoteResponse,
    NoteReviewCreate, NoteReviewResponse, NoteUpdate
)
from app.modules.notes.service import NoteService

router = APIRouter(prefix="/note", tags=["note"])
review_router = APIRouter(prefix="/note_review", tags=["note_review"])


def get_note_service(db: Engine = Depends(get_db)) -> NoteService:
    return NoteService(db)


@router.get("/all", response_model=AllNoteResponse)
def list_notes(
    id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    is_favorite: bool = Query(False, description="Only notes the caller has favorited"),
    is_liked: bool = Query(False, description="Only notes the caller has liked"),
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: NoteService = Depends(get_note_service)
):
    """Public notes plus the caller's own (everything for admins)"""
    return service.list_notes(current_user, note_id=id, owner_id=user_id, favorite_only=is_favorite, liked_only=is_liked)


@router.post("/create", response_model=NoteResponse)
def create_note(
    note_data: NoteCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    return service.create_note(note_data, current_user["id"])


@router.put("/update", response_class=PlainTextResponse)
def update_note(
    note_data: NoteUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    """Edit a note (owner or admin); omitted fields keep their current value"""
    service.update_note(note_data, current_user)
    return "Updated successfully"


@router.delete("/delete/{note_id}", response_class=PlainTextResponse)
def delete_note(
    note_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    service.delete_note(note_id, current_user)
    return "Deleted successfully"


@router.post("/like/{note_id}", response_class=PlainTextResponse)
def like_note(
    note_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    service.like_note(note_id, current_user)
    return "Liked successfully"


@router.post("/unlike/{note_id}", response_class=PlainTextResponse)
def unlike_note(
    note_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    service.unlike_note(note_id, current_user)
    return "Unliked successfully"


@router.post("/favorite/{note_id}", response_class=PlainTextResponse)
def favorite_note(
    note_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    service.favorite_note(note_id, current_user)
    return "Favorited successfully"


@router.delete("/unfavorite/{note_id}", response_class=PlainTextResponse)
def unfavorite_note(
    note_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    service.unfavorite_note(note_id, current_user)
    return "Unfavorited successfully"


@review_router.post("/add", response_model=NoteReviewResponse)
def add_note_review(
    review_data: NoteReviewCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    return service.add_review(review_data, current_user)


@review_router.delete("/remove/{review_id}", response_class=PlainTextResponse)
def remove_note_review(
    review_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    """Remove a review (its author, the note owner or an admin)"""
    service.remove_review(review_id, current_user)
    return "Deleted successfully"


@review_router.get("/get", response_model=AllNoteReviewResponse)
def list_note_reviews(
    note_id: int = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
):
    return service.list_reviews(note_id, current_user)
