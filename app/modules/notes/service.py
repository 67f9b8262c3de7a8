import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Set

from fastapi import HTTPException
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from app.core.dependencies import can_view, check_owner_or_admin, is_admin, visible_to
from app.core.favorites import add_mark, marked_by, remove_mark
from app.modules.notes.models import note_favorites, note_likes, note_reviews, notes
from app.modules.notes.schemas import (
    AllNoteResponse, AllNoteReviewResponse, NoteCreate, NoteResponse,
    NoteReviewCreate, NoteReviewResponse, NoteUpdate
)
from app.modules.users.models import users
from app.modules.users.service import summary_columns, to_user_summary

logger = logging.getLogger(__name__)

_author = users.alias("note_author")
_reviewer = users.alias("reviewer")


def _count(table):
    return (
        select(func.count())
        .select_from(table)
        .where(table.c.note_id == notes.c.id)
        .scalar_subquery()
    )


def _to_response(row: Mapping[str, Any], liked: Set[int] = frozenset(), favorites: Set[int] = frozenset()) -> NoteResponse:
    return NoteResponse(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        user_id=row["user_id"],
        user_info=to_user_summary(row, prefix="author_"),
        is_public=row["is_public"],
        created_at=row["created_at"],
        like_count=row["like_count"],
        favorite_count=row["favorite_count"],
        is_liked=row["id"] in liked,
        is_favorite=row["id"] in favorites,
    )


class NoteService:
    def __init__(self, db: Engine):
        self.db = db

    def _base_query(self):
        return (
            select(
                notes,
                _count(note_likes).label("like_count"),
                _count(note_favorites).label("favorite_count"),
                *summary_columns(_author, "author_"),
            )
            .join(_author, _author.c.id == notes.c.user_id)
        )

    def _get_note_row(self, conn: Connection, note_id: int) -> Mapping[str, Any]:
        row = conn.execute(select(notes).where(notes.c.id == note_id)).mappings().first()
        if not row:
            raise HTTPException(status_code=404, detail="Note not found")
        return row

    def _get_visible_note(self, conn: Connection, note_id: int, user_data: Optional[Dict[str, Any]]) -> Mapping[str, Any]:
        row = self._get_note_row(conn, note_id)
        if not can_view(row, user_data):
            raise HTTPException(status_code=403, detail="Permission denied")
        return row

    def _delete_dependents(self, conn: Connection, note_id: int) -> None:
        conn.execute(delete(note_likes).where(note_likes.c.note_id == note_id))
        conn.execute(delete(note_favorites).where(note_favorites.c.note_id == note_id))
        conn.execute(delete(note_reviews).where(note_reviews.c.note_id == note_id))

    def list_notes(
        self,
        user_data: Optional[Dict[str, Any]],
        note_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        favorite_only: bool = False,
        liked_only: bool = False,
    ) -> AllNoteResponse:
        """Visible notes matching the filters, with like/favorite counts and the caller's flags"""
        if (favorite_only or liked_only) and user_data is None:
            raise HTTPException(status_code=401, detail="Login required")

        query = self._base_query().where(visible_to(notes, user_data))
        if note_id is not None:
            query = query.where(notes.c.id == note_id)
        if owner_id is not None:
            query = query.where(notes.c.user_id == owner_id)
        if favorite_only:
            query = query.where(notes.c.id.in_(marked_by(note_favorites, "note_id", user_data["id"])))
        if liked_only:
            query = query.where(notes.c.id.in_(marked_by(note_likes, "note_id", user_data["id"])))

        liked, favorites = set(), set()
        with self.db.connect() as conn:
            rows = conn.execute(query.order_by(notes.c.id)).mappings().all()
            if user_data is not None:
                liked = set(conn.execute(marked_by(note_likes, "note_id", user_data["id"])).scalars())
                favorites = set(conn.execute(marked_by(note_favorites, "note_id", user_data["id"])).scalars())

        result = [_to_response(row, liked, favorites) for row in rows]
        return AllNoteResponse(total_count=len(result), notes=result)

    def create_note(self, note_data: NoteCreate, user_id: int) -> NoteResponse:
        with self.db.begin() as conn:
            result = conn.execute(insert(notes).values(
                title=note_data.title,
                content=note_data.content,
                user_id=user_id,
                is_public=note_data.is_public,
                created_at=datetime.now(),
            ))
            note_id = result.inserted_primary_key[0]
            row = conn.execute(self._base_query().where(notes.c.id == note_id)).mappings().one()
        return _to_response(row)

    def update_note(self, note_data: NoteUpdate, user_data: Dict[str, Any]) -> None:
        """Merge update: fields left out (or null) keep their stored value"""
        with self.db.begin() as conn:
            note = self._get_note_row(conn, note_data.id)
            check_owner_or_admin(note["user_id"], user_data)
            changes = note_data.model_dump(exclude_none=True, exclude={"id"})
            if changes:
                conn.execute(update(notes).where(notes.c.id == note_data.id).values(**changes))

    def delete_note(self, note_id: int, user_data: Dict[str, Any]) -> None:
        """Delete likes, favorites and reviews, then the note, atomically"""
        with self.db.begin() as conn:
            note = self._get_note_row(conn, note_id)
            check_owner_or_admin(note["user_id"], user_data)
            self._delete_dependents(conn, note_id)
            conn.execute(delete(notes).where(notes.c.id == note_id))
        logger.info("User %s deleted note %s", user_data["id"], note_id)

    def like_note(self, note_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_visible_note(conn, note_id, user_data)
            add_mark(conn, note_likes, "note_id", note_id, user_data["id"], "Note already liked")

    def unlike_note(self, note_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_note_row(conn, note_id)
            remove_mark(conn, note_likes, "note_id", note_id, user_data["id"], "Note is not liked")

    def favorite_note(self, note_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_visible_note(conn, note_id, user_data)
            add_mark(conn, note_favorites, "note_id", note_id, user_data["id"], "Note already in favorites")

    def unfavorite_note(self, note_id: int, user_data: Dict[str, Any]) -> None:
        with self.db.begin() as conn:
            self._get_note_row(conn, note_id)
            remove_mark(conn, note_favorites, "note_id", note_id, user_data["id"], "Note is not in favorites")

    # Reviews

    def _review_query(self):
        return (
            select(note_reviews, *summary_columns(_reviewer, "reviewer_"))
            .join(_reviewer, _reviewer.c.id == note_reviews.c.user_id)
        )

    def _to_review(self, row: Mapping[str, Any]) -> NoteReviewResponse:
        return NoteReviewResponse(
            id=row["id"],
            note_id=row["note_id"],
            user_id=row["user_id"],
            user_info=to_user_summary(row, prefix="reviewer_"),
            title=row["title"],
            content=row["content"],
            created_at=row["created_at"],
        )

    def add_review(self, review_data: NoteReviewCreate, user_data: Dict[str, Any]) -> NoteReviewResponse:
        with self.db.begin() as conn:
            self._get_visible_note(conn, review_data.note_id, user_data)
            result = conn.execute(insert(note_reviews).values(
                note_id=review_data.note_id,
                user_id=user_data["id"],
                title=review_data.title,
                content=review_data.content,
                created_at=datetime.now(),
            ))
            review_id = result.inserted_primary_key[0]
            row = conn.execute(self._review_query().where(note_reviews.c.id == review_id)).mappings().one()
        return self._to_review(row)

    def remove_review(self, review_id: int, user_data: Dict[str, Any]) -> None:
        """Review author, note owner or admin"""
        with self.db.begin() as conn:
            review = conn.execute(
                select(note_reviews.c.user_id, notes.c.user_id.label("note_owner_id"))
                .join(notes, notes.c.id == note_reviews.c.note_id)
                .where(note_reviews.c.id == review_id)
            ).mappings().first()
            if not review:
                raise HTTPException(status_code=404, detail="Review not found")
            if user_data["id"] not in (review["user_id"], review["note_owner_id"]) and not is_admin(user_data):
                raise HTTPException(status_code=403, detail="Permission denied")
            conn.execute(delete(note_reviews).where(note_reviews.c.id == review_id))

    def list_reviews(self, note_id: int, user_data: Dict[str, Any]) -> AllNoteReviewResponse:
        with self.db.connect() as conn:
            self._get_visible_note(conn, note_id, user_data)
            rows = conn.execute(
                self._review_query().where(note_reviews.c.note_id == note_id).order_by(note_reviews.c.id)
            ).mappings().all()
        reviews = [self._to_review(row) for row in rows]
        return AllNoteReviewResponse(total_count=len(reviews), note_reviews=reviews)
