import unittest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.modules.notes.models import note_favorites, note_likes, note_reviews, notes
from app.modules.notes.service import NoteService
from app.tests.base import ApiTestCase


class NoteApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.author_id, self.author = self.create_user("author")
        self.reader_id, self.reader = self.create_user("reader")

    def create_note(self, headers=None, **body):
        payload = {"title": "Limits", "content": "epsilon-delta"}
        payload.update(body)
        response = self.client.post("/note/create", json=payload, headers=headers or self.author)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_create_note(self):
        note = self.create_note()
        self.assertEqual(note["user_id"], self.author_id)
        self.assertTrue(note["is_public"])
        self.assertEqual(note["like_count"], 0)
        self.assertEqual(note["user_info"]["user_name"], "author")

    def test_visibility(self):
        self.create_note(title="public")
        self.create_note(title="private", is_public=False)

        anonymous = self.client.get("/note/all").json()
        self.assertEqual([n["title"] for n in anonymous["notes"]], ["public"])

        reader = self.client.get("/note/all", headers=self.reader).json()
        self.assertEqual(reader["total_count"], 1)

        author = self.client.get("/note/all", headers=self.author).json()
        self.assertEqual(author["total_count"], 2)

        _, admin = self.create_admin()
        self.assertEqual(self.client.get("/note/all", headers=admin).json()["total_count"], 2)

    def test_invalid_token_on_public_listing(self):
        response = self.client.get("/note/all", headers={"Authorization": "Bearer invalid-token"})
        self.assertEqual(response.status_code, 401)

    def test_partial_update_keeps_omitted_fields(self):
        note = self.create_note()
        response = self.client.put("/note/update", json={"id": note["id"], "title": "Series"}, headers=self.author)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Updated successfully")

        stored = self.client.get("/note/all", params={"id": note["id"]}).json()["notes"][0]
        self.assertEqual(stored["title"], "Series")
        self.assertEqual(stored["content"], "epsilon-delta")
        self.assertTrue(stored["is_public"])

    def test_update_permissions(self):
        note = self.create_note()
        response = self.client.put("/note/update", json={"id": note["id"], "title": "X"}, headers=self.reader)
        self.assertEqual(response.status_code, 403)

        _, admin = self.create_admin()
        response = self.client.put("/note/update", json={"id": note["id"], "title": "X"}, headers=admin)
        self.assertEqual(response.status_code, 200)

        response = self.client.put("/note/update", json={"id": 999, "title": "X"}, headers=admin)
        self.assertEqual(response.status_code, 404)

    def test_like_and_favorite(self):
        note = self.create_note()
        self.assertEqual(self.client.post(f"/note/like/{note['id']}", headers=self.reader).status_code, 200)
        self.assertEqual(self.client.post(f"/note/like/{note['id']}", headers=self.reader).status_code, 400)
        self.assertEqual(self.client.post(f"/note/favorite/{note['id']}", headers=self.reader).status_code, 200)

        listed = self.client.get("/note/all", headers=self.reader).json()["notes"][0]
        self.assertEqual(listed["like_count"], 1)
        self.assertEqual(listed["favorite_count"], 1)
        self.assertTrue(listed["is_liked"])
        self.assertTrue(listed["is_favorite"])

        liked = self.client.get("/note/all", params={"is_liked": True}, headers=self.author).json()
        self.assertEqual(liked["total_count"], 0)

        self.assertEqual(self.client.post(f"/note/unlike/{note['id']}", headers=self.reader).status_code, 200)
        self.assertEqual(self.client.post(f"/note/unlike/{note['id']}", headers=self.reader).status_code, 404)
        self.assertEqual(self.client.delete(f"/note/unfavorite/{note['id']}", headers=self.reader).status_code, 200)
        self.assertEqual(self.count(note_likes), 0)
        self.assertEqual(self.count(note_favorites), 0)

    def test_like_missing_note(self):
        self.assertEqual(self.client.post("/note/like/999", headers=self.reader).status_code, 404)

    def test_favorite_filter_needs_login(self):
        response = self.client.get("/note/all", params={"is_favorite": True})
        self.assertEqual(response.status_code, 401)

    def test_reviews(self):
        note = self.create_note()
        response = self.client.post(
            "/note_review/add", json={"note_id": note["id"], "content": "nice"}, headers=self.reader
        )
        self.assertEqual(response.status_code, 200)
        review = response.json()
        self.assertEqual(review["user_info"]["user_name"], "reader")

        listed = self.client.get("/note_review/get", params={"note_id": note["id"]}, headers=self.author).json()
        self.assertEqual(listed["total_count"], 1)

        _, stranger = self.create_user("stranger")
        response = self.client.delete(f"/note_review/remove/{review['id']}", headers=stranger)
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/note_review/remove/{review['id']}", headers=self.author)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.count(note_reviews), 0)

    def test_review_missing_note(self):
        response = self.client.post("/note_review/add", json={"note_id": 999, "content": "x"}, headers=self.reader)
        self.assertEqual(response.status_code, 404)

    def test_delete_note_by_non_owner_is_forbidden(self):
        note = self.create_note()
        response = self.client.delete(f"/note/delete/{note['id']}", headers=self.reader)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.count(notes), 1)

    def test_delete_note_removes_dependents(self):
        note = self.create_note()
        self.client.post(f"/note/like/{note['id']}", headers=self.reader)
        self.client.post(f"/note/favorite/{note['id']}", headers=self.reader)
        self.client.post("/note_review/add", json={"note_id": note["id"], "content": "ok"}, headers=self.reader)

        response = self.client.delete(f"/note/delete/{note['id']}", headers=self.author)
        self.assertEqual(response.status_code, 200)
        for table in (notes, note_likes, note_favorites, note_reviews):
            self.assertEqual(self.count(table), 0)

    def test_failed_delete_rolls_back(self):
        note = self.create_note()
        self.client.post(f"/note/like/{note['id']}", headers=self.reader)
        self.client.post(f"/note/favorite/{note['id']}", headers=self.reader)
        self.client.post("/note_review/add", json={"note_id": note["id"], "content": "ok"}, headers=self.reader)
        delete_dependents = NoteService._delete_dependents

        def failing_delete(service, conn, note_id):
            delete_dependents(service, conn, note_id)
            raise SQLAlchemyError("connection lost")

        with patch.object(NoteService, "_delete_dependents", failing_delete):
            response = self.client.delete(f"/note/delete/{note['id']}", headers=self.author)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Internal server error")
        for table in (notes, note_likes, note_favorites, note_reviews):
            self.assertEqual(self.count(table), 1)


if __name__ == "__main__":
    unittest.main()
