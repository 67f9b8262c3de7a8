import unittest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.modules.problem_sets.models import problem_set_favorites, problem_set_items, problem_sets
from app.modules.problem_sets.service import ProblemSetService
from app.tests.base import ApiTestCase


class ProblemSetApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner_id, self.owner = self.create_user("owner")
        self.other_id, self.other = self.create_user("other")
        self.problem = self.client.post(
            "/problem/judge/create", json={"description": "sky is blue", "is_correct": True}, headers=self.owner
        ).json()

    def create_set(self, headers=None, **body):
        payload = {"name": "Warmup", "description": "easy ones"}
        payload.update(body)
        response = self.client.post("/problem_set/create", json=payload, headers=headers or self.owner)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def add(self, problem_set, problem_id, headers=None):
        return self.client.post(
            f"/problem_set/{problem_set['id']}/add", params={"problem_id": problem_id}, headers=headers or self.owner
        )

    def test_create_defaults(self):
        problem_set = self.create_set()
        self.assertEqual(problem_set["area_id"], 100)
        self.assertEqual(problem_set["problem_count"], 0)
        self.assertTrue(problem_set["is_public"])

    def test_add_and_list_problems(self):
        problem_set = self.create_set()
        response = self.add(problem_set, self.problem["id"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Added successfully")
        self.assertEqual(self.add(problem_set, self.problem["id"]).status_code, 400)
        self.assertEqual(self.add(problem_set, 999).status_code, 404)
        self.assertEqual(self.add({"id": 999}, self.problem["id"]).status_code, 404)

        listed = self.client.get(f"/problem_set/{problem_set['id']}/all_problem").json()
        self.assertEqual(listed["total_count"], 1)
        self.assertEqual(listed["problems"][0]["problem_type"], "judge")

        sets = self.client.get("/problem_set/all").json()
        self.assertEqual(sets["problem_sets"][0]["problem_count"], 1)

    def test_only_owner_adds(self):
        problem_set = self.create_set()
        self.assertEqual(self.add(problem_set, self.problem["id"], headers=self.other).status_code, 403)
        self.assertEqual(self.count(problem_set_items), 0)

    def test_remove_problem(self):
        problem_set = self.create_set()
        self.add(problem_set, self.problem["id"])
        url = f"/problem_set/{problem_set['id']}/remove"
        self.assertEqual(self.client.delete(url, params={"problem_id": self.problem["id"]}, headers=self.other).status_code, 403)
        self.assertEqual(self.client.delete(url, params={"problem_id": self.problem["id"]}, headers=self.owner).status_code, 200)
        self.assertEqual(self.client.delete(url, params={"problem_id": self.problem["id"]}, headers=self.owner).status_code, 404)

    def test_filters(self):
        self.create_set(name="A", area_id=1)
        self.create_set(name="B", area_id=2)
        self.create_set(name="C", headers=self.other)

        by_area = self.client.get("/problem_set/all", params={"area_id": 2}).json()
        self.assertEqual([s["name"] for s in by_area["problem_sets"]], ["B"])

        by_owner = self.client.get("/problem_set/all", params={"user_id": self.other_id}).json()
        self.assertEqual([s["name"] for s in by_owner["problem_sets"]], ["C"])

    def test_private_set(self):
        problem_set = self.create_set(is_public=False)
        self.assertEqual(self.client.get("/problem_set/all").json()["total_count"], 0)
        response = self.client.get(f"/problem_set/{problem_set['id']}/all_problem", headers=self.other)
        self.assertEqual(response.status_code, 403)

    def test_partial_update(self):
        problem_set = self.create_set(area_id=3)
        response = self.client.put(
            "/problem_set/update", json={"id": problem_set["id"], "name": "Renamed"}, headers=self.owner
        )
        self.assertEqual(response.status_code, 200)
        stored = self.client.get("/problem_set/all", params={"id": problem_set["id"]}).json()["problem_sets"][0]
        self.assertEqual(stored["name"], "Renamed")
        self.assertEqual(stored["description"], "easy ones")
        self.assertEqual(stored["area_id"], 3)

        response = self.client.put("/problem_set/update", json={"id": problem_set["id"], "name": "X"}, headers=self.other)
        self.assertEqual(response.status_code, 403)

    def test_favorites(self):
        problem_set = self.create_set()
        self.assertEqual(self.client.post(f"/problem_set/favorite/{problem_set['id']}", headers=self.other).status_code, 200)
        self.assertEqual(self.client.post(f"/problem_set/favorite/{problem_set['id']}", headers=self.other).status_code, 400)
        favorites = self.client.get("/problem_set/all", params={"is_favorite": True}, headers=self.other).json()
        self.assertEqual(favorites["total_count"], 1)
        self.assertTrue(favorites["problem_sets"][0]["is_favorite"])
        self.assertEqual(self.client.delete(f"/problem_set/unfavorite/{problem_set['id']}", headers=self.other).status_code, 200)
        self.assertEqual(self.client.delete(f"/problem_set/unfavorite/{problem_set['id']}", headers=self.other).status_code, 404)

    def test_delete(self):
        problem_set = self.create_set()
        self.add(problem_set, self.problem["id"])
        self.client.post(f"/problem_set/favorite/{problem_set['id']}", headers=self.other)

        self.assertEqual(self.client.delete(f"/problem_set/delete/{problem_set['id']}", headers=self.other).status_code, 403)
        self.assertEqual(self.count(problem_set_items), 1)

        self.assertEqual(self.client.delete(f"/problem_set/delete/{problem_set['id']}", headers=self.owner).status_code, 200)
        for table in (problem_sets, problem_set_items, problem_set_favorites):
            self.assertEqual(self.count(table), 0)

    def test_failed_delete_rolls_back(self):
        problem_set = self.create_set()
        self.add(problem_set, self.problem["id"])
        self.client.post(f"/problem_set/favorite/{problem_set['id']}", headers=self.other)
        delete_dependents = ProblemSetService._delete_dependents

        def failing_delete(service, conn, problem_set_id):
            delete_dependents(service, conn, problem_set_id)
            raise SQLAlchemyError("connection lost")

        with patch.object(ProblemSetService, "_delete_dependents", failing_delete):
            response = self.client.delete(f"/problem_set/delete/{problem_set['id']}", headers=self.owner)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Internal server error")
        for table in (problem_sets, problem_set_items, problem_set_favorites):
            self.assertEqual(self.count(table), 1)


if __name__ == "__main__":
    unittest.main()
