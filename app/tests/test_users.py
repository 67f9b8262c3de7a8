import unittest

from app.tests.base import ApiTestCase


class UserApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user_id, self.user = self.create_user("alice")
        self.other_id, self.other = self.create_user("bob")

    def test_own_info(self):
        response = self.client.get("/user/info", headers=self.user)
        self.assertEqual(response.status_code, 200)
        info = response.json()
        self.assertEqual(info["user_id"], self.user_id)
        self.assertEqual(info["email"], "alice@example.com")
        self.assertEqual(info["role"], "normal")

    def test_requires_auth(self):
        self.assertEqual(self.client.get("/user/info").status_code, 401)
        response = self.client.get("/user/info", headers={"Authorization": "Bearer invalid"})
        self.assertEqual(response.status_code, 401)

    def test_unknown_profile_is_unauthorized(self):
        response = self.client.get("/user/info", headers={"Authorization": "Bearer token-nobody"})
        self.assertEqual(response.status_code, 401)

    def test_contact_fields_hidden_from_others(self):
        info = self.client.get(f"/user/info/{self.user_id}", headers=self.other).json()
        self.assertIsNone(info["email"])
        self.assertIsNone(info["phone"])
        self.assertEqual(info["user_name"], "alice")

        _, admin = self.create_admin()
        info = self.client.get(f"/user/info/{self.user_id}", headers=admin).json()
        self.assertEqual(info["email"], "alice@example.com")

        self.assertEqual(self.client.get("/user/info/999", headers=self.other).status_code, 404)

    def test_partial_update(self):
        response = self.client.put("/user/update", json={"nick_name": "Al"}, headers=self.user)
        self.assertEqual(response.status_code, 200)
        info = response.json()
        self.assertEqual(info["nick_name"], "Al")
        self.assertEqual(info["user_name"], "alice")
        self.assertEqual(info["phone"], "555-0100")

    def test_update_to_taken_name(self):
        response = self.client.put("/user/update", json={"name": "bob"}, headers=self.user)
        self.assertEqual(response.status_code, 400)

    def test_shortcuts(self):
        self.client.post("/note/create", json={"title": "t", "content": "c"}, headers=self.user)
        problem = self.client.post(
            "/problem/blank/create", json={"description": "q", "answer": "a"}, headers=self.other
        ).json()
        self.client.post(f"/problem/favorite/{problem['id']}", headers=self.user)

        self.assertEqual(self.client.get("/user/note", headers=self.user).json()["total_count"], 1)
        self.assertEqual(self.client.get("/user/note", headers=self.other).json()["total_count"], 0)
        self.assertEqual(self.client.get("/user/problem/blank", headers=self.other).json()["total_count"], 1)
        self.assertEqual(self.client.get("/user/problem/choice", headers=self.other).json()["total_count"], 0)
        self.assertEqual(self.client.get("/user/favorite/problem", headers=self.user).json()["total_count"], 1)
        self.assertEqual(self.client.get("/user/favorite/note", headers=self.user).json()["total_count"], 0)
        self.assertEqual(self.client.get("/user/problem_set", headers=self.user).json()["total_count"], 0)
        self.assertEqual(self.client.get("/user/favorite/problem_set", headers=self.user).json()["total_count"], 0)


if __name__ == "__main__":
    unittest.main()
