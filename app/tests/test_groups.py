import unittest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from app.modules.groups.models import group_members, groups
from app.modules.groups.service import GroupService
from app.tests.base import ApiTestCase


class GroupApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner_id, self.owner = self.create_user("owner")
        self.member_id, self.member = self.create_user("member")
        self.other_id, self.other = self.create_user("other")

    def create_group(self, headers=None, **body):
        payload = {"name": "A", "description": "d"}
        payload.update(body)
        response = self.client.post("/group/create", json=payload, headers=headers or self.owner)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def join(self, group, user_id, headers, invitation=None):
        return self.client.post(
            f"/group/add/{group['id']}",
            params={"user_id": user_id, "invitation": invitation or group["invitation"]},
            headers=headers,
        )

    def test_create_group_defaults(self):
        group = self.create_group()
        self.assertEqual(group["area_id"], 100)
        self.assertEqual(len(group["invitation"]), 4)
        self.assertEqual(group["owner_id"], self.owner_id)
        self.assertEqual(group["member_count"], 1)

        with self.engine.connect() as conn:
            row = conn.execute(group_members.select()).mappings().one()
        self.assertEqual(row["user_id"], self.owner_id)
        self.assertTrue(row["is_owner"])
        self.assertTrue(row["is_admin"])

    def test_create_group_requires_auth(self):
        response = self.client.post("/group/create", json={"name": "A"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers["WWW-Authenticate"], "Bearer")

        response = self.client.post("/group/create", json={"name": "A"}, headers={"Authorization": "Basic abc"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.count(groups), 0)

    def test_create_group_rejects_missing_name(self):
        response = self.client.post("/group/create", json={"description": "d"}, headers=self.owner)
        self.assertEqual(response.status_code, 400)

    def test_list_hides_invitation(self):
        self.create_group()
        self.create_group(name="B", area_id=7)
        response = self.client.get("/group/all", headers=self.member)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total_count"], 2)
        self.assertTrue(all(g["invitation"] is None for g in payload["group"]))
        self.assertEqual(payload["group"][0]["user_info"]["user_name"], "owner")

        filtered = self.client.get("/group/all", params={"area_id": 7}, headers=self.member).json()
        self.assertEqual([g["name"] for g in filtered["group"]], ["B"])

    def test_join_with_correct_invitation(self):
        group = self.create_group()
        response = self.join(group, self.member_id, self.member)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Added successfully")
        self.assertEqual(self.count(group_members, group_members.c.user_id == self.member_id), 1)

        mine = self.client.get("/group/all", params={"user_id": self.member_id}, headers=self.member).json()
        self.assertEqual(mine["total_count"], 1)
        self.assertEqual(mine["group"][0]["member_count"], 2)

    def test_join_with_wrong_invitation_is_rejected(self):
        group = self.create_group()
        response = self.join(group, self.member_id, self.member, invitation="WRONG")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.count(group_members), 1)

    def test_admin_can_add_without_invitation(self):
        group = self.create_group()
        _, admin = self.create_admin()
        response = self.join(group, self.member_id, admin, invitation="WRONG")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.count(group_members), 2)

    def test_join_twice_is_rejected(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        response = self.join(group, self.member_id, self.member)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.count(group_members), 2)

    def test_join_missing_group_or_user(self):
        group = self.create_group()
        response = self.client.post("/group/add/999", params={"user_id": self.member_id}, headers=self.member)
        self.assertEqual(response.status_code, 404)
        response = self.join(group, 999, self.member)
        self.assertEqual(response.status_code, 404)

    def test_quit_group(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)

        response = self.client.delete(f"/group/quit/{group['id']}", headers=self.owner)
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/group/quit/{group['id']}", headers=self.other)
        self.assertEqual(response.status_code, 404)

        response = self.client.delete(f"/group/quit/{group['id']}", headers=self.member)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Quit successfully")
        self.assertEqual(self.count(group_members), 1)
        self.assertEqual(self.count(group_members, group_members.c.user_id == self.owner_id), 1)

    def test_invitation_visible_to_members_only(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        response = self.client.get(f"/group/invitation/{group['id']}", headers=self.member)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, group["invitation"])

        response = self.client.get(f"/group/invitation/{group['id']}", headers=self.other)
        self.assertEqual(response.status_code, 403)
        response = self.client.get("/group/invitation/999", headers=self.other)
        self.assertEqual(response.status_code, 404)

    def test_list_members(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        response = self.client.get(f"/group/all_user/{group['id']}", headers=self.other)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total_count"], 2)
        self.assertEqual({u["user_id"] for u in payload["user"]}, {self.owner_id, self.member_id})

    def test_member_contact_fields_hidden_from_others(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)

        listed = self.client.get(f"/group/all_user/{group['id']}", headers=self.other).json()["user"]
        self.assertTrue(all(u["email"] is None and u["phone"] is None for u in listed))

        listed = self.client.get(f"/group/all_user/{group['id']}", headers=self.member).json()["user"]
        contacts = {u["user_id"]: u["email"] for u in listed}
        self.assertEqual(contacts[self.member_id], "member@example.com")
        self.assertIsNone(contacts[self.owner_id])

        _, admin = self.create_admin()
        listed = self.client.get(f"/group/all_user/{group['id']}", headers=admin).json()["user"]
        self.assertTrue(all(u["email"] is not None for u in listed))

    def test_remove_member(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        self.join(group, self.other_id, self.other)

        response = self.client.delete(f"/group/remove/{group['id']}", params={"user_id": self.other_id}, headers=self.member)
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/group/remove/{group['id']}", params={"user_id": self.owner_id}, headers=self.owner)
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/group/remove/{group['id']}", params={"user_id": self.other_id}, headers=self.owner)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.count(group_members), 2)

        response = self.client.delete(f"/group/remove/{group['id']}", params={"user_id": self.other_id}, headers=self.owner)
        self.assertEqual(response.status_code, 404)

    def test_group_admin_member_can_remove(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        self.join(group, self.other_id, self.other)

        response = self.client.put(
            f"/group/admin/{group['id']}", params={"user_id": self.member_id, "is_admin": True}, headers=self.owner
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.delete(f"/group/remove/{group['id']}", params={"user_id": self.other_id}, headers=self.member)
        self.assertEqual(response.status_code, 200)

    def test_owner_admin_flag_is_fixed(self):
        group = self.create_group()
        response = self.client.put(
            f"/group/admin/{group['id']}", params={"user_id": self.owner_id, "is_admin": False}, headers=self.owner
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.put(
            f"/group/admin/{group['id']}", params={"user_id": self.other_id, "is_admin": True}, headers=self.owner
        )
        self.assertEqual(response.status_code, 404)

    def test_update_group_merges_fields(self):
        group = self.create_group(area_id=5)
        response = self.client.put(f"/group/update/{group['id']}", json={"name": "Renamed"}, headers=self.owner)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Updated successfully")

        updated = self.client.get("/group/all", params={"id": group["id"]}, headers=self.owner).json()["group"][0]
        self.assertEqual(updated["name"], "Renamed")
        self.assertEqual(updated["description"], "d")
        self.assertEqual(updated["area_id"], 5)

    def test_update_group_permissions(self):
        group = self.create_group()
        response = self.client.put(f"/group/update/{group['id']}", json={"name": "X"}, headers=self.other)
        self.assertEqual(response.status_code, 403)
        response = self.client.put("/group/update/999", json={"name": "X"}, headers=self.other)
        self.assertEqual(response.status_code, 404)

        _, admin = self.create_admin()
        response = self.client.put(f"/group/update/{group['id']}", json={"name": "X"}, headers=admin)
        self.assertEqual(response.status_code, 200)

    def test_delete_group_by_non_owner_is_forbidden(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        response = self.client.delete(f"/group/delete/{group['id']}", headers=self.member)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.count(groups), 1)
        self.assertEqual(self.count(group_members), 2)

    def test_delete_group_removes_memberships(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        response = self.client.delete(f"/group/delete/{group['id']}", headers=self.owner)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Deleted successfully")
        self.assertEqual(self.count(groups), 0)
        self.assertEqual(self.count(group_members), 0)

    def test_failed_delete_rolls_back(self):
        group = self.create_group()
        self.join(group, self.member_id, self.member)
        delete_members = GroupService._delete_members

        def failing_delete(service, conn, group_id):
            delete_members(service, conn, group_id)
            raise SQLAlchemyError("connection lost")

        with patch.object(GroupService, "_delete_members", failing_delete):
            response = self.client.delete(f"/group/delete/{group['id']}", headers=self.owner)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Internal server error")
        self.assertEqual(self.count(groups), 1)
        self.assertEqual(self.count(group_members), 2)


if __name__ == "__main__":
    unittest.main()
