import unittest
from datetime import datetime

from sqlalchemy import insert, select

from app.database.sql import create_db_engine, init_schema
from app.modules.users.models import ROLE_ADMIN, ROLE_NORMAL, users
from app.scripts.promote_admin import promote


class PromoteAdminTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_db_engine("sqlite:///:memory:")
        init_schema(self.engine)
        with self.engine.begin() as conn:
            conn.execute(insert(users).values(
                auth_id="auth-erin", name="erin", email="erin@example.com", role=ROLE_NORMAL, created_at=datetime.now()
            ))

    def tearDown(self):
        self.engine.dispose()

    def role(self):
        with self.engine.connect() as conn:
            return conn.execute(select(users.c.role).where(users.c.email == "erin@example.com")).scalar()

    def test_promote_and_demote(self):
        self.assertTrue(promote(self.engine, "erin@example.com"))
        self.assertEqual(self.role(), ROLE_ADMIN)
        self.assertTrue(promote(self.engine, "erin@example.com", ROLE_NORMAL))
        self.assertEqual(self.role(), ROLE_NORMAL)

    def test_unknown_email(self):
        self.assertFalse(promote(self.engine, "nobody@example.com"))

    def test_unknown_role(self):
        with self.assertRaises(ValueError):
            promote(self.engine, "erin@example.com", "superuser")


if __name__ == "__main__":
    unittest.main()
