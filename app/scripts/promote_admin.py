"""
Promote Admin Script
Sets the role of an existing user, looked up by email.

    python -m app.scripts.promote_admin someone@example.com
    python -m app.scripts.promote_admin someone@example.com --role normal
"""

import argparse
import logging
import sys

from sqlalchemy import update
from sqlalchemy.engine import Engine

from app.database.sql import Database, init_schema
from app.modules.users.models import ROLE_ADMIN, ROLE_NORMAL, users

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def promote(engine: Engine, email: str, role: str = ROLE_ADMIN) -> bool:
    """Set the role of the user with this email; False when no such user exists"""
    if role not in (ROLE_ADMIN, ROLE_NORMAL):
        raise ValueError(f"Unknown role: {role}")
    with engine.begin() as conn:
        result = conn.execute(update(users).where(users.c.email == email).values(role=role))
    if result.rowcount == 0:
        logger.error(f"No user with email {email}")
        return False
    logger.info(f"User {email} is now {role}")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Set a user's role")
    parser.add_argument("email")
    parser.add_argument("--role", choices=[ROLE_ADMIN, ROLE_NORMAL], default=ROLE_ADMIN)
    args = parser.parse_args(argv)

    engine = Database.get_engine()
    init_schema(engine)
    if not promote(engine, args.email, args.role):
        sys.exit(1)


if __name__ == "__main__":
    main()
