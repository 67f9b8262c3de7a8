"""
SQLAlchemy engine holder and schema bootstrap.

Every module declares its tables on the shared ``metadata`` in its own
``models.py``; ``init_schema`` imports them all before creating tables.
"""

import logging

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from app.config import settings

logger = logging.getLogger(__name__)

metadata = MetaData()


def create_db_engine(database_url: str) -> Engine:
    if not database_url:
        raise ValueError("DATABASE_URL is required")
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite lives on one connection; share it across threads.
        if ":memory:" in database_url or database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


def init_schema(engine: Engine) -> None:
    """Create any missing tables."""
    # Table definitions register themselves on `metadata` at import time.
    from app.modules.users import models as _users  # noqa: F401
    from app.modules.groups import models as _groups  # noqa: F401
    from app.modules.notes import models as _notes  # noqa: F401
    from app.modules.problems import models as _problems  # noqa: F401
    from app.modules.problem_sets import models as _problem_sets  # noqa: F401
    from app.modules.wrong_records import models as _wrong_records  # noqa: F401

    metadata.create_all(engine)
    logger.info("Database schema ready (%d tables)", len(metadata.tables))


class Database:
    _engine: Engine = None

    @classmethod
    def get_engine(cls) -> Engine:
        if cls._engine is None:
            cls._engine = create_db_engine(settings.database_url)
        return cls._engine

    @classmethod
    def reset_engine(cls):
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None


def get_db() -> Engine:
    return Database.get_engine()
