"""Ads Hub — Database Engine & Session Factory.

SQLite by default, PostgreSQL when ``DATABASE_URL`` is set. Record, formula
and snapshot tables are created on startup by ``init_db``.
"""

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlmodel import SQLModel, Session, create_engine

from adshub.config import settings
from adshub.core.logging import get_logger

logger = get_logger("database")

db_url = make_url(settings.effective_database_url)


def backend_name() -> str:
    """``sqlite`` or ``postgresql``."""
    return db_url.get_backend_name()


def masked_url() -> str:
    """Connection URL with the password hidden, safe to log or return."""
    return db_url.render_as_string(hide_password=True)


def _engine_options() -> dict:
    if backend_name() == "sqlite":
        # Sessions cross threads under FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


engine = create_engine(db_url, echo=False, **_engine_options())
logger.info(f"Database backend: {backend_name()} ({masked_url()})")


def test_connection() -> bool:
    """Run ``SELECT 1``; False (and an error log) if the database is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
    return True


def init_db() -> None:
    # Importing the model modules registers their tables on SQLModel.metadata
    import adshub.models.analysis_models  # noqa: F401
    import adshub.models.formula_models  # noqa: F401
    import adshub.models.record_models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Record, formula and snapshot tables ready")


def get_session():
    """Dependency: yields a DB session."""
    with Session(engine) as session:
        yield session
