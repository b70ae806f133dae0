"""LeadHub — Database Engine & Session Factory.

One engine per process, built from `settings.effective_database_url`.
PostgreSQL gets a pre-pinged, recycled pool; SQLite gets a thread-shareable
connection (a single static one for in-memory databases).
"""

from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from leadhub.config import settings
from leadhub.core.logging import get_logger

# Table registration for create_all
from leadhub.models import ad_models, lead_models, sync_models  # noqa: F401

logger = get_logger("database")

db_url = settings.effective_database_url


def _mask_url(url: str) -> str:
    """URL with the password replaced, for logs and the debug endpoint."""
    return make_url(url).render_as_string(hide_password=True)


def backend_name(url: str) -> str:
    return make_url(url).get_backend_name()


def engine_options(url: str) -> Dict[str, Any]:
    """Keyword arguments for `create_engine` on this backend."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


engine = create_engine(db_url, echo=False, **engine_options(db_url))
logger.info(f"⚙️  Database engine created ({backend_name(db_url)}: {_mask_url(db_url)})")


def check_connection() -> bool:
    """Round-trip a SELECT 1; False when the database is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Database connection check failed: {e}")
        return False
    logger.info("✅ Database connection check passed")
    return True


def init_db() -> None:
    """Create any missing tables."""
    SQLModel.metadata.create_all(engine)
    logger.info(f"✅ Database tables ready: {', '.join(sorted(SQLModel.metadata.tables))}")


def get_session():
    """Dependency: yields a DB session."""
    with Session(engine) as session:
        yield session


def new_session() -> Session:
    """Standalone session for background runs outside a request."""
    return Session(engine)
