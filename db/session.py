# WORKFLOW: Database engine and session handling for imports and index syncs.
# Used by: scripts.ingest_nomenclatures, scripts.sync_search_index, etl.build_search_index
# Functions:
# 1. get_engine() / get_session_factory() - Lazily created from settings.database_url
# 2. get_db() - Yield a session and close it afterwards
# 3. init_db() - Create the nomenclature tables
# 4. check_db_connection() - Connectivity check before long-running jobs
# 5. dispose_engine() - Release pooled connections at the end of a job
#
# Job lifecycle: check_db_connection() -> get_db() -> chunked reads/writes -> close session -> dispose_engine()

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Lazy-loaded database engine and session factory
_engine = None
_SessionLocal = None


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("postgresql"):
        return {"pool_pre_ping": True, "connect_args": {"options": "-c timezone=utc"}}
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # An in-memory database only exists on its one connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True}


def get_engine():
    """Get database engine (lazy-loaded)."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url, echo=settings.debug, **_engine_options(settings.database_url))
        logger.info(f"Database engine created for dialect {_engine.dialect.name}")
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db():
    """
    Yield a database session and ensure it's closed after use.
    """
    db = get_session_factory()()
    logger.debug("Database session created")
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()
        logger.debug("Database session closed")


def init_db(engine=None):
    """
    Create missing nomenclature tables.

    Args:
        engine: Engine to use instead of the settings one
    """
    from db.models import Base

    engine = engine or get_engine()
    try:
        Base.metadata.create_all(bind=engine)
        logger.info(f"Database tables ready: {sorted(inspect(engine).get_table_names())}")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_db_connection() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def dispose_engine() -> None:
    """Close pooled connections and forget the engine; the next call creates a new one."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
        logger.debug("Database engine disposed")
    _engine = None
    _SessionLocal = None
