from sqlalchemy.orm import sessionmaker
from sqlalchemy import create_engine
import asyncio
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def make_engine(url: str):
    """Create an engine for `url`; SQLite (tests, local runs) skips the pool tuning."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    # pool_size: base connections
    # max_overflow: additional connections allowed under burst
    # pool_recycle: recycle connections after N seconds to prevent stale connections
    # pool_pre_ping: verify connections before using them
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True
    )


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

async def init_db():
    from app.models import Base
    loop = asyncio.get_running_loop()

    def _create_tables():
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables ensured")
        except Exception as e:
            # Never fail startup due to schema errors; the store surfaces them per request
            logger.warning(f"Table creation failed: {e}", exc_info=True)

    await loop.run_in_executor(None, _create_tables)
