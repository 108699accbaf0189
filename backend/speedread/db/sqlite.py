"""
SpeedRead SQLite Database Connection
"""
import logging
import os
from typing import Iterator, Optional
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from speedread.core.config import settings
from speedread.core.exceptions import DatabaseException
from speedread.db.models import Base

logger = logging.getLogger(__name__)

def set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=30000")  # 30sec timeout if busy connection
    cursor.close()

def create_sqlite_engine(db_file: str) -> Engine:
    """
    Engine for a SQLite file, with the reader's connection pragmas applied
    Args:
        db_file: Path to the database file, created with its directory if missing
    Returns:
        SQLAlchemy engine usable from FastAPI worker threads
    """
    db_dir = os.path.dirname(db_file)
    if db_dir: os.makedirs(db_dir, exist_ok=True)

    sqlite_engine = create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
        pool_pre_ping=True
    )
    event.listen(sqlite_engine, "connect", set_sqlite_pragma)
    return sqlite_engine

engine = create_sqlite_engine(settings.SQLITE_DB_FILE)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db() -> Iterator[Session]:
    """Get database session dependency."""
    db = SessionLocal()
    try: yield db
    finally: db.close()

def initialise_db(bind: Optional[Engine] = None):
    """Create tables that don't exist yet on the given engine, or the application engine"""
    bind = bind or engine
    try:
        Base.metadata.create_all(bind=bind)
        logger.info(f"Database initialised at {bind.url.database}")
    except Exception as e:
        raise DatabaseException(f"Failed to initialize database: {str(e)}")
