# controlboard/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from controlboard.core.config import DATABASE_URL

_is_sqlite = DATABASE_URL.startswith("sqlite")

# Create engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},  # SQLite + worker threads
    pool_pre_ping=True,  # safer reconnects
    future=True,
)


# Enforce foreign keys in SQLite
@event.listens_for(engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if not _is_sqlite:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)


def get_db():
    """Yield a DB session and make sure it's closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
