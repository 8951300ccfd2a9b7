"""Database connection for FieldLedger API."""
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from config import settings

# Handle different DB_PATH formats:
# - ":memory:" → sqlite:///:memory: (in-memory test DB)
# - Absolute path (/app/data/fieldledger.db) → sqlite:////app/data/fieldledger.db
# - Relative path (data/fieldledger.db) → sqlite:///./data/fieldledger.db
if settings.DB_PATH == ":memory:":
    db_url = "sqlite:///:memory:"
elif settings.DB_PATH.startswith('/'):
    db_url = f"sqlite:///{settings.DB_PATH}"
    Path(settings.DB_PATH).parent.mkdir(parents=True, exist_ok=True)
else:
    db_url = f"sqlite:///./{settings.DB_PATH}"
    Path(settings.DB_PATH).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False}
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Session factory
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
