"""Engine, session factory and table setup for the StudyMate database."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from studymate.core.config import settings

IS_SQLITE = settings.database_url.startswith("sqlite")


def _create_engine():
    if not IS_SQLITE:
        return create_engine(settings.database_url, pool_pre_ping=True)

    # Sessions are handed between the event loop and FastAPI's threadpool
    sqlite_engine = create_engine(settings.database_url, connect_args={"check_same_thread": False})

    @event.listens_for(sqlite_engine, "connect")
    def _enforce_foreign_keys(dbapi_conn, connection_record):
        # Upload and material cascades depend on this; SQLite ships with it off
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db() -> None:
    """Create any tables of the registered models that do not exist yet."""
    import studymate.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
