"""Database engine configuration for the event store and search index.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      Registrations for a popular event write to the same row while the
      search index and listing endpoints read, so readers must not block.

    - **check_same_thread=False**: Required for FastAPI/async. Sessions are
      opened inside coroutines that may resume on a different thread than
      the one that created the pooled connection.

Other databases are used as-is; the pragmas only apply to SQLite.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Register table models on SQLModel.metadata before create_all.
import employee_training.models  # noqa: F401
from employee_training.core.config import settings


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, applying SQLite pragmas when relevant."""
    connect_args = kwargs.pop("connect_args", {})
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        connect_args.setdefault("check_same_thread", False)

    engine = create_engine(database_url, connect_args=connect_args, echo=echo, **kwargs)

    if is_sqlite:
        @sa_event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


engine = build_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def create_db_and_tables(target: Engine = engine):
    """Create all database tables."""
    SQLModel.metadata.create_all(target)
