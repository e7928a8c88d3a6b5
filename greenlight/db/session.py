from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from greenlight.core.config import get_settings
from greenlight.db.base import Base

settings = get_settings()


def enable_sqlite_savepoints(bind: Engine) -> None:
    """Hand SQLite transaction control to SQLAlchemy so SAVEPOINTs nest inside BEGIN."""

    @event.listens_for(bind, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(bind, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)
if _is_sqlite:
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    # Register models on the metadata
    import greenlight.db.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
