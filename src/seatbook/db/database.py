"""Database engine initialization and connection management."""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from .schema import Base, ServiceMetadata

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


def create_db_engine(url: str, busy_timeout_seconds: float = 30.0, echo: bool = False) -> Engine:
    """Create an engine whose write transactions are serialized per database.

    SQLite connections take the write lock when the transaction begins
    (BEGIN IMMEDIATE) and wait up to ``busy_timeout_seconds`` for it, so a
    read-then-write inside one transaction cannot interleave with another
    writer.
    """
    parsed = make_url(url)
    is_sqlite = parsed.get_backend_name() == "sqlite"

    connect_args: dict[str, Any] = {}
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": busy_timeout_seconds}
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=echo, connect_args=connect_args)

    if is_sqlite:
        _install_sqlite_hooks(engine)

    return engine


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Disable pysqlite's implicit BEGIN so the "begin" hook controls it.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_database(
    url: str, busy_timeout_seconds: float = 30.0, echo: bool = False
) -> sessionmaker[Any]:
    """Initialize database and return session factory."""
    engine = create_db_engine(url, busy_timeout_seconds=busy_timeout_seconds, echo=echo)
    Base.metadata.create_all(engine)

    session_maker = sessionmaker(bind=engine, expire_on_commit=False)

    with session_maker() as session:
        schema_version = session.get(ServiceMetadata, "schema_version")
        if not schema_version:
            session.add(ServiceMetadata(key="schema_version", value=SCHEMA_VERSION))
        session.commit()

    logger.info("Database initialized (backend=%s)", engine.dialect.name)
    return session_maker
