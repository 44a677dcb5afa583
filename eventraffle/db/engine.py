from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from .metadata import metadata_obj  # noqa: F401

import os
from pathlib import Path
from dotenv import load_dotenv
from .utils import env_flag, resolve_sqlite_url

# Get DB url
load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)
DEFAULT_ECHO = env_flag(os.getenv("DB_ECHO"))
# Seconds a SQLite connection waits on a locked database before giving up.
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))
# Connection execution option marking a transaction that never writes.
READ_ONLY_OPTION = "raffle_read_only"


from typing import Iterator, Optional


def make_engine(database_url: Optional[str] = None, echo: Optional[bool] = None):
    url = database_url or DEFAULT_SQLITE_URL
    is_sqlite = url.startswith("sqlite")
    engine = create_engine(
        url,
        echo=DEFAULT_ECHO if echo is None else echo,
        future=True,
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT} if is_sqlite else {},
    )
    if is_sqlite:
        # pysqlite defers BEGIN until the first write, which lets two draws
        # both read and then deadlock on the upgrade to a write lock. Write
        # transactions take the lock up front so they queue instead; reads
        # opened through read_session() keep a plain deferred BEGIN.

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin(conn):
            if conn.get_execution_options().get(READ_ONLY_OPTION):
                conn.exec_driver_sql("BEGIN")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep objects accessible after commit for result payloads
        future=True,
    )


@contextmanager
def read_session(session_factory: sessionmaker) -> Iterator[Session]:
    """Open a session for queries only.

    On SQLite its transaction starts deferred, so it does not hold the write
    lock that draws and resets need. Nothing flushed through it may write.
    """
    with session_factory() as session:
        session.connection(execution_options={READ_ONLY_OPTION: True})
        yield session
