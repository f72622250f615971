"""SQLite engines and sessions, one shared handle per database file.

The entry database and each per-user blob database are separate files.
Each file gets a single cached Database: one engine on a StaticPool
connection with check_same_thread disabled, so queries can run from
asyncio.to_thread workers.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mindmirror.db.schema import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/mindmirror.db")


@dataclass
class Database:
    """Engine and session factory bound to one SQLite file."""

    path: Path
    engine: Engine
    sessions: sessionmaker

    @classmethod
    def open(cls, path: Path) -> "Database":
        """Create the engine for path (the file itself appears on first use)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{path}",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(
            path=path,
            engine=engine,
            sessions=sessionmaker(bind=engine, expire_on_commit=False),
        )

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Unit of work: commit on success, roll back on error, always close."""
        with self.sessions() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def dispose(self) -> None:
        self.engine.dispose()


_databases: dict[str, Database] = {}
_databases_lock = threading.Lock()


def _resolve(db_path: Path | None) -> tuple[Path, str]:
    path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
    return path, str(path.resolve())


def get_database(db_path: Path | None = None) -> Database:
    """Get the cached Database for a file, creating it on first request.

    Args:
        db_path: SQLite file. Defaults to data/mindmirror.db.
    """
    path, key = _resolve(db_path)
    with _databases_lock:
        database = _databases.get(key)
        if database is None:
            database = Database.open(path)
            _databases[key] = database
            logger.debug(f"Opened database handle for {path}")
    return database


def dispose_database(db_path: Path | None = None) -> None:
    """Close and forget the handle for a file.

    Must be called before the file is deleted or replaced. The next
    get_database call opens a fresh handle.
    """
    _, key = _resolve(db_path)
    with _databases_lock:
        database = _databases.pop(key, None)
    if database is not None:
        database.dispose()


@contextmanager
def get_db_session(db_path: Path | None = None) -> Iterator[Session]:
    """Session on the cached handle for db_path.

    Example:
        with get_db_session(settings.entries_db_path) as session:
            repo.create_entry(session, entity)
    """
    with get_database(db_path).session() as session:
        yield session


def init_db(db_path: Path | None = None, base: type[DeclarativeBase] = Base) -> None:
    """Create the tables of `base` in db_path if they do not exist."""
    base.metadata.create_all(get_database(db_path).engine)
