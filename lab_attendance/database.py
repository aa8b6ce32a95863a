from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lab_attendance.errors import DatabaseNotConnectedError
from lab_attendance.models import Base
from lab_attendance.utils.logger import logger


class Database:
    """Process-wide handle on the attendance store.

    Starts disconnected; every session request before ``connect`` fails fast
    with ``DatabaseNotConnectedError``.
    """

    def __init__(self):
        self.engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def connected(self) -> bool:
        return self.engine is not None

    @property
    def dialect(self) -> str:
        if self.engine is None:
            raise DatabaseNotConnectedError()
        return self.engine.dialect.name

    def connect(self, url: str, create_tables: bool = True) -> Engine:
        connect_args = {}
        if url.startswith("sqlite"):
            # Auto-mark writes happen on worker threads.
            connect_args["check_same_thread"] = False
        self.engine = create_engine(url, connect_args=connect_args)
        self._sessionmaker = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database ready ({self.engine.dialect.name})")
        return self.engine

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._sessionmaker = None

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional session: commits on success, rolls back on error."""
        if self._sessionmaker is None:
            raise DatabaseNotConnectedError()
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


db = Database()
