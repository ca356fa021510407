from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from fastapi import Request
from typing import Iterator
import logging

from portfolio_api.db.migrations.add_client_time_columns import migrate

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the engine (and its connection pool) and the session factory.

    Built once per application by create_app and torn down on shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(
            url, connect_args=connect_args, pool_pre_ping=True, pool_recycle=300
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Models must be imported so their tables are registered on Base.metadata
        import portfolio_api.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        migrate(self.engine)
        logger.info("Database tables ready")

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
