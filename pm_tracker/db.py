from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings


Base = declarative_base()


class Database:
    """Engine and session factory, built once per process and shared by requests."""

    def __init__(self, database_url: str):
        self.url = database_url
        kwargs = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every checkout sees an empty database
                kwargs["poolclass"] = StaticPool
        else:
            # Configure connection pool for better performance
            kwargs.update(pool_size=5, max_overflow=10, pool_recycle=3600)
        self.engine = create_engine(database_url, **kwargs)
        # IMPORTANT: do not use scoped_session with async frameworks; create a fresh Session per request
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, future=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_url)

    def create_all(self) -> None:
        # models must be imported so their tables are registered on Base.metadata
        from .models import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self):
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request):
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
