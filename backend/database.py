from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


Base = declarative_base()


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, *, echo: bool = False, engine: Engine | None = None) -> None:
        self.url = url
        self.engine = engine or _build_engine(url, echo=echo)
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )

    def create_schema(self) -> None:
        # Import for side effects: registers every table on Base.metadata.
        from backend.models import appointment, availability, chat_session, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str, *, echo: bool) -> Engine:
    if not url.startswith('sqlite'):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    options = {'connect_args': {'check_same_thread': False}}
    if url in {'sqlite://', 'sqlite:///:memory:'}:
        options['poolclass'] = StaticPool

    engine = create_engine(url, echo=echo, **options)

    @event.listens_for(engine, 'connect')
    def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    return engine


def get_db(request: Request) -> Iterator[Session]:
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
