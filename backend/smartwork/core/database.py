from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from smartwork.core.config import settings


def build_engine(url: str):
    # SQLite needs check_same_thread, Postgres must NOT have it
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    if is_sqlite:
        # SQLite leaves foreign keys off unless every connection asks for them
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
