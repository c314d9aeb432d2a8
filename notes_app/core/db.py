# notes_app/core/db.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from notes_app.core.config import settings

Base = declarative_base()


def build_engine(url: str, **kwargs) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(url, connect_args=connect_args, **kwargs)
    if eng.url.get_backend_name() == "sqlite":
        # sqlite ignores ON DELETE CASCADE unless asked
        event.listen(eng, "connect", _enable_sqlite_fks)
    return eng


def _enable_sqlite_fks(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
